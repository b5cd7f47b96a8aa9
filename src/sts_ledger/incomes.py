# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Income record store.

CRUD operations on the ``incomes`` table plus the dues-specific operations
(settlement and outstanding dues listing).

Creation
--------
- plain entry (no ``total_amount``): the amount is fully received,
  ``advance_amount = amount``, ``due_amount = 0``, ``is_due_paid = True``;
- dues entry (``total_amount`` given): the (total, advance, due) triple is
  completed and validated by ``dues.resolve_dues_terms``,
  ``is_due_paid = (due_amount == 0)``.

Updates
-------
Updates are partial (only non-None attributes are applied) and run in a
single ``BEGIN IMMEDIATE`` transaction: the current row is read, the dues
rules are checked and the new values are written, or nothing is written.

- Once a record is fully received (``dues.is_frozen``), any change to
  total / advance / due / due date / paid flag raises InvalidStateError.
- Otherwise, changing one of the three amounts re-checks the dues invariant
  and recomputes ``is_due_paid`` from the new due.

Settlement
----------
``mark_due_as_paid`` is one conditional UPDATE guarded by
``is_due_paid = 0 AND due_amount_cents > 0``. The due is folded into
``amount`` so that every report reading ``amount`` sees the full received
total; ``total_amount`` and ``advance_amount`` keep the original terms.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from .categories import IncomeCategory, parse_income_category
from .db import (
    DatabaseConfig,
    build_where,
    coerce_amount,
    coerce_date,
    coerce_optional_amount,
    coerce_optional_date,
    connect,
    from_cents,
    init_database,
    now_utc_iso,
    parse_stored_date,
    parse_stored_timestamp,
    to_cents,
)
from .dues import DuesState, dues_state, is_frozen, resolve_dues_terms
from .errors import (
    AlreadySettledError,
    InvalidStateError,
    NoOutstandingDueError,
    NotFoundError,
    ValidationError,
)
from .periods import current_date

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncomeRecord:
    """
    An income entry as stored in the ledger.

    ``amount`` is what every report sums: the received total for plain
    entries, the advance while a due is outstanding, and advance + due once
    the due has been settled.
    """

    id: int
    date: date
    category: IncomeCategory
    source: str
    description: str | None
    amount: float

    # Dues extension
    total_amount: float | None
    advance_amount: float | None
    due_amount: float
    due_date: date | None
    is_due_paid: bool
    due_paid_date: date | None

    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class NewIncome:
    """
    Data required to create an income entry.

    Values may be given as raw strings/numbers (e.g. straight from a form
    or the CLI); they are validated by ``create_income``.
    """

    amount: float
    category: IncomeCategory | str
    source: str
    date: date | str
    description: str | None = None
    total_amount: float | None = None
    advance_amount: float | None = None
    due_amount: float | None = None
    due_date: date | str | None = None


@dataclass(frozen=True)
class IncomeUpdate:
    """
    Fields that can be updated on an existing income entry.

    Each attribute is optional. Only non-None values are applied.
    ``is_due_paid`` is derived from ``due_amount``; it is accepted only when
    it agrees with the derived value.
    """

    amount: float | None = None
    category: IncomeCategory | str | None = None
    source: str | None = None
    description: str | None = None
    date: date | str | None = None
    total_amount: float | None = None
    advance_amount: float | None = None
    due_amount: float | None = None
    due_date: date | str | None = None
    due_paid_date: date | str | None = None
    is_due_paid: bool | None = None


@dataclass(frozen=True)
class IncomeFilter:
    """
    Filters used to list income entries. Date bounds are inclusive.

    Attributes
    ----------
    category:
        Exact category match.
    source_contains:
        Case-insensitive substring search on the source.
    start, end:
        Bounds on the entry date (on the due date for outstanding dues).
    has_dues:
        If True, only entries with an outstanding due are returned.
    """

    category: IncomeCategory | str | None = None
    source_contains: str | None = None
    start: date | None = None
    end: date | None = None
    has_dues: bool = False


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_INCOME_COLUMNS = """
    id,
    date,
    category,
    source,
    description,
    amount_cents,
    total_amount_cents,
    advance_amount_cents,
    due_amount_cents,
    due_date,
    is_due_paid,
    due_paid_date,
    created_at,
    updated_at
"""

_DUES_FIELDS = (
    "total_amount",
    "advance_amount",
    "due_amount",
    "due_date",
    "is_due_paid",
)


def _row_to_income(row: tuple) -> IncomeRecord:
    """Convert a row selected with _INCOME_COLUMNS into an IncomeRecord."""
    (
        income_id,
        date_str,
        category,
        source,
        description,
        amount_cents,
        total_cents,
        advance_cents,
        due_cents,
        due_date_str,
        is_due_paid_int,
        due_paid_date_str,
        created_at_str,
        updated_at_str,
    ) = row

    return IncomeRecord(
        id=income_id,
        date=parse_stored_date(date_str),
        category=IncomeCategory(category),
        source=source,
        description=description,
        amount=from_cents(amount_cents),
        total_amount=from_cents(total_cents),
        advance_amount=from_cents(advance_cents),
        due_amount=from_cents(due_cents or 0),
        due_date=parse_stored_date(due_date_str),
        is_due_paid=bool(is_due_paid_int),
        due_paid_date=parse_stored_date(due_paid_date_str),
        created_at=parse_stored_timestamp(created_at_str),
        updated_at=parse_stored_timestamp(updated_at_str),
    )


def _fetch_income(conn: sqlite3.Connection, income_id: int) -> IncomeRecord | None:
    cur = conn.execute(
        f"SELECT {_INCOME_COLUMNS} FROM incomes WHERE id = ?;",
        (income_id,),
    )
    row = cur.fetchone()
    return _row_to_income(row) if row is not None else None


def _not_found(income_id: int) -> NotFoundError:
    return NotFoundError(f'Income with ID "{income_id}" not found')


def _filter_clauses(
    filters: IncomeFilter | None,
    date_column: str = "date",
) -> tuple[list[str], list[object]]:
    """Translate an IncomeFilter into WHERE clauses and parameters."""
    clauses: list[str] = []
    params: list[object] = []
    if filters is None:
        return clauses, params

    if filters.category is not None:
        clauses.append("category = ?")
        params.append(parse_income_category(filters.category).value)
    if filters.source_contains:
        clauses.append("LOWER(source) LIKE ?")
        params.append(f"%{filters.source_contains.lower()}%")
    if filters.start is not None:
        clauses.append(f"{date_column} >= ?")
        params.append(filters.start.isoformat())
    if filters.end is not None:
        clauses.append(f"{date_column} <= ?")
        params.append(filters.end.isoformat())
    if filters.has_dues:
        clauses.append("is_due_paid = 0 AND due_amount_cents > 0")

    return clauses, params


def _validate_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"Invalid {field}: a non-empty value is required.")
    return str(value).strip()


def _differs(current: object, new: object) -> bool:
    if isinstance(current, float) or isinstance(new, float):
        if current is None or new is None:
            return True
        return to_cents(float(current)) != to_cents(float(new))  # type: ignore
    return current != new


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def create_income(cfg: DatabaseConfig, new_income: NewIncome) -> IncomeRecord:
    """
    Validate and insert a new income entry.

    Raises
    ------
    ValidationError
        If an amount, date, category or source is malformed.
    InvalidStateError
        If the dues terms are inconsistent.
    """
    amount = coerce_amount(new_income.amount, "amount")
    category = parse_income_category(new_income.category)
    source = _validate_text(new_income.source, "source")
    entry_date = coerce_date(new_income.date, "date")
    total = coerce_optional_amount(new_income.total_amount, "totalAmount")
    advance = coerce_optional_amount(new_income.advance_amount, "advanceAmount")
    due = coerce_optional_amount(new_income.due_amount, "dueAmount")
    due_date = coerce_optional_date(new_income.due_date, "dueDate")

    if total is None:
        if advance is not None or due is not None:
            raise InvalidStateError(
                "totalAmount is required when advanceAmount or dueAmount is given."
            )
        total_cents = None
        advance = amount
        due = 0.0
    else:
        total, advance, due = resolve_dues_terms(total, advance, due)
        total_cents = to_cents(total)

    is_due_paid = to_cents(due) == 0

    init_database(cfg)
    conn = connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO incomes (
                date,
                category,
                source,
                description,
                amount_cents,
                total_amount_cents,
                advance_amount_cents,
                due_amount_cents,
                due_date,
                is_due_paid,
                due_paid_date,
                created_at,
                updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, NULL);
            """,
            (
                entry_date.isoformat(),
                category.value,
                source,
                new_income.description,
                to_cents(amount),
                total_cents,
                to_cents(advance),
                to_cents(due),
                due_date.isoformat() if due_date is not None else None,
                int(is_due_paid),
                now_utc_iso(),
            ),
        )
        income_id = cur.lastrowid
        conn.commit()
        record = _fetch_income(conn, income_id)
    finally:
        conn.close()

    if record is None:
        msg = f"Income #{income_id} was just inserted but could not be reloaded."
        raise RuntimeError(msg)

    logger.info(
        "Created income #%s (%s, amount=%.2f, due=%.2f)",
        record.id,
        record.category.value,
        record.amount,
        record.due_amount,
    )
    return record


def list_incomes(
    cfg: DatabaseConfig,
    filters: IncomeFilter | None = None,
) -> list[IncomeRecord]:
    """List income entries matching ``filters``, newest first."""
    init_database(cfg)
    clauses, params = _filter_clauses(filters)

    conn = connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {_INCOME_COLUMNS}
              FROM incomes
             WHERE {build_where(clauses)}
             ORDER BY date DESC, id DESC;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_income(row) for row in rows]


def get_income(cfg: DatabaseConfig, income_id: int) -> IncomeRecord:
    """
    Load a single income entry.

    Raises
    ------
    NotFoundError
        If no entry has this id.
    """
    init_database(cfg)
    conn = connect(cfg)
    try:
        record = _fetch_income(conn, income_id)
    finally:
        conn.close()

    if record is None:
        raise _not_found(income_id)
    return record


def _dues_changes(existing: IncomeRecord, update: IncomeUpdate) -> dict[str, object]:
    """Return the dues fields the update would actually change."""
    proposed = {
        "total_amount": coerce_optional_amount(update.total_amount, "totalAmount"),
        "advance_amount": coerce_optional_amount(
            update.advance_amount, "advanceAmount"
        ),
        "due_amount": coerce_optional_amount(update.due_amount, "dueAmount"),
        "due_date": coerce_optional_date(update.due_date, "dueDate"),
        "is_due_paid": update.is_due_paid,
    }
    return {
        field: value
        for field, value in proposed.items()
        if value is not None and _differs(getattr(existing, field), value)
    }


def update_income(
    cfg: DatabaseConfig,
    income_id: int,
    update: IncomeUpdate,
) -> IncomeRecord:
    """
    Apply a partial update to an existing income entry.

    Raises
    ------
    NotFoundError
        If no entry has this id.
    InvalidStateError
        If the update touches frozen dues fields or breaks the dues
        invariant.
    ValidationError
        If a value is malformed or no field is provided.
    """
    init_database(cfg)

    fields: list[str] = []
    params: list[object] = []

    if update.amount is not None:
        fields.append("amount_cents = ?")
        params.append(to_cents(coerce_amount(update.amount, "amount")))
    if update.category is not None:
        fields.append("category = ?")
        params.append(parse_income_category(update.category).value)
    if update.source is not None:
        fields.append("source = ?")
        params.append(_validate_text(update.source, "source"))
    if update.description is not None:
        fields.append("description = ?")
        params.append(update.description)
    if update.date is not None:
        fields.append("date = ?")
        params.append(coerce_date(update.date, "date").isoformat())
    if update.due_paid_date is not None:
        fields.append("due_paid_date = ?")
        params.append(coerce_date(update.due_paid_date, "duePaidDate").isoformat())

    conn = connect(cfg)
    try:
        conn.execute("BEGIN IMMEDIATE;")
        existing = _fetch_income(conn, income_id)
        if existing is None:
            raise _not_found(income_id)

        if update.due_paid_date is not None and existing.total_amount is None:
            raise InvalidStateError(
                f"Income #{income_id} has no dues terms; duePaidDate cannot be set."
            )

        changes = _dues_changes(existing, update)
        if changes and is_frozen(existing):
            attempted = ", ".join(sorted(changes))
            raise InvalidStateError(
                f"Income #{income_id} is fully settled; its dues fields are "
                f"frozen (attempted to change: {attempted})."
            )

        if "due_date" in changes:
            fields.append("due_date = ?")
            params.append(changes["due_date"].isoformat())  # type: ignore[union-attr]

        amount_fields = {"total_amount", "advance_amount", "due_amount"}
        due = existing.due_amount
        if amount_fields & changes.keys():
            advance = changes.get("advance_amount", existing.advance_amount)
            due = changes.get("due_amount", existing.due_amount)  # type: ignore
            total = changes.get("total_amount", existing.total_amount)
            if advance is None:
                advance = existing.amount
            if total is None:
                total = float(advance) + float(due)  # type: ignore[arg-type]
            total, advance, due = resolve_dues_terms(
                float(total),  # type: ignore[arg-type]
                float(advance),  # type: ignore[arg-type]
                float(due),
            )
            fields.extend(
                [
                    "total_amount_cents = ?",
                    "advance_amount_cents = ?",
                    "due_amount_cents = ?",
                    "is_due_paid = ?",
                ]
            )
            params.extend(
                [
                    to_cents(total),
                    to_cents(advance),
                    to_cents(due),
                    int(to_cents(due) == 0),
                ]
            )

        if "is_due_paid" in changes and changes["is_due_paid"] != (to_cents(due) == 0):
            raise InvalidStateError(
                f"isDuePaid={changes['is_due_paid']} contradicts dueAmount "
                f"({due:.2f}) for income #{income_id}; use mark-paid to settle dues."
            )

        if not fields:
            raise ValidationError("No fields to update in IncomeUpdate.")

        fields.append("updated_at = ?")
        params.append(now_utc_iso())
        params.append(income_id)

        conn.execute(
            f"""
            UPDATE incomes
               SET {", ".join(fields)}
             WHERE id = ?;
            """,
            params,
        )
        conn.commit()
        record = _fetch_income(conn, income_id)
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    if record is None:
        msg = f"Income #{income_id} was updated but could not be reloaded."
        raise RuntimeError(msg)

    logger.info("Updated income #%s", income_id)
    return record


def delete_income(cfg: DatabaseConfig, income_id: int) -> str:
    """
    Permanently delete an income entry.

    Raises
    ------
    NotFoundError
        If no entry has this id.
    """
    init_database(cfg)
    conn = connect(cfg)
    try:
        cur = conn.execute("DELETE FROM incomes WHERE id = ?;", (income_id,))
        deleted = cur.rowcount
        conn.commit()
    finally:
        conn.close()

    if deleted == 0:
        raise _not_found(income_id)

    logger.info("Deleted income #%s", income_id)
    return "Income entry has been deleted"


# ---------------------------------------------------------------------------
# Dues lifecycle
# ---------------------------------------------------------------------------


def mark_due_as_paid(
    cfg: DatabaseConfig,
    income_id: int,
    paid_date: date | str | None = None,
) -> IncomeRecord:
    """
    Settle the outstanding due of an income entry.

    Sets ``is_due_paid``, records ``due_paid_date`` (today by default), adds
    the due into ``amount`` and zeroes ``due_amount``. ``total_amount`` and
    ``advance_amount`` are left untouched.

    The whole transition is a single conditional UPDATE, so two concurrent
    calls can never both add the due into ``amount``.

    Raises
    ------
    NotFoundError
        If no entry has this id.
    AlreadySettledError
        If the due was already settled.
    NoOutstandingDueError
        If the entry has nothing left to collect.
    """
    settled_on = coerce_optional_date(paid_date, "paidDate") or current_date()
    init_database(cfg)

    conn = connect(cfg)
    try:
        cur = conn.execute(
            """
            UPDATE incomes
               SET is_due_paid      = 1,
                   due_paid_date    = ?,
                   amount_cents     = amount_cents + due_amount_cents,
                   due_amount_cents = 0,
                   updated_at       = ?
             WHERE id = ?
               AND is_due_paid = 0
               AND due_amount_cents > 0;
            """,
            (settled_on.isoformat(), now_utc_iso(), income_id),
        )
        settled = cur.rowcount
        conn.commit()
        record = _fetch_income(conn, income_id)
    finally:
        conn.close()

    if record is None:
        raise _not_found(income_id)

    if settled == 0:
        if (
            dues_state(record) is DuesState.SETTLED
            and record.due_paid_date is not None
        ):
            raise AlreadySettledError(
                f'Income with ID "{income_id}" was already settled on '
                f"{record.due_paid_date.isoformat()}"
            )
        raise NoOutstandingDueError(
            f'Income with ID "{income_id}" has no outstanding dues'
        )

    logger.info(
        "Settled dues of income #%s on %s (amount now %.2f)",
        income_id,
        settled_on.isoformat(),
        record.amount,
    )
    return record


def get_outstanding_dues(
    cfg: DatabaseConfig,
    filters: IncomeFilter | None = None,
) -> list[IncomeRecord]:
    """
    List income entries with an outstanding due.

    Results are ordered by due date ascending, entries without a due date
    last. Date bounds in ``filters`` apply to the due date.
    """
    init_database(cfg)
    clauses, params = _filter_clauses(filters, date_column="due_date")
    clauses.append("is_due_paid = 0 AND due_amount_cents > 0")

    conn = connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {_INCOME_COLUMNS}
              FROM incomes
             WHERE {build_where(clauses)}
             ORDER BY due_date IS NULL, due_date ASC, id ASC;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_income(row) for row in rows]


# ---------------------------------------------------------------------------
# Analytics input
# ---------------------------------------------------------------------------


def load_income_frame(
    cfg: DatabaseConfig,
    filters: IncomeFilter | None = None,
) -> pd.DataFrame:
    """
    Load income entries as a DataFrame for aggregation.

    Returns
    -------
    pandas.DataFrame
        Columns: id, date (datetime64, NaT when unparsable), category,
        amount, due_amount, due_date (datetime64), is_due_paid.

    Notes
    -----
    Dates are parsed leniently: a corrupt stored date becomes NaT instead of
    failing the load, and the aggregator skips such rows.
    """
    init_database(cfg)
    clauses, params = _filter_clauses(filters)

    conn = connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT id, date, category, amount_cents, due_amount_cents,
                   due_date, is_due_paid
              FROM incomes
             WHERE {build_where(clauses)}
             ORDER BY date, id;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    columns = [
        "id",
        "date",
        "category",
        "amount_cents",
        "due_amount_cents",
        "due_date",
        "is_due_paid",
    ]
    df = pd.DataFrame(rows, columns=columns)
    df["date"] = pd.to_datetime(df["date"], format="%Y-%m-%d", errors="coerce")
    df["due_date"] = pd.to_datetime(df["due_date"], format="%Y-%m-%d", errors="coerce")
    df["amount"] = df["amount_cents"].astype(float) / 100.0
    df["due_amount"] = df["due_amount_cents"].fillna(0).astype(float) / 100.0
    df["is_due_paid"] = df["is_due_paid"].astype(bool)
    return df.drop(columns=["amount_cents", "due_amount_cents"])

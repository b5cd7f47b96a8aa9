# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Expense record store.

Plain CRUD on the ``expenses`` table. Expenses have no lifecycle beyond
create / update / delete; they mirror the income store minus the dues
extension, with ``purpose`` in place of ``source``.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from .categories import ExpenseCategory, parse_expense_category
from .db import (
    DatabaseConfig,
    build_where,
    coerce_amount,
    coerce_date,
    connect,
    from_cents,
    init_database,
    now_utc_iso,
    parse_stored_date,
    parse_stored_timestamp,
    to_cents,
)
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    date: date
    category: ExpenseCategory
    purpose: str
    description: str | None
    amount: float
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class NewExpense:
    amount: float
    category: ExpenseCategory | str
    purpose: str
    date: date | str
    description: str | None = None


@dataclass(frozen=True)
class ExpenseUpdate:
    """Partial update; only non-None attributes are applied."""

    amount: float | None = None
    category: ExpenseCategory | str | None = None
    purpose: str | None = None
    description: str | None = None
    date: date | str | None = None


@dataclass(frozen=True)
class ExpenseFilter:
    """Filters used to list expenses. Date bounds are inclusive."""

    category: ExpenseCategory | str | None = None
    purpose_contains: str | None = None
    start: date | None = None
    end: date | None = None


_EXPENSE_COLUMNS = """
    id, date, category, purpose, description, amount_cents, created_at, updated_at
"""


def _row_to_expense(row: tuple) -> ExpenseRecord:
    (
        expense_id,
        date_str,
        category,
        purpose,
        description,
        amount_cents,
        created_at_str,
        updated_at_str,
    ) = row

    return ExpenseRecord(
        id=expense_id,
        date=parse_stored_date(date_str),
        category=ExpenseCategory(category),
        purpose=purpose,
        description=description,
        amount=from_cents(amount_cents),
        created_at=parse_stored_timestamp(created_at_str),
        updated_at=parse_stored_timestamp(updated_at_str),
    )


def _fetch_expense(conn: sqlite3.Connection, expense_id: int) -> ExpenseRecord | None:
    cur = conn.execute(
        f"SELECT {_EXPENSE_COLUMNS} FROM expenses WHERE id = ?;",
        (expense_id,),
    )
    row = cur.fetchone()
    return _row_to_expense(row) if row is not None else None


def _not_found(expense_id: int) -> NotFoundError:
    return NotFoundError(f'Expense with ID "{expense_id}" not found')


def _filter_clauses(filters: ExpenseFilter | None) -> tuple[list[str], list[object]]:
    clauses: list[str] = []
    params: list[object] = []
    if filters is None:
        return clauses, params

    if filters.category is not None:
        clauses.append("category = ?")
        params.append(parse_expense_category(filters.category).value)
    if filters.purpose_contains:
        clauses.append("LOWER(purpose) LIKE ?")
        params.append(f"%{filters.purpose_contains.lower()}%")
    if filters.start is not None:
        clauses.append("date >= ?")
        params.append(filters.start.isoformat())
    if filters.end is not None:
        clauses.append("date <= ?")
        params.append(filters.end.isoformat())

    return clauses, params


def _validate_purpose(value: str | None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("Invalid purpose: a non-empty value is required.")
    return str(value).strip()


def create_expense(cfg: DatabaseConfig, new_expense: NewExpense) -> ExpenseRecord:
    """
    Validate and insert a new expense.

    Raises
    ------
    ValidationError
        If the amount, date, category or purpose is malformed.
    """
    amount = coerce_amount(new_expense.amount, "amount")
    category = parse_expense_category(new_expense.category)
    purpose = _validate_purpose(new_expense.purpose)
    entry_date = coerce_date(new_expense.date, "date")

    init_database(cfg)
    conn = connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO expenses (
                date, category, purpose, description, amount_cents,
                created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, NULL);
            """,
            (
                entry_date.isoformat(),
                category.value,
                purpose,
                new_expense.description,
                to_cents(amount),
                now_utc_iso(),
            ),
        )
        expense_id = cur.lastrowid
        conn.commit()
        record = _fetch_expense(conn, expense_id)
    finally:
        conn.close()

    if record is None:
        msg = f"Expense #{expense_id} was just inserted but could not be reloaded."
        raise RuntimeError(msg)

    logger.info(
        "Created expense #%s (%s, amount=%.2f)",
        record.id,
        record.category.value,
        record.amount,
    )
    return record


def list_expenses(
    cfg: DatabaseConfig,
    filters: ExpenseFilter | None = None,
) -> list[ExpenseRecord]:
    """List expenses matching ``filters``, newest first."""
    init_database(cfg)
    clauses, params = _filter_clauses(filters)

    conn = connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {_EXPENSE_COLUMNS}
              FROM expenses
             WHERE {build_where(clauses)}
             ORDER BY date DESC, id DESC;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_expense(row) for row in rows]


def get_expense(cfg: DatabaseConfig, expense_id: int) -> ExpenseRecord:
    """
    Load a single expense.

    Raises
    ------
    NotFoundError
        If no expense has this id.
    """
    init_database(cfg)
    conn = connect(cfg)
    try:
        record = _fetch_expense(conn, expense_id)
    finally:
        conn.close()

    if record is None:
        raise _not_found(expense_id)
    return record


def update_expense(
    cfg: DatabaseConfig,
    expense_id: int,
    update: ExpenseUpdate,
) -> ExpenseRecord:
    """
    Apply a partial update to an existing expense.

    Raises
    ------
    NotFoundError
        If no expense has this id.
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
        params.append(parse_expense_category(update.category).value)
    if update.purpose is not None:
        fields.append("purpose = ?")
        params.append(_validate_purpose(update.purpose))
    if update.description is not None:
        fields.append("description = ?")
        params.append(update.description)
    if update.date is not None:
        fields.append("date = ?")
        params.append(coerce_date(update.date, "date").isoformat())

    if not fields:
        raise ValidationError("No fields to update in ExpenseUpdate.")

    fields.append("updated_at = ?")
    params.append(now_utc_iso())
    params.append(expense_id)

    conn = connect(cfg)
    try:
        cur = conn.execute(
            f"""
            UPDATE expenses
               SET {", ".join(fields)}
             WHERE id = ?;
            """,
            params,
        )
        updated = cur.rowcount
        conn.commit()
        record = _fetch_expense(conn, expense_id)
    finally:
        conn.close()

    if updated == 0 or record is None:
        raise _not_found(expense_id)

    logger.info("Updated expense #%s", expense_id)
    return record


def delete_expense(cfg: DatabaseConfig, expense_id: int) -> str:
    """
    Permanently delete an expense.

    Raises
    ------
    NotFoundError
        If no expense has this id.
    """
    init_database(cfg)
    conn = connect(cfg)
    try:
        cur = conn.execute("DELETE FROM expenses WHERE id = ?;", (expense_id,))
        deleted = cur.rowcount
        conn.commit()
    finally:
        conn.close()

    if deleted == 0:
        raise _not_found(expense_id)

    logger.info("Deleted expense #%s", expense_id)
    return "Expense entry has been deleted"


def load_expense_frame(
    cfg: DatabaseConfig,
    filters: ExpenseFilter | None = None,
) -> pd.DataFrame:
    """
    Load expenses as a DataFrame for aggregation.

    Returns
    -------
    pandas.DataFrame
        Columns: id, date (datetime64, NaT when unparsable), category, amount.
    """
    init_database(cfg)
    clauses, params = _filter_clauses(filters)

    conn = connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT id, date, category, amount_cents
              FROM expenses
             WHERE {build_where(clauses)}
             ORDER BY date, id;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    df = pd.DataFrame(rows, columns=["id", "date", "category", "amount_cents"])
    df["date"] = pd.to_datetime(df["date"], format="%Y-%m-%d", errors="coerce")
    df["amount"] = df["amount_cents"].astype(float) / 100.0
    return df.drop(columns=["amount_cents"])

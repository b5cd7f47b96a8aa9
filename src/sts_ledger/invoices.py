# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Invoice documents and invoice-number allocation.

Invoices live in the polymorphic ``documents`` table with
``document_type = "INVOICE"``. The triple (document_type, business_unit,
document_number) is UNIQUE and is the source of truth for collisions.

Invoice numbers
---------------
Numbers have the form ``{prefix}/{business_unit}/{year}/{sequence}``, for
example ``STS/SD/2025/1611``. Sequences start at 1611 for each business
unit and year and are never zero-padded.

- ``next_invoice_number`` returns a *suggestion* derived from stored data:
  the highest numeric suffix among this year's invoices of the unit (and
  the unit's counter row, see below) plus one, or the floor value when
  there is none. Suffixes are compared as integers, so 10000 correctly
  follows 9999. The suggestion is not reserved: two callers can receive the
  same value, and the second ``create_invoice`` with it fails with
  ConflictError. The caller retries with a fresh suggestion.

- ``allocate_invoice_number`` and ``create_invoice`` without an explicit
  number use the ``invoice_sequences`` counter row, incremented inside a
  ``BEGIN IMMEDIATE`` transaction. Concurrent writers serialize on the
  database lock, so an allocated number is handed out exactly once.

Every successful insert also moves the counter forward, so suggestions
and allocations stay monotonic even after invoices are deleted.

Totals
------
Caller-supplied totals are stored as entered. ``calculate_service_amount``
and ``calculate_invoice_totals`` are provided for callers that want to
compute them from line items.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from .categories import (
    BusinessUnit,
    DocumentStatus,
    DocumentType,
    parse_business_unit,
    parse_document_status,
)
from .db import (
    DatabaseConfig,
    build_where,
    coerce_amount,
    coerce_date,
    coerce_optional_date,
    connect,
    from_cents,
    init_database,
    now_utc_iso,
    parse_stored_date,
    parse_stored_timestamp,
    to_cents,
)
from .errors import ConflictError, NotFoundError, ValidationError
from .periods import current_date

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "STS"
DEFAULT_SEQUENCE_START = 1611
DEFAULT_CURRENCY = "INR (₹)"

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Client:
    """Billed party, stored as a JSON object on the document."""

    name: str
    company: str | None = None
    address: str | None = None
    tax_id: str | None = None
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "company": self.company,
            "address": self.address,
            "taxId": self.tax_id,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Client:
        if not isinstance(data, dict):
            raise ValidationError("Invalid client: expected an object.")
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("Invalid client: a name is required.")
        return cls(
            name=name,
            company=data.get("company"),
            address=data.get("address"),
            tax_id=data.get("taxId", data.get("gstin")),
            email=data.get("email"),
        )


@dataclass(frozen=True)
class ServiceLine:
    """One invoice line item. ``amount`` is the discounted line total."""

    description: str
    quantity: float
    rate: float
    discount_percent: float
    amount: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "rate": self.rate,
            "discount": self.discount_percent,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceLine:
        if not isinstance(data, dict):
            raise ValidationError("Invalid service line: expected an object.")
        description = str(data.get("description") or "").strip()
        if not description:
            raise ValidationError("Invalid service line: a description is required.")

        quantity = coerce_amount(data.get("quantity"), "quantity")
        rate = coerce_amount(data.get("rate"), "rate")
        discount = coerce_amount(
            data.get("discount", data.get("discountPercent", 0)), "discount"
        )
        if discount > 100:
            raise ValidationError(
                f"Invalid discount: {discount}. Expected a percentage (0-100)."
            )
        raw_amount = data.get("amount")
        amount = (
            calculate_service_amount(quantity, rate, discount)
            if raw_amount is None
            else coerce_amount(raw_amount, "amount")
        )
        return cls(
            description=description,
            quantity=quantity,
            rate=rate,
            discount_percent=discount,
            amount=amount,
        )


@dataclass(frozen=True)
class InvoiceDocument:
    id: int
    document_type: DocumentType
    document_number: str
    business_unit: BusinessUnit
    invoice_date: date
    due_date: date | None
    client: Client
    services: list[ServiceLine]
    subtotal: float
    total_discount: float
    grand_total: float
    status: DocumentStatus
    currency: str
    place_of_supply: str | None
    po_ref: str | None
    payment_terms: str | None
    notes: str | None
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class NewInvoice:
    """
    Data required to create an invoice.

    When ``document_number`` is None, a number is allocated atomically.
    """

    business_unit: BusinessUnit | str
    invoice_date: date | str
    client: Client
    services: list[ServiceLine]
    subtotal: float
    total_discount: float
    grand_total: float
    document_number: str | None = None
    due_date: date | str | None = None
    status: DocumentStatus | str = DocumentStatus.DRAFT
    currency: str = DEFAULT_CURRENCY
    place_of_supply: str | None = None
    po_ref: str | None = None
    payment_terms: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class InvoiceUpdate:
    """Partial update; only non-None attributes are applied."""

    document_number: str | None = None
    business_unit: BusinessUnit | str | None = None
    invoice_date: date | str | None = None
    due_date: date | str | None = None
    client: Client | None = None
    services: list[ServiceLine] | None = None
    subtotal: float | None = None
    total_discount: float | None = None
    grand_total: float | None = None
    status: DocumentStatus | str | None = None
    currency: str | None = None
    place_of_supply: str | None = None
    po_ref: str | None = None
    payment_terms: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class InvoiceFilter:
    """
    Filters used to list invoices. Date bounds apply to the invoice date.

    ``search`` is a case-insensitive substring matched against the document
    number, the client name and the client company.
    """

    business_unit: BusinessUnit | str | None = None
    status: DocumentStatus | str | None = None
    start: date | None = None
    end: date | None = None
    search: str | None = None


@dataclass(frozen=True)
class GroupStats:
    key: str
    count: int
    total_amount: float | None = None


@dataclass(frozen=True)
class InvoiceStats:
    total_documents: int
    total_amount: float
    by_document_type: list[GroupStats] = field(default_factory=list)
    by_business_unit: list[GroupStats] = field(default_factory=list)
    by_status: list[GroupStats] = field(default_factory=list)
    recent_documents: list[InvoiceDocument] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Line-item arithmetic
# ---------------------------------------------------------------------------


def calculate_service_amount(quantity: float, rate: float, discount: float) -> float:
    """Line total: ``quantity * rate * (1 - discount / 100)``."""
    gross = quantity * rate
    return gross - gross * (discount / 100)


def calculate_invoice_totals(services: list[ServiceLine]) -> tuple[float, float, float]:
    """
    Compute ``(subtotal, total_discount, grand_total)`` for line items.

    ``subtotal`` is the gross sum (quantity * rate), ``total_discount`` the
    sum of line discounts and ``grand_total = subtotal - total_discount``.
    """
    subtotal = sum(s.quantity * s.rate for s in services)
    total_discount = sum(
        s.quantity * s.rate * (s.discount_percent / 100) for s in services
    )
    return subtotal, total_discount, subtotal - total_discount


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_DOCUMENT_COLUMNS = """
    id,
    document_type,
    document_number,
    business_unit,
    invoice_date,
    due_date,
    client,
    services,
    subtotal_cents,
    total_discount_cents,
    grand_total_cents,
    status,
    currency,
    place_of_supply,
    po_ref,
    payment_terms,
    notes,
    created_at,
    updated_at
"""


def _row_to_invoice(row: tuple) -> InvoiceDocument:
    (
        doc_id,
        document_type,
        document_number,
        business_unit,
        invoice_date_str,
        due_date_str,
        client_json,
        services_json,
        subtotal_cents,
        total_discount_cents,
        grand_total_cents,
        status,
        currency,
        place_of_supply,
        po_ref,
        payment_terms,
        notes,
        created_at_str,
        updated_at_str,
    ) = row

    return InvoiceDocument(
        id=doc_id,
        document_type=DocumentType(document_type),
        document_number=document_number,
        business_unit=BusinessUnit(business_unit),
        invoice_date=parse_stored_date(invoice_date_str),
        due_date=parse_stored_date(due_date_str),
        client=Client.from_dict(json.loads(client_json)),
        services=[ServiceLine.from_dict(s) for s in json.loads(services_json)],
        subtotal=from_cents(subtotal_cents),
        total_discount=from_cents(total_discount_cents),
        grand_total=from_cents(grand_total_cents),
        status=DocumentStatus(status),
        currency=currency,
        place_of_supply=place_of_supply,
        po_ref=po_ref,
        payment_terms=payment_terms,
        notes=notes,
        created_at=parse_stored_timestamp(created_at_str),
        updated_at=parse_stored_timestamp(updated_at_str),
    )


def _fetch_invoice(conn: sqlite3.Connection, invoice_id: int) -> InvoiceDocument | None:
    cur = conn.execute(
        f"""
        SELECT {_DOCUMENT_COLUMNS}
          FROM documents
         WHERE id = ? AND document_type = ?;
        """,
        (invoice_id, DocumentType.INVOICE.value),
    )
    row = cur.fetchone()
    return _row_to_invoice(row) if row is not None else None


def _not_found(invoice_id: int) -> NotFoundError:
    return NotFoundError(f"Invoice with ID {invoice_id} not found")


def _conflict(document_number: str, business_unit: BusinessUnit) -> ConflictError:
    return ConflictError(
        f"Invoice number {document_number} already exists for business unit "
        f"{business_unit.value}"
    )


def invoice_prefix(business_unit: BusinessUnit, year: int, prefix: str) -> str:
    """Number prefix for a unit and year, e.g. ``STS/SD/2025/``."""
    return f"{prefix}/{business_unit.value}/{year}/"


def parse_sequence(document_number: str, expected_prefix: str) -> Optional[int]:
    """
    Numeric suffix of ``document_number`` if it carries ``expected_prefix``.

    Returns None when the prefix differs or the suffix is not an integer.
    """
    if not document_number.startswith(expected_prefix):
        return None
    suffix = document_number[len(expected_prefix) :]
    if not suffix.isdigit():
        return None
    return int(suffix)


def _last_sequence_value(
    conn: sqlite3.Connection,
    business_unit: BusinessUnit,
    year: int,
    number_prefix: str,
) -> Optional[int]:
    """
    Highest sequence value known for the unit and year.

    Combines the numeric maximum of stored invoice suffixes with the
    counter row. Malformed suffixes cast to 0 and fall under the floor.
    """
    cur = conn.execute(
        """
        SELECT MAX(CAST(substr(document_number, ?) AS INTEGER))
          FROM documents
         WHERE document_type = ?
           AND business_unit = ?
           AND substr(document_number, 1, ?) = ?;
        """,
        (
            len(number_prefix) + 1,
            DocumentType.INVOICE.value,
            business_unit.value,
            len(number_prefix),
            number_prefix,
        ),
    )
    scanned = cur.fetchone()[0]

    cur = conn.execute(
        """
        SELECT last_value
          FROM invoice_sequences
         WHERE document_type = ? AND business_unit = ? AND year = ?;
        """,
        (DocumentType.INVOICE.value, business_unit.value, year),
    )
    row = cur.fetchone()
    counter = row[0] if row is not None else None

    known = [v for v in (scanned, counter) if v is not None]
    return max(known) if known else None


def _next_sequence_value(
    conn: sqlite3.Connection,
    business_unit: BusinessUnit,
    year: int,
    prefix: str,
    sequence_start: int,
) -> int:
    last = _last_sequence_value(
        conn, business_unit, year, invoice_prefix(business_unit, year, prefix)
    )
    if last is None or last < sequence_start:
        return sequence_start
    return last + 1


def _advance_counter(
    conn: sqlite3.Connection,
    business_unit: BusinessUnit,
    year: int,
    value: int,
) -> None:
    """Move the counter row forward to ``value`` (never backwards)."""
    conn.execute(
        """
        INSERT INTO invoice_sequences (document_type, business_unit, year, last_value)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (document_type, business_unit, year)
        DO UPDATE SET last_value = MAX(last_value, excluded.last_value);
        """,
        (DocumentType.INVOICE.value, business_unit.value, year, value),
    )


def _advance_counter_for_number(
    conn: sqlite3.Connection,
    business_unit: BusinessUnit,
    document_number: str,
    prefix: str,
) -> None:
    """Advance the counter when a stored number follows the standard layout."""
    parts = document_number.split("/")
    if len(parts) != 4 or not parts[2].isdigit():
        return
    year = int(parts[2])
    value = parse_sequence(document_number, invoice_prefix(business_unit, year, prefix))
    if value is not None:
        _advance_counter(conn, business_unit, year, value)


# ---------------------------------------------------------------------------
# Invoice numbers
# ---------------------------------------------------------------------------


def next_invoice_number(
    cfg: DatabaseConfig,
    business_unit: BusinessUnit | str,
    as_of: date | None = None,
    *,
    prefix: str = DEFAULT_PREFIX,
    sequence_start: int = DEFAULT_SEQUENCE_START,
) -> str:
    """
    Suggest the next invoice number for a business unit.

    The year is taken from ``as_of`` (today by default). The suggestion is
    not reserved; see the module docstring for the retry contract.
    """
    unit = parse_business_unit(business_unit)
    year = (as_of or current_date()).year
    init_database(cfg)

    conn = connect(cfg)
    try:
        value = _next_sequence_value(conn, unit, year, prefix, sequence_start)
    finally:
        conn.close()

    return f"{invoice_prefix(unit, year, prefix)}{value}"


def allocate_invoice_number(
    cfg: DatabaseConfig,
    business_unit: BusinessUnit | str,
    as_of: date | None = None,
    *,
    prefix: str = DEFAULT_PREFIX,
    sequence_start: int = DEFAULT_SEQUENCE_START,
) -> str:
    """
    Reserve the next invoice number for a business unit.

    The counter row is incremented inside a ``BEGIN IMMEDIATE`` transaction,
    so concurrent callers always receive distinct numbers.
    """
    unit = parse_business_unit(business_unit)
    year = (as_of or current_date()).year
    init_database(cfg)

    conn = connect(cfg)
    try:
        conn.execute("BEGIN IMMEDIATE;")
        value = _next_sequence_value(conn, unit, year, prefix, sequence_start)
        _advance_counter(conn, unit, year, value)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    number = f"{invoice_prefix(unit, year, prefix)}{value}"
    logger.info("Allocated invoice number %s", number)
    return number


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def _services_json(services: list[ServiceLine]) -> str:
    # Stored lines must pass the checks applied on read.
    checked = [ServiceLine.from_dict(s.to_dict()) for s in services]
    return json.dumps([s.to_dict() for s in checked], ensure_ascii=False)


def _client_json(client: Client) -> str:
    checked = Client.from_dict(client.to_dict())
    return json.dumps(checked.to_dict(), ensure_ascii=False)


def create_invoice(
    cfg: DatabaseConfig,
    new_invoice: NewInvoice,
    as_of: date | None = None,
    *,
    prefix: str = DEFAULT_PREFIX,
    sequence_start: int = DEFAULT_SEQUENCE_START,
) -> InvoiceDocument:
    """
    Validate and insert a new invoice.

    Raises
    ------
    ConflictError
        If the supplied number already exists for the business unit.
    ValidationError
        If a field is malformed.
    """
    unit = parse_business_unit(new_invoice.business_unit)
    status = parse_document_status(new_invoice.status)
    invoice_date = coerce_date(new_invoice.invoice_date, "invoiceDate")
    due_date = coerce_optional_date(new_invoice.due_date, "dueDate")
    subtotal = coerce_amount(new_invoice.subtotal, "subtotal")
    total_discount = coerce_amount(new_invoice.total_discount, "totalDiscount")
    grand_total = coerce_amount(new_invoice.grand_total, "grandTotal")

    document_number = new_invoice.document_number
    if document_number is not None and not document_number.strip():
        raise ValidationError("Invalid invoiceNumber: a non-empty value is required.")
    client_json = _client_json(new_invoice.client)
    services_json = _services_json(new_invoice.services)

    init_database(cfg)
    conn = connect(cfg)
    try:
        conn.execute("BEGIN IMMEDIATE;")
        if document_number is None:
            year = (as_of or current_date()).year
            value = _next_sequence_value(conn, unit, year, prefix, sequence_start)
            document_number = f"{invoice_prefix(unit, year, prefix)}{value}"

        now = now_utc_iso()
        try:
            cur = conn.execute(
                """
                INSERT INTO documents (
                    document_type, document_number, business_unit,
                    invoice_date, due_date, place_of_supply, currency,
                    client, services, po_ref, payment_terms, notes,
                    subtotal_cents, total_discount_cents, grand_total_cents,
                    status, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL);
                """,
                (
                    DocumentType.INVOICE.value,
                    document_number,
                    unit.value,
                    invoice_date.isoformat(),
                    due_date.isoformat() if due_date is not None else None,
                    new_invoice.place_of_supply,
                    new_invoice.currency or DEFAULT_CURRENCY,
                    client_json,
                    services_json,
                    new_invoice.po_ref,
                    new_invoice.payment_terms,
                    new_invoice.notes,
                    to_cents(subtotal),
                    to_cents(total_discount),
                    to_cents(grand_total),
                    status.value,
                    now,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise _conflict(document_number, unit) from exc

        invoice_id = cur.lastrowid
        _advance_counter_for_number(conn, unit, document_number, prefix)
        conn.commit()
        record = _fetch_invoice(conn, invoice_id)
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    if record is None:
        msg = f"Invoice #{invoice_id} was just inserted but could not be reloaded."
        raise RuntimeError(msg)

    logger.info("Created invoice %s (#%s)", record.document_number, record.id)
    return record


def list_invoices(
    cfg: DatabaseConfig,
    filters: InvoiceFilter | None = None,
) -> list[InvoiceDocument]:
    """List invoices matching ``filters``, most recent invoice date first."""
    init_database(cfg)

    clauses = ["document_type = ?"]
    params: list[object] = [DocumentType.INVOICE.value]
    if filters is not None:
        if filters.business_unit is not None:
            clauses.append("business_unit = ?")
            params.append(parse_business_unit(filters.business_unit).value)
        if filters.status is not None:
            clauses.append("status = ?")
            params.append(parse_document_status(filters.status).value)
        if filters.start is not None:
            clauses.append("invoice_date >= ?")
            params.append(filters.start.isoformat())
        if filters.end is not None:
            clauses.append("invoice_date <= ?")
            params.append(filters.end.isoformat())
        if filters.search:
            needle = f"%{filters.search.lower()}%"
            clauses.append(
                "(LOWER(document_number) LIKE ?"
                " OR LOWER(COALESCE(json_extract(client, '$.name'), '')) LIKE ?"
                " OR LOWER(COALESCE(json_extract(client, '$.company'), '')) LIKE ?)"
            )
            params.extend([needle, needle, needle])

    conn = connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {_DOCUMENT_COLUMNS}
              FROM documents
             WHERE {build_where(clauses)}
             ORDER BY invoice_date DESC, id DESC;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_invoice(row) for row in rows]


def get_invoice(cfg: DatabaseConfig, invoice_id: int) -> InvoiceDocument:
    """
    Load a single invoice.

    Raises
    ------
    NotFoundError
        If no invoice has this id.
    """
    init_database(cfg)
    conn = connect(cfg)
    try:
        record = _fetch_invoice(conn, invoice_id)
    finally:
        conn.close()

    if record is None:
        raise _not_found(invoice_id)
    return record


def update_invoice(
    cfg: DatabaseConfig,
    invoice_id: int,
    update: InvoiceUpdate,
    *,
    prefix: str = DEFAULT_PREFIX,
) -> InvoiceDocument:
    """
    Apply a partial update to an invoice.

    Raises
    ------
    NotFoundError
        If no invoice has this id.
    ConflictError
        If the new number (or unit) collides with another invoice.
    ValidationError
        If a value is malformed or no field is provided.
    """
    init_database(cfg)

    fields: list[str] = []
    params: list[object] = []

    if update.document_number is not None:
        if not update.document_number.strip():
            raise ValidationError(
                "Invalid invoiceNumber: a non-empty value is required."
            )
        fields.append("document_number = ?")
        params.append(update.document_number)
    if update.business_unit is not None:
        fields.append("business_unit = ?")
        params.append(parse_business_unit(update.business_unit).value)
    if update.invoice_date is not None:
        fields.append("invoice_date = ?")
        params.append(coerce_date(update.invoice_date, "invoiceDate").isoformat())
    if update.due_date is not None:
        fields.append("due_date = ?")
        params.append(coerce_date(update.due_date, "dueDate").isoformat())
    if update.client is not None:
        fields.append("client = ?")
        params.append(_client_json(update.client))
    if update.services is not None:
        fields.append("services = ?")
        params.append(_services_json(update.services))
    for name, value in (
        ("subtotal", update.subtotal),
        ("total_discount", update.total_discount),
        ("grand_total", update.grand_total),
    ):
        if value is not None:
            fields.append(f"{name}_cents = ?")
            params.append(to_cents(coerce_amount(value, name)))
    if update.status is not None:
        fields.append("status = ?")
        params.append(parse_document_status(update.status).value)
    for name, value in (
        ("currency", update.currency),
        ("place_of_supply", update.place_of_supply),
        ("po_ref", update.po_ref),
        ("payment_terms", update.payment_terms),
        ("notes", update.notes),
    ):
        if value is not None:
            fields.append(f"{name} = ?")
            params.append(value)

    if not fields:
        raise ValidationError("No fields to update in InvoiceUpdate.")

    fields.append("updated_at = ?")
    params.append(now_utc_iso())
    params.append(invoice_id)

    conn = connect(cfg)
    try:
        conn.execute("BEGIN IMMEDIATE;")
        existing = _fetch_invoice(conn, invoice_id)
        if existing is None:
            raise _not_found(invoice_id)

        unit = (
            parse_business_unit(update.business_unit)
            if update.business_unit is not None
            else existing.business_unit
        )
        number = update.document_number or existing.document_number
        try:
            conn.execute(
                f"""
                UPDATE documents
                   SET {", ".join(fields)}
                 WHERE id = ?;
                """,
                params,
            )
        except sqlite3.IntegrityError as exc:
            raise _conflict(number, unit) from exc

        _advance_counter_for_number(conn, unit, number, prefix)
        conn.commit()
        record = _fetch_invoice(conn, invoice_id)
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    if record is None:
        msg = f"Invoice #{invoice_id} was updated but could not be reloaded."
        raise RuntimeError(msg)

    logger.info("Updated invoice %s (#%s)", record.document_number, invoice_id)
    return record


def delete_invoice(
    cfg: DatabaseConfig,
    invoice_id: int,
    *,
    prefix: str = DEFAULT_PREFIX,
) -> InvoiceDocument:
    """
    Delete an invoice and return it as it was before deletion.

    The sequence counter is not rolled back: deleted numbers are not reused.

    Raises
    ------
    NotFoundError
        If no invoice has this id.
    """
    init_database(cfg)
    conn = connect(cfg)
    try:
        conn.execute("BEGIN IMMEDIATE;")
        record = _fetch_invoice(conn, invoice_id)
        if record is None:
            raise _not_found(invoice_id)
        _advance_counter_for_number(
            conn, record.business_unit, record.document_number, prefix
        )
        conn.execute("DELETE FROM documents WHERE id = ?;", (invoice_id,))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    logger.info("Deleted invoice %s (#%s)", record.document_number, invoice_id)
    return record


def invoice_stats(cfg: DatabaseConfig, recent_limit: int = 10) -> InvoiceStats:
    """
    Aggregate invoice counts and amounts.

    Returns
    -------
    InvoiceStats
        Totals, breakdowns by document type, business unit and status, and
        the ``recent_limit`` most recently created invoices.
    """
    init_database(cfg)
    invoice_type = DocumentType.INVOICE.value

    conn = connect(cfg)
    try:
        total_documents, total_cents = conn.execute(
            """
            SELECT COUNT(*), COALESCE(SUM(grand_total_cents), 0)
              FROM documents
             WHERE document_type = ?;
            """,
            (invoice_type,),
        ).fetchone()

        by_type = conn.execute(
            """
            SELECT document_type, COUNT(*), COALESCE(SUM(grand_total_cents), 0)
              FROM documents
             WHERE document_type = ?
             GROUP BY document_type
             ORDER BY document_type;
            """,
            (invoice_type,),
        ).fetchall()

        by_unit = conn.execute(
            """
            SELECT business_unit, COUNT(*), COALESCE(SUM(grand_total_cents), 0)
              FROM documents
             WHERE document_type = ?
             GROUP BY business_unit
             ORDER BY business_unit;
            """,
            (invoice_type,),
        ).fetchall()

        by_status = conn.execute(
            """
            SELECT status, COUNT(*)
              FROM documents
             WHERE document_type = ?
             GROUP BY status
             ORDER BY status;
            """,
            (invoice_type,),
        ).fetchall()

        recent_rows = conn.execute(
            f"""
            SELECT {_DOCUMENT_COLUMNS}
              FROM documents
             WHERE document_type = ?
             ORDER BY created_at DESC, id DESC
             LIMIT ?;
            """,
            (invoice_type, recent_limit),
        ).fetchall()
    finally:
        conn.close()

    return InvoiceStats(
        total_documents=total_documents,
        total_amount=from_cents(total_cents),
        by_document_type=[
            GroupStats(key=key, count=count, total_amount=from_cents(cents))
            for key, count, cents in by_type
        ],
        by_business_unit=[
            GroupStats(key=key, count=count, total_amount=from_cents(cents))
            for key, count, cents in by_unit
        ],
        by_status=[GroupStats(key=key, count=count) for key, count in by_status],
        recent_documents=[_row_to_invoice(row) for row in recent_rows],
    )

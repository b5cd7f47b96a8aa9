# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for STS Ledger.

This module owns the SQLite schema and the low-level helpers shared by the
record stores (`incomes.py`, `expenses.py`, `invoices.py`). It is
responsible for:

- Opening connections with foreign keys enabled.
- Creating and migrating the schema.
- Converting between Python values (float amounts, `date` objects) and
  their stored representation (integer cents, ISO text).
- Validating raw input values (amounts, dates) before they reach a table.

------------------------------------------------------------------------------
Schema Overview (as of version 0.2.0)
------------------------------------------------------------------------------

1) incomes
   Single-sided income entries with the optional dues extension.

   Columns:
   - id                    INTEGER PRIMARY KEY AUTOINCREMENT
   - date                  TEXT    NOT NULL  -- ISO date "YYYY-MM-DD"
   - category              TEXT    NOT NULL  -- IncomeCategory value
   - source                TEXT    NOT NULL
   - description           TEXT
   - amount_cents          INTEGER NOT NULL  -- received total
   - total_amount_cents    INTEGER           -- NULL for plain entries
   - advance_amount_cents  INTEGER
   - due_amount_cents      INTEGER NOT NULL DEFAULT 0
   - due_date              TEXT
   - is_due_paid           INTEGER NOT NULL DEFAULT 1
   - due_paid_date         TEXT
   - created_at            TEXT    NOT NULL  -- UTC timestamp
   - updated_at            TEXT

2) expenses
   Single-sided expense entries.

   Columns:
   - id, date, category, purpose, description, amount_cents,
     created_at, updated_at

3) documents
   Polymorphic business documents. Only "INVOICE" is produced today.

   Columns:
   - id                    INTEGER PRIMARY KEY AUTOINCREMENT
   - document_type         TEXT    NOT NULL
   - document_number       TEXT    NOT NULL  -- "STS/{unit}/{year}/{seq}"
   - business_unit         TEXT    NOT NULL
   - invoice_date          TEXT    NOT NULL
   - due_date              TEXT
   - place_of_supply       TEXT
   - currency              TEXT    NOT NULL
   - client                TEXT    NOT NULL  -- JSON object
   - services              TEXT    NOT NULL  -- JSON array of line items
   - po_ref, payment_terms, notes  TEXT
   - subtotal_cents, total_discount_cents, grand_total_cents  INTEGER
   - status                TEXT    NOT NULL
   - created_at, updated_at

   UNIQUE (document_type, business_unit, document_number)

4) invoice_sequences
   One counter row per (document_type, business_unit, year), used for
   atomic number allocation.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- Amounts are stored as integer cents; the API exposes floats.
- All timestamps are stored as ISO-8601 text (UTC).
- Writes spanning several statements run inside ``BEGIN IMMEDIATE`` so that
  concurrent writers serialize on the database lock.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path

from .errors import ValidationError

logger = logging.getLogger(__name__)

# Dues consistency is checked with this tolerance on float amounts.
MONEY_TOLERANCE = 0.01

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for STS Ledger.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def to_cents(amount: float) -> int:
    """Convert a monetary amount to integer cents."""
    return int(round(amount * 100))


def from_cents(cents: int | None) -> float | None:
    """Convert integer cents back to a float amount (None stays None)."""
    if cents is None:
        return None
    return float(cents) / 100.0


def amounts_match(left: float, right: float) -> bool:
    """True if two amounts are equal within MONEY_TOLERANCE."""
    # The epsilon absorbs binary rounding of values such as 0.01 itself.
    return abs(left - right) <= MONEY_TOLERANCE + 1e-9


def coerce_amount(value: object, field: str = "amount") -> float:
    """
    Validate a raw amount and return it as a non-negative float.

    Raises
    ------
    ValidationError
        If the value is not numeric, not finite or negative.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}: {value!r}. Expected a number.")
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Invalid {field}: {value!r}. Expected a number."
        ) from exc

    if not math.isfinite(amount):
        raise ValidationError(f"Invalid {field}: {value!r}. Expected a finite number.")
    if amount < 0:
        raise ValidationError(f"Invalid {field}: {amount}. Amounts cannot be negative.")
    return amount


def coerce_optional_amount(value: object, field: str) -> float | None:
    if value is None:
        return None
    return coerce_amount(value, field)


def coerce_date(value: object, field: str = "date") -> date:
    """
    Validate a date-like value (date, datetime or ISO string).

    Datetimes and ISO timestamps are truncated to their calendar date.

    Raises
    ------
    ValidationError
        If the value cannot be interpreted as a calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = str(value).strip() if value is not None else ""
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise ValidationError(
            f"Invalid {field}: {value!r}. Expected YYYY-MM-DD format."
        ) from exc


def coerce_optional_date(value: object, field: str) -> date | None:
    if value is None or value == "":
        return None
    return coerce_date(value, field)


def parse_stored_date(value: str | None) -> date | None:
    """Parse an ISO date read from the database (None stays None)."""
    if value is None:
        return None
    return date.fromisoformat(value[:10])


def parse_stored_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


# ---------------------------------------------------------------------------
# Connection & schema
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path, timeout=30.0)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _get_table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    """Return the set of column names for the given table (empty if missing)."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    return {row[1] for row in cur.fetchall()}


def _migrate_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Bring older databases up to the current layout.

    Income tables created before the dues extension only have the plain
    columns. The dues columns are added in place and existing rows are
    backfilled as fully received entries (advance = amount, no due), which
    is exactly how plain entries are created today.

    This function is idempotent and safe to call multiple times.
    """
    income_columns = _get_table_columns(conn, "incomes")
    if not income_columns:
        return

    dues_columns = {
        "total_amount_cents": "INTEGER",
        "advance_amount_cents": "INTEGER",
        "due_amount_cents": "INTEGER NOT NULL DEFAULT 0",
        "due_date": "TEXT",
        "is_due_paid": "INTEGER NOT NULL DEFAULT 1",
        "due_paid_date": "TEXT",
    }
    missing = [col for col in dues_columns if col not in income_columns]
    if not missing:
        return

    for column in missing:
        conn.execute(f"ALTER TABLE incomes ADD COLUMN {column} {dues_columns[column]};")

    if "advance_amount_cents" in missing:
        conn.execute(
            """
            UPDATE incomes
               SET advance_amount_cents = amount_cents
             WHERE advance_amount_cents IS NULL;
            """
        )
    logger.info("Migrated incomes table: added %s", ", ".join(missing))


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet and migrate the schema.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS incomes (
            id                    INTEGER PRIMARY KEY AUTOINCREMENT,
            date                  TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            category              TEXT    NOT NULL,
            source                TEXT    NOT NULL,
            description           TEXT,
            amount_cents          INTEGER NOT NULL,
            total_amount_cents    INTEGER,
            advance_amount_cents  INTEGER,
            due_amount_cents      INTEGER NOT NULL DEFAULT 0,
            due_date              TEXT,
            is_due_paid           INTEGER NOT NULL DEFAULT 1,
            due_paid_date         TEXT,
            created_at            TEXT    NOT NULL,
            updated_at            TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS expenses (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            date          TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            category      TEXT    NOT NULL,
            purpose       TEXT    NOT NULL,
            description   TEXT,
            amount_cents  INTEGER NOT NULL,
            created_at    TEXT    NOT NULL,
            updated_at    TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
            id                    INTEGER PRIMARY KEY AUTOINCREMENT,
            document_type         TEXT    NOT NULL,
            document_number       TEXT    NOT NULL,
            business_unit         TEXT    NOT NULL,
            invoice_date          TEXT    NOT NULL,
            due_date              TEXT,
            place_of_supply       TEXT,
            currency              TEXT    NOT NULL,
            client                TEXT    NOT NULL,  -- JSON object
            services              TEXT    NOT NULL,  -- JSON array
            po_ref                TEXT,
            payment_terms         TEXT,
            notes                 TEXT,
            subtotal_cents        INTEGER NOT NULL DEFAULT 0,
            total_discount_cents  INTEGER NOT NULL DEFAULT 0,
            grand_total_cents     INTEGER NOT NULL DEFAULT 0,
            status                TEXT    NOT NULL DEFAULT 'DRAFT',
            created_at            TEXT    NOT NULL,
            updated_at            TEXT,

            UNIQUE (document_type, business_unit, document_number)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS invoice_sequences (
            document_type  TEXT    NOT NULL,
            business_unit  TEXT    NOT NULL,
            year           INTEGER NOT NULL,
            last_value     INTEGER NOT NULL,

            PRIMARY KEY (document_type, business_unit, year)
        );
        """
    )

    _migrate_schema_if_needed(conn)

    # Indexes
    conn.execute("CREATE INDEX IF NOT EXISTS idx_incomes_date ON incomes(date);")
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_incomes_dues
            ON incomes(is_due_paid, due_date);
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date);")
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_documents_invoice_date
            ON documents(invoice_date);
        """
    )

    conn.commit()


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing, and migrates older
      layouts.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def build_where(clauses: list[str]) -> str:
    """Join WHERE clauses with AND ("1 = 1" when there are none)."""
    return " AND ".join(clauses) if clauses else "1 = 1"

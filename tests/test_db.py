import math
import sqlite3
from datetime import date, datetime

import pytest

from sts_ledger.db import (
    DatabaseConfig,
    amounts_match,
    build_where,
    coerce_amount,
    coerce_date,
    connect,
    from_cents,
    init_database,
    to_cents,
)
from sts_ledger.errors import ValidationError
from sts_ledger.incomes import get_income


def _tables(cfg: DatabaseConfig) -> set[str]:
    conn = connect(cfg)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table';")
        return {row[0] for row in rows.fetchall()}
    finally:
        conn.close()


def test_init_database_creates_file_and_schema(db_cfg):
    """init_database should create the SQLite file and every table."""
    assert not db_cfg.path.exists()
    init_database(db_cfg)
    assert db_cfg.path.exists()

    assert {"incomes", "expenses", "documents", "invoice_sequences"} <= _tables(db_cfg)


def test_init_database_is_idempotent(db_cfg):
    init_database(db_cfg)
    init_database(db_cfg)
    assert "incomes" in _tables(db_cfg)


def test_init_database_creates_parent_directories(tmp_path):
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "nested" / "db" / "l.sqlite")
    init_database(cfg)
    assert cfg.path.exists()


def test_unsupported_engine_is_rejected(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.sqlite")
    with pytest.raises(ValueError, match="Unsupported database engine"):
        init_database(cfg)


def test_legacy_income_table_is_migrated(db_cfg):
    """Income tables without dues columns are upgraded in place."""
    conn = sqlite3.connect(db_cfg.path)
    conn.execute(
        """
        CREATE TABLE incomes (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            date          TEXT    NOT NULL,
            category      TEXT    NOT NULL,
            source        TEXT    NOT NULL,
            description   TEXT,
            amount_cents  INTEGER NOT NULL,
            created_at    TEXT    NOT NULL,
            updated_at    TEXT
        );
        """
    )
    conn.execute(
        """
        INSERT INTO incomes (date, category, source, amount_cents, created_at)
        VALUES ('2025-01-10', 'Website', 'Acme', 250000, '2025-01-10T00:00:00+00:00');
        """
    )
    conn.commit()
    conn.close()

    init_database(db_cfg)

    record = get_income(db_cfg, 1)
    assert record.amount == 2500.0
    assert record.advance_amount == 2500.0
    assert record.due_amount == 0.0
    assert record.is_due_paid is True
    assert record.total_amount is None


def test_cents_round_trip_is_exact_for_two_decimals():
    assert to_cents(12.34) == 1234
    assert to_cents(0.1 + 0.2) == 30
    assert from_cents(1234) == 12.34
    assert from_cents(None) is None


def test_amounts_match_uses_one_cent_tolerance():
    assert amounts_match(99.99, 100.0)
    assert amounts_match(100.0, 100.0)
    assert not amounts_match(99.98, 100.0)


@pytest.mark.parametrize("value", ["abc", None, -1, True, math.nan, math.inf])
def test_coerce_amount_rejects_malformed_values(value):
    with pytest.raises(ValidationError):
        coerce_amount(value, "amount")


def test_coerce_amount_accepts_numeric_strings():
    assert coerce_amount("1500.50") == 1500.5
    assert coerce_amount(0) == 0.0


def test_coerce_date_accepts_dates_datetimes_and_iso_strings():
    assert coerce_date(date(2025, 3, 1)) == date(2025, 3, 1)
    assert coerce_date(datetime(2025, 3, 1, 18, 30)) == date(2025, 3, 1)
    assert coerce_date("2025-03-01") == date(2025, 3, 1)
    assert coerce_date("2025-03-01T23:59:59Z") == date(2025, 3, 1)


def test_coerce_date_rejects_garbage():
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        coerce_date("01/03/2025", "dueDate")


def test_build_where_without_clauses_matches_everything():
    assert build_where([]) == "1 = 1"
    assert build_where(["a = ?", "b = ?"]) == "a = ? AND b = ?"

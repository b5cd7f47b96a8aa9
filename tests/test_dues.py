from datetime import date

import pytest

from sts_ledger.categories import IncomeCategory
from sts_ledger.dues import (
    DuesState,
    days_overdue,
    dues_state,
    enrich_outstanding_dues,
    is_frozen,
    resolve_dues_terms,
)
from sts_ledger.errors import InvalidStateError
from sts_ledger.incomes import IncomeRecord


def _record(
    record_id=1,
    amount=5000.0,
    total=10000.0,
    advance=5000.0,
    due=5000.0,
    due_date=date(2025, 3, 1),
    paid=False,
):
    return IncomeRecord(
        id=record_id,
        date=date(2025, 1, 20),
        category=IncomeCategory.WEBSITE,
        source="Acme",
        description=None,
        amount=amount,
        total_amount=total,
        advance_amount=advance,
        due_amount=due,
        due_date=due_date,
        is_due_paid=paid,
        due_paid_date=None,
        created_at=None,
        updated_at=None,
    )


def test_resolve_dues_terms_derives_missing_member():
    assert resolve_dues_terms(10000.0, None, None) == (10000.0, 10000.0, 0.0)
    assert resolve_dues_terms(10000.0, 4000.0, None) == (10000.0, 4000.0, 6000.0)
    assert resolve_dues_terms(10000.0, None, 2500.0) == (10000.0, 7500.0, 2500.0)


def test_resolve_dues_terms_rejects_amounts_above_total():
    with pytest.raises(InvalidStateError, match="cannot exceed"):
        resolve_dues_terms(1000.0, 1500.0, None)


def test_resolve_dues_terms_rejects_mismatched_triple():
    with pytest.raises(InvalidStateError, match="must equal"):
        resolve_dues_terms(10000.0, 5000.0, 4000.0)


def test_dues_state_classification():
    assert dues_state(_record()) is DuesState.OUTSTANDING
    assert dues_state(_record(due=0.0, paid=True, amount=10000.0)) is DuesState.SETTLED
    plain = _record(total=None, advance=1000.0, due=0.0, paid=True, amount=1000.0)
    assert dues_state(plain) is DuesState.NO_DUES


def test_is_frozen_only_when_fully_received():
    assert not is_frozen(_record())
    assert is_frozen(_record(due=0.0, paid=True))


def test_days_overdue_counts_calendar_days():
    today = date(2025, 3, 11)
    assert days_overdue(date(2025, 3, 1), today) == 10
    assert days_overdue(date(2025, 3, 11), today) is None
    assert days_overdue(date(2025, 4, 1), today) is None
    assert days_overdue(None, today) is None


def test_enrich_outstanding_dues_puts_overdue_first():
    records = [
        _record(record_id=1, due_date=None),
        _record(record_id=2, due_date=date(2025, 4, 1)),
        _record(record_id=3, due_date=date(2025, 2, 1)),
        _record(record_id=4, due_date=date(2025, 3, 1)),
    ]

    enriched = enrich_outstanding_dues(records, today=date(2025, 3, 15))

    assert [d.record.id for d in enriched] == [3, 4, 2, 1]
    assert [d.is_overdue for d in enriched] == [True, True, False, False]
    assert enriched[0].days_overdue == 42
    assert enriched[3].days_overdue is None

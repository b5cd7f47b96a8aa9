from datetime import date

import pytest

from sts_ledger.categories import ExpenseCategory
from sts_ledger.errors import NotFoundError, ValidationError
from sts_ledger.expenses import (
    ExpenseFilter,
    ExpenseUpdate,
    NewExpense,
    create_expense,
    delete_expense,
    get_expense,
    list_expenses,
    load_expense_frame,
    update_expense,
)


def _expense(amount=2000.0, category="Rent", purpose="Office rent", day="2025-03-01"):
    return NewExpense(amount=amount, category=category, purpose=purpose, date=day)


def test_create_and_get_expense(db_cfg):
    created = create_expense(db_cfg, _expense(amount=1999.99))

    loaded = get_expense(db_cfg, created.id)
    assert loaded == created
    assert loaded.amount == 1999.99
    assert loaded.category is ExpenseCategory.RENT
    assert loaded.date == date(2025, 3, 1)


@pytest.mark.parametrize(
    "new_expense",
    [
        _expense(amount="lots"),
        _expense(amount=-1),
        _expense(category="Snacks"),
        _expense(purpose=""),
        _expense(day="2025-13-01"),
    ],
)
def test_create_expense_rejects_malformed_input(db_cfg, new_expense):
    with pytest.raises(ValidationError):
        create_expense(db_cfg, new_expense)
    assert list_expenses(db_cfg) == []


def test_list_expenses_filters(db_cfg):
    for category, purpose, day in (
        ("Rent", "Office", "2025-01-01"),
        ("Software", "IDE", "2025-02-01"),
    ):
        create_expense(db_cfg, _expense(category=category, purpose=purpose, day=day))
    create_expense(
        db_cfg, _expense(category="Travel", purpose="Client office", day="2025-03-01")
    )

    purposes = [e.purpose for e in list_expenses(db_cfg)]
    assert purposes == ["Client office", "IDE", "Office"]

    software = list_expenses(db_cfg, ExpenseFilter(category="Software"))
    assert [e.purpose for e in software] == ["IDE"]

    offices = list_expenses(db_cfg, ExpenseFilter(purpose_contains="OFFICE"))
    assert len(offices) == 2

    window = list_expenses(
        db_cfg, ExpenseFilter(start=date(2025, 1, 15), end=date(2025, 2, 28))
    )
    assert [e.purpose for e in window] == ["IDE"]


def test_update_expense(db_cfg):
    created = create_expense(db_cfg, _expense())
    updated = update_expense(
        db_cfg,
        created.id,
        ExpenseUpdate(amount=2500, category=ExpenseCategory.UTILITIES),
    )
    assert updated.amount == 2500.0
    assert updated.category is ExpenseCategory.UTILITIES
    assert updated.purpose == "Office rent"
    assert updated.updated_at is not None


def test_update_expense_errors(db_cfg):
    created = create_expense(db_cfg, _expense())
    with pytest.raises(ValidationError):
        update_expense(db_cfg, created.id, ExpenseUpdate())
    with pytest.raises(NotFoundError):
        update_expense(db_cfg, 999, ExpenseUpdate(amount=1))


def test_delete_expense(db_cfg):
    created = create_expense(db_cfg, _expense())
    assert delete_expense(db_cfg, created.id) == "Expense entry has been deleted"
    with pytest.raises(NotFoundError):
        delete_expense(db_cfg, created.id)


def test_load_expense_frame(db_cfg):
    create_expense(db_cfg, _expense(amount=100, day="2025-01-01"))
    create_expense(db_cfg, _expense(amount=250.5, category="Misc", day="2025-02-01"))

    df = load_expense_frame(db_cfg)

    assert list(df.columns) == ["id", "date", "category", "amount"]
    assert df["amount"].sum() == 350.5
    assert str(df["date"].dtype).startswith("datetime64")


def test_load_expense_frame_on_empty_ledger(db_cfg):
    df = load_expense_frame(db_cfg)
    assert df.empty
    assert "amount" in df.columns

import sqlite3
from dataclasses import replace
from datetime import date

import pytest

from sts_ledger.categories import ExpenseCategory, IncomeCategory
from sts_ledger.config import InvoiceConfig
from sts_ledger.expenses import NewExpense, create_expense
from sts_ledger.incomes import IncomeFilter, NewIncome, create_income, mark_due_as_paid
from sts_ledger.invoices import Client, NewInvoice
from sts_ledger.ledger_service import (
    balance_sheet,
    create_invoice_document,
    expense_summary,
    financial_analytics,
    financial_summary,
    income_summary,
    invoice_statistics,
    outstanding_dues_report,
    reserve_invoice_number,
    suggest_invoice_number,
)

AS_OF = date(2025, 3, 15)


def _seed(db_cfg):
    for amount, category, source, day in (
        (3000, "Website", "A", "2024-11-05"),
        (5000, "SMM", "B", "2025-01-10"),
        (7000, "Website", "C", "2025-03-02"),
    ):
        create_income(
            db_cfg,
            NewIncome(amount=amount, category=category, source=source, date=day),
        )
    for amount, category, purpose, day in (
        (2000, "Rent", "Rent", "2025-02-01"),
        (1000, "Software", "IDE", "2025-03-03"),
    ):
        create_expense(
            db_cfg,
            NewExpense(amount=amount, category=category, purpose=purpose, date=day),
        )


def test_income_summary_periods_and_categories(app_config):
    _seed(app_config.database)

    summary = income_summary(app_config, AS_OF)

    assert summary.total == 15000.0
    assert summary.monthly == 7000.0
    assert summary.quarterly == 12000.0
    assert summary.yearly == 12000.0
    assert summary.by_category["Website"] == 10000.0
    assert summary.by_category["SMM"] == 5000.0
    assert set(summary.by_category) == {c.value for c in IncomeCategory}
    assert summary.by_category["Birthday Wish Card"] == 0.0


def test_income_summary_respects_filters(app_config):
    _seed(app_config.database)

    summary = income_summary(
        app_config, AS_OF, IncomeFilter(category=IncomeCategory.WEBSITE)
    )

    assert summary.total == 10000.0
    assert summary.by_category["SMM"] == 0.0


def test_expense_summary_is_seeded_with_every_category(app_config):
    summary = expense_summary(app_config, AS_OF)

    assert summary.total == 0.0
    assert summary.by_category == {c.value: 0.0 for c in ExpenseCategory}


def test_financial_summary_and_balance_sheet(app_config):
    _seed(app_config.database)

    summary = financial_summary(app_config, AS_OF)
    assert summary.total_income == 15000.0
    assert summary.total_expenses == 3000.0
    assert summary.total_balance == 12000.0
    assert summary.expense_summary.quarterly == 3000.0

    sheet = balance_sheet(app_config, AS_OF)
    assert (sheet.assets, sheet.liabilities, sheet.equity) == (15000.0, 3000.0, 12000.0)


def test_settled_dues_count_in_totals(app_config):
    db_cfg = app_config.database
    record = create_income(
        db_cfg,
        NewIncome(
            amount=5000,
            category="Wedding Video Invitation",
            source="Sharma family",
            date="2025-01-20",
            total_amount=10000,
            advance_amount=5000,
            due_amount=5000,
            due_date="2025-03-01",
        ),
    )
    assert income_summary(app_config, AS_OF).total == 5000.0

    mark_due_as_paid(db_cfg, record.id, "2025-02-15")

    summary = income_summary(app_config, AS_OF)
    assert summary.total == 10000.0
    assert summary.by_category["Wedding Video Invitation"] == 10000.0


def test_corrupt_dates_count_in_totals_but_no_period(app_config):
    db_cfg = app_config.database
    create_income(
        db_cfg, NewIncome(amount=100, category="Ads", source="A", date="2025-03-01")
    )
    conn = sqlite3.connect(db_cfg.path)
    conn.execute(
        """
        INSERT INTO incomes (date, category, source, amount_cents, created_at)
        VALUES ('garbage', 'Ads', 'B', 900, '2025-01-01T00:00:00+00:00');
        """
    )
    conn.commit()
    conn.close()

    summary = income_summary(app_config, AS_OF)
    assert summary.total == 1000.0
    assert summary.by_category["Ads"] == 1000.0
    assert summary.monthly == 100.0

    result = financial_analytics(app_config, AS_OF)
    assert result.analytics.monthly["income"].sum() == 100.0


def test_financial_analytics_projects_with_outstanding_dues(app_config):
    db_cfg = app_config.database
    _seed(db_cfg)
    create_income(
        db_cfg,
        NewIncome(
            amount=0,
            category="Consultation",
            source="D",
            date="2025-03-05",
            total_amount=1500,
            advance_amount=0,
            due_date="2025-04-10",
        ),
    )

    result = financial_analytics(app_config, AS_OF)

    assert len(result.analytics.monthly) == 12
    assert result.next_quarter_projection == result.projections.next_quarter.balance
    assert result.next_year_projection == result.projections.next_year.balance
    # Active months Jan-Mar: incomes 5000, 0, 7000 and expenses 0, 2000, 1000.
    assert result.projections.next_quarter.income == pytest.approx(12000.0 + 1500.0)
    assert result.projections.next_quarter.expenses == pytest.approx(3000.0)
    assert result.projections.next_quarter.balance == pytest.approx(9000.0 + 1500.0)


def test_outstanding_dues_report_flags_overdue(app_config):
    db_cfg = app_config.database
    for due_date in ("2025-04-01", "2025-03-01"):
        create_income(
            db_cfg,
            NewIncome(
                amount=100,
                category="SMM",
                source=due_date,
                date="2025-01-01",
                total_amount=300,
                advance_amount=100,
                due_date=due_date,
            ),
        )

    report = outstanding_dues_report(app_config, today=date(2025, 3, 11))

    assert [d.record.source for d in report] == ["2025-03-01", "2025-04-01"]
    assert report[0].is_overdue and report[0].days_overdue == 10
    assert not report[1].is_overdue and report[1].days_overdue is None


def test_invoice_numbering_uses_configured_prefix(app_config):
    config = replace(
        app_config, invoices=InvoiceConfig(prefix="ACME", sequence_start=100)
    )

    assert suggest_invoice_number(config, "BX", AS_OF) == "ACME/BX/2025/100"
    assert reserve_invoice_number(config, "BX", AS_OF) == "ACME/BX/2025/100"

    document = create_invoice_document(
        config,
        NewInvoice(
            business_unit="BX",
            invoice_date="2025-03-15",
            client=Client(name="Acme"),
            services=[],
            subtotal=0,
            total_discount=0,
            grand_total=0,
        ),
        as_of=AS_OF,
    )
    assert document.document_number == "ACME/BX/2025/101"
    assert suggest_invoice_number(config, "BX", AS_OF) == "ACME/BX/2025/102"


def test_invoice_statistics_honours_recent_limit(app_config):
    config = replace(app_config, invoices=InvoiceConfig(recent_documents_limit=1))
    for _ in range(3):
        create_invoice_document(
            config,
            NewInvoice(
                business_unit="SD",
                invoice_date="2025-03-15",
                client=Client(name="Acme"),
                services=[],
                subtotal=100,
                total_discount=0,
                grand_total=100,
            ),
            as_of=AS_OF,
        )

    stats = invoice_statistics(config)

    assert stats.total_documents == 3
    assert stats.total_amount == 300.0
    assert len(stats.recent_documents) == 1

# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for ledger reporting and invoice orchestration.

This module sits between:
- the record stores (`incomes.py`, `expenses.py`, `invoices.py`), and
- user-facing layers such as the CLI or an HTTP transport.

Responsibilities
----------------
1) Summaries
   - Per-ledger summary: all-time total, totals for the current month,
     quarter and year of ``as_of``, and totals per category (every
     category present, zero when unused).
   - Financial summary combining both ledgers.
   - Balance sheet: assets (income), liabilities (expenses), equity.

2) Analytics & projections
   - Load both ledgers, run the analytics aggregator and the projection
     engine with the windows configured in [analytics].

3) Dues reporting
   - Outstanding dues enriched with overdue information.

4) Invoices
   - Thin wrappers around `invoices.py` that apply the [invoices]
     configuration (number prefix, sequence start, recent documents).

Design notes
------------
- Every function takes the AppConfig and an explicit ``as_of`` / ``today``
  date where the result depends on the calendar; nothing reads the clock
  here.
- This module orchestrates; the dues rules, the aggregation and the
  projection arithmetic live in their own modules.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

import pandas as pd

from .analytics import RevenueAnalytics, months_with_data, revenue_analytics
from .categories import BusinessUnit, ExpenseCategory, IncomeCategory, seed_totals
from .config import AppConfig
from .db import DatabaseConfig
from .dues import OutstandingDue, enrich_outstanding_dues
from .expenses import ExpenseFilter, load_expense_frame
from .incomes import IncomeFilter, get_outstanding_dues, load_income_frame
from .invoices import (
    InvoiceDocument,
    InvoiceStats,
    InvoiceUpdate,
    NewInvoice,
    allocate_invoice_number,
    create_invoice,
    delete_invoice,
    invoice_stats,
    next_invoice_number,
    update_invoice,
)
from .periods import (
    Period,
    filter_frame_by_period,
    period_month,
    period_quarter,
    period_year,
)
from .projections import Projections, project


@dataclass(frozen=True)
class LedgerSummary:
    """
    Summary of one ledger (income or expenses).

    ``monthly``, ``quarterly`` and ``yearly`` are single totals for the
    month, quarter and year containing ``as_of``, not time series.
    """

    total: float
    monthly: float
    quarterly: float
    yearly: float
    by_category: dict[str, float]


@dataclass(frozen=True)
class FinancialSummary:
    total_income: float
    total_expenses: float
    total_balance: float
    income_summary: LedgerSummary
    expense_summary: LedgerSummary


@dataclass(frozen=True)
class FinancialAnalytics:
    """Aggregator output plus projections."""

    analytics: RevenueAnalytics
    projections: Projections
    next_quarter_projection: float
    next_year_projection: float


@dataclass(frozen=True)
class BalanceSheet:
    assets: float
    liabilities: float
    equity: float


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_db_config(app_config: AppConfig) -> DatabaseConfig:
    """Database configuration to be used by the record stores."""
    return app_config.database


def _period_total(frame: pd.DataFrame, period: Period) -> float:
    return float(filter_frame_by_period(frame, period)["amount"].sum())


def _summarize(
    frame: pd.DataFrame,
    as_of: date,
    categories: type[Enum],
) -> LedgerSummary:
    """
    Build a LedgerSummary from a frame with date, category and amount.

    Rows with an unparsable date count toward the total and the category
    totals but toward no calendar period.
    """
    by_category = seed_totals(categories)
    if not frame.empty:
        for category, amount in frame.groupby("category")["amount"].sum().items():
            by_category[str(category)] = float(amount)

    return LedgerSummary(
        total=float(frame["amount"].sum()),
        monthly=_period_total(frame, period_month(as_of)),
        quarterly=_period_total(frame, period_quarter(as_of)),
        yearly=_period_total(frame, period_year(as_of)),
        by_category=by_category,
    )


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def income_summary(
    app_config: AppConfig,
    as_of: date,
    filters: Optional[IncomeFilter] = None,
) -> LedgerSummary:
    """Income summary anchored on ``as_of``, narrowed by ``filters``."""
    frame = load_income_frame(_get_db_config(app_config), filters)
    return _summarize(frame, as_of, IncomeCategory)


def expense_summary(
    app_config: AppConfig,
    as_of: date,
    filters: Optional[ExpenseFilter] = None,
) -> LedgerSummary:
    """Expense summary anchored on ``as_of``, narrowed by ``filters``."""
    frame = load_expense_frame(_get_db_config(app_config), filters)
    return _summarize(frame, as_of, ExpenseCategory)


def financial_summary(app_config: AppConfig, as_of: date) -> FinancialSummary:
    """Combined income/expense summary; balance is income minus expenses."""
    incomes = income_summary(app_config, as_of)
    expenses = expense_summary(app_config, as_of)
    return FinancialSummary(
        total_income=incomes.total,
        total_expenses=expenses.total,
        total_balance=incomes.total - expenses.total,
        income_summary=incomes,
        expense_summary=expenses,
    )


def balance_sheet(app_config: AppConfig, as_of: date) -> BalanceSheet:
    """
    Simplified balance sheet.

    Assets are the income total, liabilities the expense total and equity
    the difference. This is not a double-entry balance sheet.
    """
    summary = financial_summary(app_config, as_of)
    return BalanceSheet(
        assets=summary.total_income,
        liabilities=summary.total_expenses,
        equity=summary.total_income - summary.total_expenses,
    )


# ---------------------------------------------------------------------------
# Analytics & projections
# ---------------------------------------------------------------------------


def financial_analytics(app_config: AppConfig, as_of: date) -> FinancialAnalytics:
    """
    Run the analytics aggregator and the projection engine.

    Parameters
    ----------
    app_config:
        Global application configuration; [analytics] provides the yearly
        window and the number of baseline months.
    as_of:
        Reference date for every bucket, growth rate and projection window.

    Returns
    -------
    FinancialAnalytics
        ``next_quarter_projection`` and ``next_year_projection`` are the
        projected balances.
    """
    db_cfg = _get_db_config(app_config)
    incomes = load_income_frame(db_cfg)
    expenses = load_expense_frame(db_cfg)

    analytics = revenue_analytics(
        incomes,
        expenses,
        as_of,
        history_years=app_config.analytics.yearly_history_years,
    )
    projections = project(
        analytics,
        get_outstanding_dues(db_cfg),
        as_of,
        total_income=float(incomes["amount"].sum()),
        total_expenses=float(expenses["amount"].sum()),
        months_with_data=months_with_data(incomes, expenses),
        baseline_months=app_config.analytics.projection_baseline_months,
    )
    return FinancialAnalytics(
        analytics=analytics,
        projections=projections,
        next_quarter_projection=projections.next_quarter.balance,
        next_year_projection=projections.next_year.balance,
    )


# ---------------------------------------------------------------------------
# Dues
# ---------------------------------------------------------------------------


def outstanding_dues_report(
    app_config: AppConfig,
    today: date,
    filters: Optional[IncomeFilter] = None,
) -> list[OutstandingDue]:
    """Outstanding dues with overdue flags; overdue entries first."""
    records = get_outstanding_dues(_get_db_config(app_config), filters)
    return enrich_outstanding_dues(records, today)


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


def suggest_invoice_number(
    app_config: AppConfig,
    business_unit: BusinessUnit | str,
    as_of: Optional[date] = None,
) -> str:
    """Suggested next invoice number using the configured prefix and start."""
    return next_invoice_number(
        _get_db_config(app_config),
        business_unit,
        as_of,
        prefix=app_config.invoices.prefix,
        sequence_start=app_config.invoices.sequence_start,
    )


def reserve_invoice_number(
    app_config: AppConfig,
    business_unit: BusinessUnit | str,
    as_of: Optional[date] = None,
) -> str:
    """Atomically allocated invoice number using the configured options."""
    return allocate_invoice_number(
        _get_db_config(app_config),
        business_unit,
        as_of,
        prefix=app_config.invoices.prefix,
        sequence_start=app_config.invoices.sequence_start,
    )


def create_invoice_document(
    app_config: AppConfig,
    new_invoice: NewInvoice,
    as_of: Optional[date] = None,
) -> InvoiceDocument:
    """Create an invoice; a number is allocated when none is supplied."""
    return create_invoice(
        _get_db_config(app_config),
        new_invoice,
        as_of,
        prefix=app_config.invoices.prefix,
        sequence_start=app_config.invoices.sequence_start,
    )


def update_invoice_document(
    app_config: AppConfig,
    invoice_id: int,
    update: InvoiceUpdate,
) -> InvoiceDocument:
    return update_invoice(
        _get_db_config(app_config),
        invoice_id,
        update,
        prefix=app_config.invoices.prefix,
    )


def delete_invoice_document(app_config: AppConfig, invoice_id: int) -> InvoiceDocument:
    return delete_invoice(
        _get_db_config(app_config),
        invoice_id,
        prefix=app_config.invoices.prefix,
    )


def invoice_statistics(app_config: AppConfig) -> InvoiceStats:
    """Invoice statistics with the configured number of recent documents."""
    return invoice_stats(
        _get_db_config(app_config),
        recent_limit=app_config.invoices.recent_documents_limit,
    )

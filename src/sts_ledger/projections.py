# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Projection engine.

Forecasts income, expenses and balance for the next quarter (3 months) and
the next year (12 months) following ``as_of``:

    income   = average monthly income   * n + scheduled dues
    expenses = average monthly expenses * n
    balance  = average monthly net      * n + scheduled dues

Averages come from the most recent monthly buckets (up to and including the
``as_of`` month) that have any income or expense, at most
``baseline_months`` of them. An average that comes out as zero falls back to
the full-history total divided by the number of months with data.

Scheduled dues are the outstanding ``due_amount`` values whose due date
falls in the half-open window returned by ``projection_window``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from .analytics import RevenueAnalytics
from .periods import add_months, month_key

QUARTER_MONTHS = 3
YEAR_MONTHS = 12


class ScheduledDue(Protocol):
    due_date: date | None
    due_amount: float


@dataclass(frozen=True)
class Projection:
    income: float
    expenses: float
    balance: float


@dataclass(frozen=True)
class Projections:
    next_quarter: Projection
    next_year: Projection


def projection_window(as_of: date, months: int) -> tuple[date, date]:
    """
    Half-open due-date window ``[start, end)`` for an ``months``-long horizon.

    ``start`` is the first day of the month after ``as_of`` and ``end`` the
    first day of the month ``months + 1`` months after it.
    """
    return add_months(as_of, 1), add_months(as_of, months + 1)


def scheduled_dues(
    outstanding: Iterable[ScheduledDue],
    start: date,
    end: date,
) -> float:
    """Sum of due amounts whose due date lies in ``[start, end)``."""
    return float(
        sum(
            d.due_amount
            for d in outstanding
            if d.due_date is not None and start <= d.due_date < end
        )
    )


def _baseline_averages(
    analytics: RevenueAnalytics,
    baseline_months: int,
) -> tuple[float, float, float]:
    monthly = analytics.monthly
    current_key = month_key(analytics.as_of.year, analytics.as_of.month)
    active = monthly[
        (monthly["month"] <= current_key)
        & ((monthly["income"] > 0) | (monthly["expenses"] > 0))
    ].tail(baseline_months)

    if active.empty:
        return 0.0, 0.0, 0.0
    return (
        float(active["income"].mean()),
        float(active["expenses"].mean()),
        float(active["revenue"].mean()),
    )


def project(
    analytics: RevenueAnalytics,
    outstanding_dues: Iterable[ScheduledDue],
    as_of: date,
    *,
    total_income: float,
    total_expenses: float,
    months_with_data: int,
    baseline_months: int = 3,
) -> Projections:
    """
    Project the next quarter and the next year.

    Parameters
    ----------
    analytics:
        Aggregator output anchored on the same ``as_of``.
    outstanding_dues:
        Records with ``due_date`` and ``due_amount`` (typically the result
        of ``incomes.get_outstanding_dues``).
    as_of:
        Reference date; windows start on the first day of the next month.
    total_income, total_expenses, months_with_data:
        Full-history figures used when the income or expense average is
        not positive. The net average never falls back: with no active
        month it stays 0.
    baseline_months:
        Maximum number of recent active months averaged.

    Returns
    -------
    Projections
    """
    avg_income, avg_expenses, avg_net = _baseline_averages(analytics, baseline_months)

    fallback_months = max(months_with_data, 1)
    if avg_income <= 0:
        avg_income = total_income / fallback_months
    if avg_expenses <= 0:
        avg_expenses = total_expenses / fallback_months

    dues = list(outstanding_dues)

    def horizon(months: int) -> Projection:
        start, end = projection_window(as_of, months)
        scheduled = scheduled_dues(dues, start, end)
        return Projection(
            income=avg_income * months + scheduled,
            expenses=avg_expenses * months,
            balance=avg_net * months + scheduled,
        )

    return Projections(
        next_quarter=horizon(QUARTER_MONTHS),
        next_year=horizon(YEAR_MONTHS),
    )

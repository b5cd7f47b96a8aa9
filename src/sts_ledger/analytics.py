# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Revenue analytics for STS Ledger.

This module turns the income and expense frames produced by
``incomes.load_income_frame`` / ``expenses.load_expense_frame`` into the
time series and breakdowns shown on the financial dashboard:

- monthly buckets for the calendar year of ``as_of`` (always 12 rows),
- quarterly buckets for the same year (always 4 rows),
- yearly buckets (the ``as_of`` year plus earlier years that have data),
- period-over-period growth of revenue (income - expenses),
- income and expense totals per category.

All computations are anchored on an explicit ``as_of`` date; nothing in
this module reads the clock. Rows whose date could not be parsed (NaT) are
skipped with a warning and never count toward any bucket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

import pandas as pd

from .periods import (
    month_key,
    previous_month,
    previous_quarter,
    quarter_key,
    quarter_of,
)

logger = logging.getLogger(__name__)

BUCKET_COLUMNS = ["income", "expenses", "revenue"]


@dataclass(frozen=True)
class GrowthRates:
    """Revenue growth, in percent, for the latest month, quarter and year."""

    monthly: float
    quarterly: float
    yearly: float


@dataclass(frozen=True)
class RevenueAnalytics:
    """
    Output of ``revenue_analytics``.

    Attributes
    ----------
    monthly:
        Columns ``month, income, expenses, revenue``; keys ``YYYY-MM``.
    quarterly:
        Columns ``quarter, income, expenses, revenue``; keys ``Q1 2025``.
    yearly:
        Columns ``year, income, expenses, revenue``; ascending years.
    growth:
        Growth rates derived from the buckets.
    income_by_category, expenses_by_category:
        Columns ``category, total``, sorted by total descending.
    """

    as_of: date
    monthly: pd.DataFrame
    quarterly: pd.DataFrame
    yearly: pd.DataFrame
    growth: GrowthRates
    income_by_category: pd.DataFrame
    expenses_by_category: pd.DataFrame


def growth_rate(current: float, previous: float) -> float:
    """
    Percent change from ``previous`` to ``current``.

    When ``previous`` is exactly 0 the rate is 100.0 if ``current`` is
    positive and 0.0 otherwise.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100.0


def drop_undated(frame: pd.DataFrame, label: str) -> pd.DataFrame:
    """Remove rows whose ``date`` is NaT, logging how many were skipped."""
    missing = frame["date"].isna()
    skipped = int(missing.sum())
    if skipped:
        logger.warning(
            "Skipping %d %s row(s) with an unparsable date in analytics.",
            skipped,
            label,
        )
        return frame.loc[~missing].copy()
    return frame


def months_with_data(incomes: pd.DataFrame, expenses: pd.DataFrame) -> int:
    """Number of distinct calendar months with any income or expense row."""
    periods = pd.concat(
        [
            drop_undated(incomes, "income")["date"],
            drop_undated(expenses, "expense")["date"],
        ]
    )
    if periods.empty:
        return 0
    return int(periods.dt.to_period("M").nunique())


def _sum_where(frame: pd.DataFrame, mask: pd.Series) -> float:
    return float(frame.loc[mask, "amount"].sum())


def _month_totals(
    incomes: pd.DataFrame,
    expenses: pd.DataFrame,
    year: int,
    month: int,
) -> tuple[float, float]:
    def in_month(frame: pd.DataFrame) -> pd.Series:
        return (frame["date"].dt.year == year) & (frame["date"].dt.month == month)

    return (
        _sum_where(incomes, in_month(incomes)),
        _sum_where(expenses, in_month(expenses)),
    )


def _quarter_totals(
    incomes: pd.DataFrame,
    expenses: pd.DataFrame,
    year: int,
    quarter: int,
) -> tuple[float, float]:
    def in_quarter(frame: pd.DataFrame) -> pd.Series:
        months = frame["date"].dt.month
        return (frame["date"].dt.year == year) & ((months - 1) // 3 + 1 == quarter)

    return (
        _sum_where(incomes, in_quarter(incomes)),
        _sum_where(expenses, in_quarter(expenses)),
    )


def _bucket_frame(
    key_name: str,
    keys: list[str],
    rows: list[tuple[float, float]],
) -> pd.DataFrame:
    df = pd.DataFrame(
        {
            key_name: keys,
            "income": [float(r[0]) for r in rows],
            "expenses": [float(r[1]) for r in rows],
        }
    )
    df["revenue"] = df["income"] - df["expenses"]
    return df


def monthly_buckets(
    incomes: pd.DataFrame,
    expenses: pd.DataFrame,
    year: int,
) -> pd.DataFrame:
    """Twelve monthly buckets (January to December) for ``year``."""
    rows = [_month_totals(incomes, expenses, year, m) for m in range(1, 13)]
    keys = [month_key(year, m) for m in range(1, 13)]
    return _bucket_frame("month", keys, rows)


def quarterly_buckets(
    incomes: pd.DataFrame,
    expenses: pd.DataFrame,
    year: int,
) -> pd.DataFrame:
    """Four quarterly buckets for ``year``."""
    rows = [_quarter_totals(incomes, expenses, year, q) for q in range(1, 5)]
    keys = [quarter_key(year, q) for q in range(1, 5)]
    return _bucket_frame("quarter", keys, rows)


def yearly_buckets(
    incomes: pd.DataFrame,
    expenses: pd.DataFrame,
    year: int,
    history_years: int = 5,
) -> pd.DataFrame:
    """
    Yearly buckets, ascending.

    The ``year`` bucket is always present; the ``history_years - 1``
    preceding years are included only when they hold at least one row.
    """
    income_by_year = incomes.groupby(incomes["date"].dt.year)["amount"].sum()
    expense_by_year = expenses.groupby(expenses["date"].dt.year)["amount"].sum()

    earliest = year - (history_years - 1)
    with_data = set(incomes["date"].dt.year) | set(expenses["date"].dt.year)
    years = sorted({year} | {int(y) for y in with_data if earliest <= y < year})

    rows = [
        (float(income_by_year.get(y, 0.0)), float(expense_by_year.get(y, 0.0)))
        for y in years
    ]
    return _bucket_frame("year", [str(y) for y in years], rows)


def category_breakdown(frame: pd.DataFrame) -> pd.DataFrame:
    """Totals per category present in ``frame``, sorted by total descending."""
    if frame.empty:
        return pd.DataFrame(
            {"category": pd.Series(dtype=str), "total": pd.Series(dtype=float)}
        )

    totals = (
        frame.groupby("category", as_index=False)["amount"]
        .sum()
        .rename(columns={"amount": "total"})
    )
    totals["total"] = totals["total"].astype(float)
    return totals.sort_values(
        ["total", "category"], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)


def revenue_analytics(
    incomes: pd.DataFrame,
    expenses: pd.DataFrame,
    as_of: date,
    history_years: int = 5,
) -> RevenueAnalytics:
    """
    Build the full analytics report anchored on ``as_of``.

    Parameters
    ----------
    incomes, expenses:
        Frames with at least ``date`` (datetime64), ``category`` and
        ``amount`` columns.
    as_of:
        Reference date. Its year selects the monthly and quarterly buckets;
        its month and quarter are the "current" periods for growth.
    history_years:
        Width of the yearly window, current year included.

    Returns
    -------
    RevenueAnalytics
    """
    incomes = drop_undated(incomes, "income")
    expenses = drop_undated(expenses, "expense")

    year = as_of.year
    monthly = monthly_buckets(incomes, expenses, year)
    quarterly = quarterly_buckets(incomes, expenses, year)
    yearly = yearly_buckets(incomes, expenses, year, history_years)

    # Monthly growth: as_of month vs the month before (December of the
    # previous year for January).
    cur_inc, cur_exp = _month_totals(incomes, expenses, year, as_of.month)
    prev_inc, prev_exp = _month_totals(
        incomes, expenses, *previous_month(year, as_of.month)
    )
    monthly_growth = growth_rate(cur_inc - cur_exp, prev_inc - prev_exp)

    quarter = quarter_of(as_of.month)
    cur_inc, cur_exp = _quarter_totals(incomes, expenses, year, quarter)
    prev_inc, prev_exp = _quarter_totals(
        incomes, expenses, *previous_quarter(year, quarter)
    )
    quarterly_growth = growth_rate(cur_inc - cur_exp, prev_inc - prev_exp)

    if len(yearly) >= 2:
        yearly_growth = growth_rate(
            float(yearly["revenue"].iloc[-1]), float(yearly["revenue"].iloc[-2])
        )
    else:
        yearly_growth = 0.0

    return RevenueAnalytics(
        as_of=as_of,
        monthly=monthly,
        quarterly=quarterly,
        yearly=yearly,
        growth=GrowthRates(
            monthly=monthly_growth,
            quarterly=quarterly_growth,
            yearly=yearly_growth,
        ),
        income_by_category=category_breakdown(incomes),
        expenses_by_category=category_breakdown(expenses),
    )

import logging
from datetime import date

import pandas as pd
import pytest

from sts_ledger.analytics import (
    GrowthRates,
    category_breakdown,
    growth_rate,
    months_with_data,
    revenue_analytics,
    yearly_buckets,
)


def _frame(rows):
    """Build an analytics input frame from (date, category, amount) tuples."""
    return pd.DataFrame(
        {
            "date": pd.to_datetime([r[0] for r in rows], errors="coerce"),
            "category": [r[1] for r in rows],
            "amount": pd.Series([r[2] for r in rows], dtype=float),
        }
    )


def _q1_ledger():
    incomes = _frame(
        [
            ("2024-12-05", "Website", 3000.0),
            ("2025-02-03", "Website", 10000.0),
            ("2025-03-10", "SMM", 15000.0),
            ("2025-03-20", "Ads", 5000.0),
        ]
    )
    expenses = _frame(
        [
            ("2024-12-06", "Rent", 1000.0),
            ("2025-02-04", "Rent", 6000.0),
            ("2025-03-11", "Salaries", 12000.0),
        ]
    )
    return incomes, expenses


def test_monthly_and_quarterly_buckets_cover_the_as_of_year():
    incomes, expenses = _q1_ledger()

    result = revenue_analytics(incomes, expenses, date(2025, 3, 31))

    assert len(result.monthly) == 12
    assert result.monthly["month"].iloc[0] == "2025-01"
    assert result.monthly["month"].iloc[-1] == "2025-12"
    march = result.monthly.set_index("month").loc["2025-03"]
    assert (march["income"], march["expenses"], march["revenue"]) == (
        20000.0,
        12000.0,
        8000.0,
    )

    assert result.quarterly["quarter"].tolist() == [
        "Q1 2025",
        "Q2 2025",
        "Q3 2025",
        "Q4 2025",
    ]
    assert result.quarterly["revenue"].tolist() == [12000.0, 0.0, 0.0, 0.0]


def test_monthly_growth_compares_with_previous_month():
    incomes, expenses = _q1_ledger()

    result = revenue_analytics(incomes, expenses, date(2025, 3, 31))

    # March revenue 8000 vs February revenue 4000.
    assert result.growth.monthly == pytest.approx(100.0)


def test_quarterly_growth_crosses_year_boundary():
    incomes, expenses = _q1_ledger()

    result = revenue_analytics(incomes, expenses, date(2025, 3, 31))

    # Q1 2025 revenue 12000 vs Q4 2024 revenue 2000.
    assert result.growth.quarterly == pytest.approx(500.0)


def test_january_compares_with_previous_december():
    incomes = _frame([("2024-12-10", "POS", 1000.0), ("2025-01-10", "POS", 1500.0)])
    expenses = _frame([])

    result = revenue_analytics(incomes, expenses, date(2025, 1, 31))

    assert result.growth.monthly == pytest.approx(50.0)


def test_growth_rate_with_zero_previous():
    assert growth_rate(500.0, 0.0) == 100.0
    assert growth_rate(0.0, 0.0) == 0.0
    assert growth_rate(-10.0, 0.0) == 0.0
    assert growth_rate(50.0, 200.0) == -75.0


def test_yearly_buckets_keep_current_year_and_recent_history():
    incomes = _frame(
        [
            ("2019-06-01", "Website", 9999.0),
            ("2022-06-01", "Website", 4000.0),
            ("2026-01-01", "Website", 777.0),
        ]
    )
    expenses = _frame([("2022-07-01", "Rent", 1000.0)])

    yearly = yearly_buckets(incomes, expenses, 2025, history_years=5)

    assert yearly["year"].tolist() == ["2022", "2025"]
    assert yearly["revenue"].tolist() == [3000.0, 0.0]


def test_yearly_growth_uses_last_two_buckets():
    incomes = _frame([("2024-05-01", "SMM", 1000.0), ("2025-05-01", "SMM", 1500.0)])

    result = revenue_analytics(incomes, _frame([]), date(2025, 6, 1))

    assert result.yearly["year"].tolist() == ["2024", "2025"]
    assert result.growth.yearly == pytest.approx(50.0)


def test_single_yearly_bucket_has_no_growth():
    result = revenue_analytics(_frame([]), _frame([]), date(2025, 6, 1))
    assert result.yearly["year"].tolist() == ["2025"]
    assert result.growth == GrowthRates(monthly=0.0, quarterly=0.0, yearly=0.0)


def test_category_breakdown_sorted_by_total_then_name():
    frame = _frame(
        [
            ("2025-01-01", "SMM", 100.0),
            ("2025-01-02", "Ads", 300.0),
            ("2025-01-03", "Website", 200.0),
            ("2025-01-04", "POS", 300.0),
            ("2025-01-05", "SMM", 150.0),
        ]
    )

    breakdown = category_breakdown(frame)

    assert breakdown["category"].tolist() == ["Ads", "POS", "SMM", "Website"]
    assert breakdown["total"].tolist() == [300.0, 300.0, 250.0, 200.0]


def test_category_breakdown_of_empty_frame():
    breakdown = category_breakdown(_frame([]))
    assert breakdown.empty
    assert list(breakdown.columns) == ["category", "total"]


def test_undated_rows_are_skipped_with_warning(caplog):
    incomes = _frame(
        [("2025-03-01", "Website", 1000.0), ("not-a-date", "Website", 5000.0)]
    )

    with caplog.at_level(logging.WARNING, logger="sts_ledger.analytics"):
        result = revenue_analytics(incomes, _frame([]), date(2025, 3, 31))

    assert result.monthly["income"].sum() == 1000.0
    assert result.income_by_category["total"].tolist() == [1000.0]
    assert "unparsable date" in caplog.text


def test_months_with_data_counts_distinct_months():
    incomes = _frame([("2025-01-01", "POS", 1.0), ("2025-01-20", "POS", 1.0)])
    expenses = _frame([("2025-01-05", "Rent", 1.0), ("2024-11-05", "Rent", 1.0)])

    assert months_with_data(incomes, expenses) == 2
    assert months_with_data(_frame([]), _frame([])) == 0

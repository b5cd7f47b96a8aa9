# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for STS Ledger.

This module defines a Period value object and the calendar arithmetic used
by the summaries, the analytics aggregator and the projection engine:
bucket keys ("2025-03", "Q1 2025"), current month / quarter / year periods
anchored on an explicit ``as_of`` date, and month-start offsets.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

import pandas as pd


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str


def current_date() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def month_key(year: int, month: int) -> str:
    """Bucket key for a calendar month, e.g. ``2025-03``."""
    return f"{year}-{month:02d}"


def quarter_of(month: int) -> int:
    """Quarter number (1-4) of a calendar month (1-12)."""
    return (month - 1) // 3 + 1


def quarter_key(year: int, quarter: int) -> str:
    """Bucket key for a calendar quarter, e.g. ``Q1 2025``."""
    return f"Q{quarter} {year}"


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` months after the month of ``day``."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def previous_month(year: int, month: int) -> tuple[int, int]:
    """(year, month) of the calendar month preceding the given one."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def previous_quarter(year: int, quarter: int) -> tuple[int, int]:
    """(year, quarter) of the calendar quarter preceding the given one."""
    if quarter == 1:
        return year - 1, 4
    return year, quarter - 1


def period_month(as_of: date) -> Period:
    """Calendar month containing ``as_of``."""
    start = as_of.replace(day=1)
    end = add_months(as_of, 1) - timedelta(days=1)
    label = f"Month {month_key(start.year, start.month)}"
    return Period(start=start, end=end, label=label)


def period_quarter(as_of: date) -> Period:
    """Calendar quarter containing ``as_of``."""
    quarter = quarter_of(as_of.month)
    start = date(as_of.year, 3 * (quarter - 1) + 1, 1)
    end = add_months(start, 3) - timedelta(days=1)
    return Period(start=start, end=end, label=quarter_key(as_of.year, quarter))


def period_year(as_of: date) -> Period:
    """Calendar year containing ``as_of``."""
    return Period(
        start=date(as_of.year, 1, 1),
        end=date(as_of.year, 12, 31),
        label=f"Year {as_of.year}",
    )


def filter_frame_by_period(frame: pd.DataFrame, period: Period) -> pd.DataFrame:
    """
    Keep only the rows of ``frame`` whose ``date`` lies in the period.

    The ``date`` column is expected to be datetime64 (as produced by the
    ``load_*_frame`` helpers). Rows with a missing date (NaT) never match.

    Parameters
    ----------
    frame:
        DataFrame with at least a 'date' column.
    period:
        Period defining the [start, end] boundaries (inclusive).

    Returns
    -------
    pandas.DataFrame
        Filtered copy of the input.
    """
    mask = (frame["date"] >= pd.Timestamp(period.start)) & (
        frame["date"] <= pd.Timestamp(period.end)
    )
    return frame.loc[mask].copy()

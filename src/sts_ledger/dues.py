# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Dues lifecycle for income records.

An income entry can be recorded as a partial payment: the client paid an
advance and still owes a due, expected on a due date. The lifecycle has
three states:

    NO_DUES  ->  (plain entry, no dues terms recorded)
    OUTSTANDING  (due_amount > 0, is_due_paid = False)
    SETTLED      (is_due_paid = True, due_amount = 0, dues fields frozen)

The only transition is OUTSTANDING -> SETTLED, performed by
``incomes.mark_due_as_paid``. This module holds the pure rules shared by
the store and by reporting:

- deriving the missing member of a (total, advance, due) triple and
  checking ``advance + due == total`` within MONEY_TOLERANCE,
- deciding whether a record's dues fields are frozen,
- enriching outstanding dues with overdue information for display.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .db import amounts_match
from .errors import InvalidStateError

if TYPE_CHECKING:
    from .incomes import IncomeRecord


class DuesState(str, Enum):
    NO_DUES = "no_dues"
    OUTSTANDING = "outstanding"
    SETTLED = "settled"


def dues_state(record: IncomeRecord) -> DuesState:
    """Classify an income record in the dues lifecycle."""
    if not record.is_due_paid and record.due_amount > 0:
        return DuesState.OUTSTANDING
    if record.total_amount is None:
        return DuesState.NO_DUES
    return DuesState.SETTLED


def is_frozen(record: IncomeRecord) -> bool:
    """
    True when the dues fields of the record can no longer be modified.

    A record is frozen once it is fully received: ``is_due_paid`` is set and
    nothing is left to collect. This covers plain entries (created fully
    paid) as well as entries settled through ``mark_due_as_paid``.
    """
    return record.is_due_paid and record.due_amount == 0


def check_dues_consistency(total: float, advance: float, due: float) -> None:
    """
    Enforce ``advance + due == total`` within MONEY_TOLERANCE.

    Raises
    ------
    InvalidStateError
        With the three conflicting values in the message.
    """
    if not amounts_match(advance + due, total):
        raise InvalidStateError(
            f"Dues are inconsistent: advanceAmount ({advance:.2f}) + "
            f"dueAmount ({due:.2f}) must equal totalAmount ({total:.2f})."
        )


def resolve_dues_terms(
    total: float,
    advance: Optional[float],
    due: Optional[float],
) -> tuple[float, float, float]:
    """
    Complete a (total, advance, due) triple and validate it.

    Rules
    -----
    - neither advance nor due given: the whole total is the advance;
    - only advance given: due = total - advance;
    - only due given: advance = total - due;
    - both given: checked as-is.

    Returns
    -------
    tuple[float, float, float]
        ``(total, advance, due)`` satisfying the dues invariant.
    """
    if advance is None and due is None:
        advance, due = total, 0.0
    elif due is None:
        due = round(total - advance, 2)
    elif advance is None:
        advance = round(total - due, 2)

    if advance > total + 1e-9 or due > total + 1e-9:
        raise InvalidStateError(
            f"Dues are inconsistent: advanceAmount ({advance:.2f}) and "
            f"dueAmount ({due:.2f}) cannot exceed totalAmount ({total:.2f})."
        )
    if due < 0 or advance < 0:
        raise InvalidStateError(
            f"Dues are inconsistent: advanceAmount ({advance:.2f}) and "
            f"dueAmount ({due:.2f}) cannot be negative."
        )

    check_dues_consistency(total, advance, due)
    return total, advance, due


@dataclass(frozen=True)
class OutstandingDue:
    """An outstanding income record enriched for presentation."""

    record: IncomeRecord
    is_overdue: bool
    days_overdue: Optional[int]


def days_overdue(due_date: Optional[date], today: date) -> Optional[int]:
    """Whole days elapsed since ``due_date``, or None if not overdue."""
    if due_date is None or due_date >= today:
        return None
    return (today - due_date).days


def enrich_outstanding_dues(
    records: list[IncomeRecord],
    today: date,
) -> list[OutstandingDue]:
    """
    Attach ``is_overdue`` / ``days_overdue`` to outstanding dues.

    Overdue entries come first, then entries by due date; entries without a
    due date come last. Both sides are compared as calendar dates, so the
    time of day never shifts the count.
    """
    enriched = []
    for record in records:
        late = days_overdue(record.due_date, today)
        enriched.append(
            OutstandingDue(
                record=record,
                is_overdue=late is not None,
                days_overdue=late,
            )
        )

    enriched.sort(
        key=lambda d: (
            not d.is_overdue,
            d.record.due_date is None,
            d.record.due_date or date.max,
            d.record.id,
        )
    )
    return enriched

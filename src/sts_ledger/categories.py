# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Closed enumerations used by the ledger.

Categories, business units, document types and statuses are closed sets.
They are modelled as ``str`` enums so that the stored value, the API value
and the enum value are the same string (e.g. "Wedding Video Invitation").

Unknown values are rejected with ``ValidationError`` by the ``parse_*``
helpers before anything reaches the database. Per-category totals are built
from ``seed_totals()``, which always returns every member of the enum at
zero, so an unexpected key can never appear silently in a report.
"""

from enum import Enum
from typing import TypeVar

from .errors import ValidationError


class IncomeCategory(str, Enum):
    SMM = "SMM"
    WEBSITE = "Website"
    ADS = "Ads"
    POS = "POS"
    CONSULTATION = "Consultation"
    FREELANCING = "Freelancing"
    WEDDING_VIDEO_INVITATION = "Wedding Video Invitation"
    ENGAGEMENT_VIDEO_INVITATION = "Engagement Video Invitation"
    WEDDING_CARD_INVITATION = "Wedding Card Invitation"
    ENGAGEMENT_CARD_INVITATION = "Engagement Card Invitation"
    ANNIVERSARY_CARD_INVITATION = "Anniversary Card Invitation"
    ANNIVERSARY_VIDEO_INVITATION = "Anniversary Video Invitation"
    BIRTHDAY_WISH_VIDEO = "Birthday Wish Video"
    BIRTHDAY_WISH_CARD = "Birthday Wish Card"
    BIRTHDAY_VIDEO_INVITATION = "Birthday Video Invitation"
    BIRTHDAY_CARD_INVITATION = "Birthday Card Invitation"
    OTHER = "Other"


class ExpenseCategory(str, Enum):
    SALARIES = "Salaries"
    SUBSCRIPTIONS = "Subscriptions"
    RENT = "Rent"
    SOFTWARE = "Software"
    HARDWARE = "Hardware"
    TRAVEL = "Travel"
    UTILITIES = "Utilities"
    MISC = "Misc"


class BusinessUnit(str, Enum):
    SD = "SD"
    SM = "SM"
    BX = "BX"


class DocumentType(str, Enum):
    INVOICE = "INVOICE"


class DocumentStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


E = TypeVar("E", bound=Enum)


def _parse_enum(enum_cls: type[E], value: object, label: str) -> E:
    """
    Convert a raw value into a member of ``enum_cls``.

    Accepts an existing member, the member value ("Website") or the member
    name ("WEBSITE"). Anything else raises ValidationError listing the
    allowed values.
    """
    if isinstance(value, enum_cls):
        return value

    raw = str(value).strip() if value is not None else ""
    for member in enum_cls:
        if raw == member.value or raw == member.name:
            return member

    allowed = ", ".join(m.value for m in enum_cls)
    raise ValidationError(f"Invalid {label}: {value!r}. Expected one of: {allowed}.")


def parse_income_category(value: object) -> IncomeCategory:
    return _parse_enum(IncomeCategory, value, "income category")


def parse_expense_category(value: object) -> ExpenseCategory:
    return _parse_enum(ExpenseCategory, value, "expense category")


def parse_business_unit(value: object) -> BusinessUnit:
    return _parse_enum(BusinessUnit, value, "business unit")


def parse_document_status(value: object) -> DocumentStatus:
    return _parse_enum(DocumentStatus, value, "document status")


def seed_totals(enum_cls: type[Enum]) -> dict[str, float]:
    """Return ``{member.value: 0.0}`` for every member, in declaration order."""
    return {member.value: 0.0 for member in enum_cls}

# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
STS Ledger
----------

The financial core of a small-business operations dashboard. The package
keeps single-sided income and expense entries, tracks partial payments
("advance + dues") on income, allocates invoice numbers and turns the
ledger into revenue analytics and short-term projections.

Main capabilities:
- income / expense bookkeeping stored in SQLite,
- advance + dues tracking with a one-way settlement transition,
- collision-free invoice numbering per business unit and year,
- monthly / quarterly / yearly analytics with period-over-period growth,
- projections combining recent trends with scheduled receivables,
- a thin command-line interface mirroring the dashboard API.

All aggregations take an explicit ``as_of`` date so that reports are
reproducible and testable.

Version: 0.2.0

Usage:
    python -m sts_ledger.cli --help
"""

__all__ = [
    "analytics",
    "dues",
    "expenses",
    "incomes",
    "invoices",
    "ledger_service",
    "projections",
]

__version__ = "0.2.0"

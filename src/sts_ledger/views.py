# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for STS Ledger.

This module converts the typed results of the stores and services into:

- camelCase payloads (plain dicts and lists, JSON-serializable) matching
  the shapes exchanged with the dashboard: ``totalAmount``, ``isDuePaid``,
  ``categoryWiseIncome``, ``nextQuarterProjection``...
- pandas DataFrames ready for table or CSV display in the CLI.

Nothing here touches the database or computes business figures.
"""

from datetime import date, datetime
from typing import Any, Optional

import pandas as pd

from .analytics import RevenueAnalytics
from .dues import OutstandingDue
from .expenses import ExpenseRecord
from .incomes import IncomeRecord
from .invoices import InvoiceDocument, InvoiceStats
from .ledger_service import (
    BalanceSheet,
    FinancialAnalytics,
    FinancialSummary,
    LedgerSummary,
)
from .projections import Projection


def _iso(value: Optional[date | datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def message_payload(message: str) -> dict[str, str]:
    return {"message": message}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def income_payload(record: IncomeRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "date": _iso(record.date),
        "category": record.category.value,
        "source": record.source,
        "description": record.description,
        "amount": record.amount,
        "totalAmount": record.total_amount,
        "advanceAmount": record.advance_amount,
        "dueAmount": record.due_amount,
        "dueDate": _iso(record.due_date),
        "isDuePaid": record.is_due_paid,
        "duePaidDate": _iso(record.due_paid_date),
        "createdAt": _iso(record.created_at),
        "updatedAt": _iso(record.updated_at),
    }


def expense_payload(record: ExpenseRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "date": _iso(record.date),
        "category": record.category.value,
        "purpose": record.purpose,
        "description": record.description,
        "amount": record.amount,
        "createdAt": _iso(record.created_at),
        "updatedAt": _iso(record.updated_at),
    }


def outstanding_due_payload(due: OutstandingDue) -> dict[str, Any]:
    payload = income_payload(due.record)
    payload["isOverdue"] = due.is_overdue
    payload["daysOverdue"] = due.days_overdue
    return payload


def invoice_payload(document: InvoiceDocument) -> dict[str, Any]:
    return {
        "id": document.id,
        "documentType": document.document_type.value,
        "documentNumber": document.document_number,
        "businessUnit": document.business_unit.value,
        "invoiceDate": _iso(document.invoice_date),
        "dueDate": _iso(document.due_date),
        "placeOfSupply": document.place_of_supply,
        "currency": document.currency,
        "client": document.client.to_dict(),
        "services": [s.to_dict() for s in document.services],
        "poRef": document.po_ref,
        "paymentTerms": document.payment_terms,
        "notes": document.notes,
        "subtotal": document.subtotal,
        "totalDiscount": document.total_discount,
        "grandTotal": document.grand_total,
        "status": document.status.value,
        "createdAt": _iso(document.created_at),
        "updatedAt": _iso(document.updated_at),
    }


def invoice_stats_payload(stats: InvoiceStats) -> dict[str, Any]:
    return {
        "totalDocuments": stats.total_documents,
        "totalAmount": stats.total_amount,
        "byDocumentType": [
            {"documentType": g.key, "count": g.count, "totalAmount": g.total_amount}
            for g in stats.by_document_type
        ],
        "byBusinessUnit": [
            {"businessUnit": g.key, "count": g.count, "totalAmount": g.total_amount}
            for g in stats.by_business_unit
        ],
        "byStatus": [{"status": g.key, "count": g.count} for g in stats.by_status],
        "recentDocuments": [invoice_payload(d) for d in stats.recent_documents],
    }


# ---------------------------------------------------------------------------
# Summaries and analytics
# ---------------------------------------------------------------------------


def ledger_summary_payload(summary: LedgerSummary) -> dict[str, Any]:
    return {
        "total": summary.total,
        "monthly": summary.monthly,
        "quarterly": summary.quarterly,
        "yearly": summary.yearly,
        "byCategory": dict(summary.by_category),
    }


def financial_summary_payload(summary: FinancialSummary) -> dict[str, Any]:
    return {
        "totalIncome": summary.total_income,
        "totalExpenses": summary.total_expenses,
        "totalBalance": summary.total_balance,
        "incomeSummary": ledger_summary_payload(summary.income_summary),
        "expenseSummary": ledger_summary_payload(summary.expense_summary),
    }


def balance_sheet_payload(sheet: BalanceSheet) -> dict[str, float]:
    return {
        "assets": sheet.assets,
        "liabilities": sheet.liabilities,
        "equity": sheet.equity,
    }


def _frame_records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    """DataFrame rows as plain dicts with Python scalars."""
    return frame.to_dict(orient="records")


def _projection_payload(projection: Projection) -> dict[str, float]:
    return {
        "income": projection.income,
        "expenses": projection.expenses,
        "balance": projection.balance,
    }


def revenue_analytics_payload(analytics: RevenueAnalytics) -> dict[str, Any]:
    return {
        "monthly": _frame_records(analytics.monthly),
        "quarterly": _frame_records(analytics.quarterly),
        "yearly": _frame_records(analytics.yearly),
        "growth": {
            "monthly": analytics.growth.monthly,
            "quarterly": analytics.growth.quarterly,
            "yearly": analytics.growth.yearly,
        },
        "categoryWiseIncome": _frame_records(analytics.income_by_category),
        "categoryWiseExpenses": _frame_records(analytics.expenses_by_category),
    }


def financial_analytics_payload(result: FinancialAnalytics) -> dict[str, Any]:
    """
    Analytics payload: buckets, growth, breakdowns and projections.

    ``nextQuarterProjection`` / ``nextYearProjection`` are the projected
    balances; the full income/expenses/balance triples are under
    ``projections``.
    """
    payload = revenue_analytics_payload(result.analytics)
    payload["nextQuarterProjection"] = result.next_quarter_projection
    payload["nextYearProjection"] = result.next_year_projection
    payload["projections"] = {
        "nextQuarter": _projection_payload(result.projections.next_quarter),
        "nextYear": _projection_payload(result.projections.next_year),
    }
    return payload


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def round_amounts(df: pd.DataFrame, decimals: int) -> pd.DataFrame:
    """Round every float column of ``df`` to ``decimals`` places."""
    out = df.copy()
    float_columns = out.select_dtypes(include="float").columns
    out[float_columns] = out[float_columns].round(decimals)
    return out


def incomes_to_dataframe(
    records: list[IncomeRecord],
    decimals: int = 2,
) -> pd.DataFrame:
    columns = [
        "id",
        "date",
        "category",
        "source",
        "amount",
        "totalAmount",
        "dueAmount",
        "dueDate",
        "isDuePaid",
    ]
    if not records:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([income_payload(r) for r in records])[columns]
    return round_amounts(df, decimals)


def expenses_to_dataframe(
    records: list[ExpenseRecord],
    decimals: int = 2,
) -> pd.DataFrame:
    columns = ["id", "date", "category", "purpose", "amount"]
    if not records:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([expense_payload(r) for r in records])[columns]
    return round_amounts(df, decimals)


def outstanding_dues_to_dataframe(
    dues: list[OutstandingDue],
    decimals: int = 2,
) -> pd.DataFrame:
    columns = [
        "id",
        "source",
        "category",
        "dueAmount",
        "dueDate",
        "isOverdue",
        "daysOverdue",
    ]
    if not dues:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([outstanding_due_payload(d) for d in dues])[columns]
    return round_amounts(df, decimals)


def invoices_to_dataframe(
    documents: list[InvoiceDocument],
    decimals: int = 2,
) -> pd.DataFrame:
    columns = [
        "id",
        "documentNumber",
        "businessUnit",
        "invoiceDate",
        "client",
        "grandTotal",
        "status",
    ]
    if not documents:
        return pd.DataFrame(columns=columns)
    rows = []
    for document in documents:
        payload = invoice_payload(document)
        payload["client"] = document.client.name
        rows.append(payload)
    return round_amounts(pd.DataFrame(rows)[columns], decimals)


def summary_to_dataframe(summary: LedgerSummary, decimals: int = 2) -> pd.DataFrame:
    """Two-column (item, amount) table: period totals then category totals."""
    rows = [
        {"item": "Total", "amount": summary.total},
        {"item": "Current month", "amount": summary.monthly},
        {"item": "Current quarter", "amount": summary.quarterly},
        {"item": "Current year", "amount": summary.yearly},
    ]
    rows.extend(
        {"item": category, "amount": amount}
        for category, amount in summary.by_category.items()
    )
    return round_amounts(pd.DataFrame(rows), decimals)

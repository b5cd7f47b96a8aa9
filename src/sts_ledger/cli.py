# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for STS Ledger.

The CLI mirrors the dashboard API on the command line:

- ``income``    add / list / show / update / delete / mark-paid / dues / summary
- ``expense``   add / list / show / update / delete / summary
- ``invoice``   next-number / create / list / show / update / delete / stats
- ``financial`` summary / analytics / balance-sheet

The CLI is intentionally thin: it parses arguments, calls the record
stores and ``ledger_service`` and renders the result. Business rules live
in the underlying modules.

Output
------
- By default, results are rendered as console tables (pandas
  ``to_string``). ``--display-mode csv`` writes CSV files to ``--output``
  instead and ``both`` does both; the default comes from [display].mode.
- ``--json`` prints the camelCase payload instead, as returned by the API.

Errors raised by the stores (not found, invalid state, conflict,
validation) end the command with their message and a non-zero exit code.

Dates
-----
``--as-of`` (YYYY-MM-DD, default: today) anchors summaries, analytics,
projections, overdue computation and invoice-number years.
"""

import argparse
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from . import __version__
from .config import LOG_LEVELS, AppConfig, load_app_config
from .errors import LedgerError
from .expenses import (
    ExpenseFilter,
    ExpenseUpdate,
    NewExpense,
    create_expense,
    delete_expense,
    get_expense,
    list_expenses,
    update_expense,
)
from .incomes import (
    IncomeFilter,
    IncomeUpdate,
    NewIncome,
    create_income,
    delete_income,
    get_income,
    list_incomes,
    mark_due_as_paid,
    update_income,
)
from .invoices import (
    DEFAULT_CURRENCY,
    Client,
    InvoiceFilter,
    InvoiceUpdate,
    NewInvoice,
    ServiceLine,
    calculate_invoice_totals,
    get_invoice,
    list_invoices,
)
from .ledger_service import (
    balance_sheet,
    create_invoice_document,
    delete_invoice_document,
    expense_summary,
    financial_analytics,
    financial_summary,
    income_summary,
    invoice_statistics,
    outstanding_dues_report,
    reserve_invoice_number,
    suggest_invoice_number,
    update_invoice_document,
)
from .periods import current_date
from .views import (
    balance_sheet_payload,
    expense_payload,
    expenses_to_dataframe,
    financial_analytics_payload,
    financial_summary_payload,
    income_payload,
    incomes_to_dataframe,
    invoice_payload,
    invoice_stats_payload,
    invoices_to_dataframe,
    ledger_summary_payload,
    message_payload,
    outstanding_due_payload,
    outstanding_dues_to_dataframe,
    round_amounts,
    summary_to_dataframe,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_income_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--amount", required=required, help="Received amount.")
    parser.add_argument("--category", required=required, help="Income category.")
    parser.add_argument("--source", required=required, help="Client or source.")
    parser.add_argument("--date", required=required, help="Entry date (YYYY-MM-DD).")
    parser.add_argument("--description")
    parser.add_argument("--total-amount", dest="total_amount")
    parser.add_argument("--advance-amount", dest="advance_amount")
    parser.add_argument("--due-amount", dest="due_amount")
    parser.add_argument("--due-date", dest="due_date")


def _add_expense_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--amount", required=required, help="Spent amount.")
    parser.add_argument("--category", required=required, help="Expense category.")
    parser.add_argument("--purpose", required=required, help="What it was for.")
    parser.add_argument("--date", required=required, help="Entry date (YYYY-MM-DD).")
    parser.add_argument("--description")


def _add_date_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help="Inclusive start date (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help="Inclusive end date (YYYY-MM-DD).",
    )


def _add_invoice_fields(parser: argparse.ArgumentParser, creating: bool) -> None:
    parser.add_argument(
        "--business-unit",
        dest="business_unit",
        required=creating,
        help="Business unit (SD, SM or BX).",
    )
    parser.add_argument(
        "--number",
        help=(
            "Invoice number. When creating without --number, the next number "
            "is allocated automatically."
        ),
    )
    parser.add_argument(
        "--invoice-date",
        dest="invoice_date",
        required=creating,
        help="Invoice date (YYYY-MM-DD).",
    )
    parser.add_argument("--due-date", dest="due_date")
    parser.add_argument("--status", help="DRAFT, SENT, PAID, OVERDUE or CANCELLED.")
    parser.add_argument("--client-name", dest="client_name", required=creating)
    parser.add_argument("--client-company", dest="client_company")
    parser.add_argument("--client-address", dest="client_address")
    parser.add_argument("--client-tax-id", dest="client_tax_id")
    parser.add_argument("--client-email", dest="client_email")
    parser.add_argument(
        "--service",
        dest="services",
        action="append",
        help=(
            "Line item as DESCRIPTION:QUANTITY:RATE[:DISCOUNT_PERCENT]. "
            "Repeat for several lines; totals are computed from the lines."
        ),
    )
    parser.add_argument("--currency")
    parser.add_argument("--place-of-supply", dest="place_of_supply")
    parser.add_argument("--po-ref", dest="po_ref")
    parser.add_argument("--payment-terms", dest="payment_terms")
    parser.add_argument("--notes")


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="sts-ledger",
        description=(
            "STS Ledger - Financial ledger & analytics engine for small-business "
            "operations. Records income and expenses, tracks dues, numbers "
            "invoices and reports analytics and projections."
        ),
    )

    ap.add_argument(
        "--config",
        dest="config_path",
        help="Path to the TOML config file (default: ./sts_ledger_config.toml).",
    )
    ap.add_argument(
        "--as-of",
        dest="as_of",
        help="Reference date for reports (YYYY-MM-DD). Defaults to today.",
    )
    ap.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON payloads instead of tables.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=LOG_LEVELS,
        help="Logging level (overrides [logging].level).",
    )
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the STS Ledger version and exit.",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # ------------------------------------------------------------------
    # income
    # ------------------------------------------------------------------
    income = subparsers.add_parser("income", help="Manage income entries.")
    income_sub = income.add_subparsers(dest="income_command", metavar="income-command")

    income_add = income_sub.add_parser("add", help="Record an income entry.")
    _add_income_fields(income_add, required=True)

    income_list = income_sub.add_parser("list", help="List income entries.")
    income_list.add_argument("--category")
    income_list.add_argument("--source", help="Case-insensitive substring.")
    _add_date_range(income_list)
    income_list.add_argument(
        "--has-dues",
        dest="has_dues",
        action="store_true",
        help="Only entries with an outstanding due.",
    )

    income_show = income_sub.add_parser("show", help="Show one income entry.")
    income_show.add_argument("id", type=int)

    income_update = income_sub.add_parser("update", help="Update an income entry.")
    income_update.add_argument("id", type=int)
    _add_income_fields(income_update, required=False)
    income_update.add_argument("--due-paid-date", dest="due_paid_date")
    income_update.add_argument(
        "--is-due-paid",
        dest="is_due_paid",
        help="true or false; must agree with the due amount.",
    )

    income_delete = income_sub.add_parser("delete", help="Delete an income entry.")
    income_delete.add_argument("id", type=int)

    income_paid = income_sub.add_parser(
        "mark-paid",
        help="Settle the outstanding due of an income entry.",
    )
    income_paid.add_argument("id", type=int)
    income_paid.add_argument(
        "--paid-date",
        dest="paid_date",
        help="Settlement date (YYYY-MM-DD). Defaults to --as-of or today.",
    )

    income_dues = income_sub.add_parser("dues", help="List outstanding dues.")
    income_dues.add_argument("--category")
    income_dues.add_argument("--source", help="Case-insensitive substring.")
    _add_date_range(income_dues)

    income_summary_p = income_sub.add_parser("summary", help="Income summary.")
    income_summary_p.add_argument("--category")
    income_summary_p.add_argument("--source", help="Case-insensitive substring.")
    _add_date_range(income_summary_p)

    # ------------------------------------------------------------------
    # expense
    # ------------------------------------------------------------------
    expense = subparsers.add_parser("expense", help="Manage expense entries.")
    expense_sub = expense.add_subparsers(
        dest="expense_command",
        metavar="expense-command",
    )

    expense_add = expense_sub.add_parser("add", help="Record an expense.")
    _add_expense_fields(expense_add, required=True)

    expense_list = expense_sub.add_parser("list", help="List expenses.")
    expense_list.add_argument("--category")
    expense_list.add_argument("--purpose", help="Case-insensitive substring.")
    _add_date_range(expense_list)

    expense_show = expense_sub.add_parser("show", help="Show one expense.")
    expense_show.add_argument("id", type=int)

    expense_update = expense_sub.add_parser("update", help="Update an expense.")
    expense_update.add_argument("id", type=int)
    _add_expense_fields(expense_update, required=False)

    expense_delete = expense_sub.add_parser("delete", help="Delete an expense.")
    expense_delete.add_argument("id", type=int)

    expense_summary_p = expense_sub.add_parser("summary", help="Expense summary.")
    expense_summary_p.add_argument("--category")
    expense_summary_p.add_argument("--purpose", help="Case-insensitive substring.")
    _add_date_range(expense_summary_p)

    # ------------------------------------------------------------------
    # invoice
    # ------------------------------------------------------------------
    invoice = subparsers.add_parser("invoice", help="Manage invoices.")
    invoice_sub = invoice.add_subparsers(
        dest="invoice_command",
        metavar="invoice-command",
    )

    invoice_next = invoice_sub.add_parser(
        "next-number",
        help="Suggest the next invoice number for a business unit.",
    )
    invoice_next.add_argument("business_unit", help="SD, SM or BX.")
    invoice_next.add_argument(
        "--reserve",
        action="store_true",
        help="Atomically reserve the number instead of only suggesting it.",
    )

    invoice_create = invoice_sub.add_parser("create", help="Create an invoice.")
    _add_invoice_fields(invoice_create, creating=True)

    invoice_list = invoice_sub.add_parser("list", help="List invoices.")
    invoice_list.add_argument("--business-unit", dest="business_unit")
    invoice_list.add_argument("--status")
    _add_date_range(invoice_list)
    invoice_list.add_argument(
        "--search",
        help="Substring of the invoice number, client name or company.",
    )

    invoice_show = invoice_sub.add_parser("show", help="Show one invoice.")
    invoice_show.add_argument("id", type=int)

    invoice_update = invoice_sub.add_parser("update", help="Update an invoice.")
    invoice_update.add_argument("id", type=int)
    _add_invoice_fields(invoice_update, creating=False)

    invoice_delete = invoice_sub.add_parser("delete", help="Delete an invoice.")
    invoice_delete.add_argument("id", type=int)

    invoice_sub.add_parser("stats", help="Invoice statistics.")

    # ------------------------------------------------------------------
    # financial
    # ------------------------------------------------------------------
    financial = subparsers.add_parser("financial", help="Financial reports.")
    financial_sub = financial.add_subparsers(
        dest="financial_command",
        metavar="financial-command",
    )
    financial_sub.add_parser("summary", help="Income, expenses and balance.")
    financial_sub.add_parser(
        "analytics",
        help="Monthly/quarterly/yearly analytics, growth and projections.",
    )
    financial_sub.add_parser("balance-sheet", help="Assets, liabilities, equity.")

    return ap


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an optional CLI date argument (YYYY-MM-DD).

    Raises
    ------
    SystemExit
        If the date format is invalid.
    """
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _as_of(args: argparse.Namespace) -> date:
    return _parse_optional_date(args.as_of) or current_date()


def parse_service(value: str) -> ServiceLine:
    """
    Parse a ``--service`` value: ``DESCRIPTION:QUANTITY:RATE[:DISCOUNT]``.

    The description may itself contain ':'; numbers are read from the right.
    """
    parts = value.rsplit(":", 3)
    if len(parts) == 4:
        try:
            [float(p) for p in parts[1:]]
        except ValueError:
            parts = value.rsplit(":", 2)
    if len(parts) == 3:
        parts.append("0")
    if len(parts) != 4:
        msg = (
            f"Invalid --service value: {value!r}. "
            "Expected DESCRIPTION:QUANTITY:RATE[:DISCOUNT_PERCENT]."
        )
        raise SystemExit(msg)

    description, quantity, rate, discount = parts
    return ServiceLine.from_dict(
        {
            "description": description,
            "quantity": quantity,
            "rate": rate,
            "discount": discount,
        }
    )


def _client_from_args(args: argparse.Namespace) -> Optional[Client]:
    if args.client_name is None:
        return None
    return Client.from_dict(
        {
            "name": args.client_name,
            "company": args.client_company,
            "address": args.client_address,
            "taxId": args.client_tax_id,
            "email": args.client_email,
        }
    )


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in {"true", "yes", "1"}:
        return True
    if lowered in {"false", "no", "0"}:
        return False
    raise SystemExit(f"Invalid boolean value: {value!r}. Expected true or false.")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _render(
    args: argparse.Namespace,
    config: AppConfig,
    df: pd.DataFrame,
    title: str,
    stem: str,
) -> None:
    """Print ``df`` as a table and/or write it to CSV, per the display mode."""
    display_mode = args.display_mode or config.display.mode

    if display_mode in {"table", "both"}:
        print()
        print(f"=== {title} ===")
        if df.empty:
            print("No rows found for the given criteria.")
        else:
            print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        path = output_dir / f"{stem}_{timestamp}.csv"
        df.to_csv(path, index=False)
        print(f"Wrote {path} ({len(df)} rows)")


def _render_record(args: argparse.Namespace, payload: dict[str, Any]) -> None:
    """Single records are shown as key/value lines (or JSON)."""
    if args.json:
        _print_json(payload)
        return
    width = max(len(k) for k in payload)
    for key, value in payload.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False)
        print(f"{key.ljust(width)}  {value}")


def _render_message(args: argparse.Namespace, message: str) -> None:
    if args.json:
        _print_json(message_payload(message))
    else:
        print(message)


# ---------------------------------------------------------------------------
# income
# ---------------------------------------------------------------------------


def _income_filter(args: argparse.Namespace, has_dues: bool = False) -> IncomeFilter:
    return IncomeFilter(
        category=args.category,
        source_contains=args.source,
        start=_parse_optional_date(args.from_date),
        end=_parse_optional_date(args.to_date),
        has_dues=has_dues,
    )


def _handle_income_command(args: argparse.Namespace, config: AppConfig) -> None:
    """Dispatch function for the 'income' subcommands."""
    db_cfg = config.database
    decimals = config.display.decimals
    subcmd = getattr(args, "income_command", None)

    if subcmd == "add":
        record = create_income(
            db_cfg,
            NewIncome(
                amount=args.amount,
                category=args.category,
                source=args.source,
                date=args.date,
                description=args.description,
                total_amount=args.total_amount,
                advance_amount=args.advance_amount,
                due_amount=args.due_amount,
                due_date=args.due_date,
            ),
        )
        _render_record(args, income_payload(record))
    elif subcmd == "list":
        records = list_incomes(db_cfg, _income_filter(args, args.has_dues))
        if args.json:
            _print_json([income_payload(r) for r in records])
        else:
            df = incomes_to_dataframe(records, decimals)
            _render(args, config, df, "Income", "incomes")
    elif subcmd == "show":
        _render_record(args, income_payload(get_income(db_cfg, args.id)))
    elif subcmd == "update":
        record = update_income(
            db_cfg,
            args.id,
            IncomeUpdate(
                amount=args.amount,
                category=args.category,
                source=args.source,
                description=args.description,
                date=args.date,
                total_amount=args.total_amount,
                advance_amount=args.advance_amount,
                due_amount=args.due_amount,
                due_date=args.due_date,
                due_paid_date=args.due_paid_date,
                is_due_paid=_parse_bool(args.is_due_paid),
            ),
        )
        _render_record(args, income_payload(record))
    elif subcmd == "delete":
        _render_message(args, delete_income(db_cfg, args.id))
    elif subcmd == "mark-paid":
        paid_date = _parse_optional_date(args.paid_date) or _as_of(args)
        record = mark_due_as_paid(db_cfg, args.id, paid_date)
        _render_record(args, income_payload(record))
    elif subcmd == "dues":
        dues = outstanding_dues_report(config, _as_of(args), _income_filter(args))
        if args.json:
            _print_json([outstanding_due_payload(d) for d in dues])
        else:
            df = outstanding_dues_to_dataframe(dues, decimals)
            _render(args, config, df, "Outstanding dues", "outstanding_dues")
    elif subcmd == "summary":
        summary = income_summary(config, _as_of(args), _income_filter(args))
        if args.json:
            _print_json(ledger_summary_payload(summary))
        else:
            df = summary_to_dataframe(summary, decimals)
            _render(args, config, df, "Income summary", "income_summary")
    else:
        print(
            "No income subcommand specified. Available subcommands are: "
            "'add', 'list', 'show', 'update', 'delete', 'mark-paid', 'dues', "
            "'summary'."
        )


# ---------------------------------------------------------------------------
# expense
# ---------------------------------------------------------------------------


def _expense_filter(args: argparse.Namespace) -> ExpenseFilter:
    return ExpenseFilter(
        category=args.category,
        purpose_contains=args.purpose,
        start=_parse_optional_date(args.from_date),
        end=_parse_optional_date(args.to_date),
    )


def _handle_expense_command(args: argparse.Namespace, config: AppConfig) -> None:
    """Dispatch function for the 'expense' subcommands."""
    db_cfg = config.database
    decimals = config.display.decimals
    subcmd = getattr(args, "expense_command", None)

    if subcmd == "add":
        record = create_expense(
            db_cfg,
            NewExpense(
                amount=args.amount,
                category=args.category,
                purpose=args.purpose,
                date=args.date,
                description=args.description,
            ),
        )
        _render_record(args, expense_payload(record))
    elif subcmd == "list":
        records = list_expenses(db_cfg, _expense_filter(args))
        if args.json:
            _print_json([expense_payload(r) for r in records])
        else:
            df = expenses_to_dataframe(records, decimals)
            _render(args, config, df, "Expenses", "expenses")
    elif subcmd == "show":
        _render_record(args, expense_payload(get_expense(db_cfg, args.id)))
    elif subcmd == "update":
        record = update_expense(
            db_cfg,
            args.id,
            ExpenseUpdate(
                amount=args.amount,
                category=args.category,
                purpose=args.purpose,
                description=args.description,
                date=args.date,
            ),
        )
        _render_record(args, expense_payload(record))
    elif subcmd == "delete":
        _render_message(args, delete_expense(db_cfg, args.id))
    elif subcmd == "summary":
        summary = expense_summary(config, _as_of(args), _expense_filter(args))
        if args.json:
            _print_json(ledger_summary_payload(summary))
        else:
            df = summary_to_dataframe(summary, decimals)
            _render(args, config, df, "Expense summary", "expense_summary")
    else:
        print(
            "No expense subcommand specified. Available subcommands are: "
            "'add', 'list', 'show', 'update', 'delete', 'summary'."
        )


# ---------------------------------------------------------------------------
# invoice
# ---------------------------------------------------------------------------


def _handle_invoice_create(args: argparse.Namespace, config: AppConfig) -> None:
    services = [parse_service(s) for s in args.services or []]
    subtotal, total_discount, grand_total = calculate_invoice_totals(services)
    new_invoice = NewInvoice(
        business_unit=args.business_unit,
        invoice_date=args.invoice_date,
        client=_client_from_args(args),
        services=services,
        subtotal=subtotal,
        total_discount=total_discount,
        grand_total=grand_total,
        document_number=args.number,
        due_date=args.due_date,
        status=args.status or "DRAFT",
        currency=args.currency or DEFAULT_CURRENCY,
        place_of_supply=args.place_of_supply,
        po_ref=args.po_ref,
        payment_terms=args.payment_terms,
        notes=args.notes,
    )
    record = create_invoice_document(config, new_invoice, _as_of(args))
    _render_record(args, invoice_payload(record))


def _handle_invoice_update(args: argparse.Namespace, config: AppConfig) -> None:
    services = None
    subtotal = total_discount = grand_total = None
    if args.services:
        services = [parse_service(s) for s in args.services]
        subtotal, total_discount, grand_total = calculate_invoice_totals(services)

    update = InvoiceUpdate(
        document_number=args.number,
        business_unit=args.business_unit,
        invoice_date=args.invoice_date,
        due_date=args.due_date,
        client=_client_from_args(args),
        services=services,
        subtotal=subtotal,
        total_discount=total_discount,
        grand_total=grand_total,
        status=args.status,
        currency=args.currency,
        place_of_supply=args.place_of_supply,
        po_ref=args.po_ref,
        payment_terms=args.payment_terms,
        notes=args.notes,
    )
    record = update_invoice_document(config, args.id, update)
    _render_record(args, invoice_payload(record))


def _handle_invoice_command(args: argparse.Namespace, config: AppConfig) -> None:
    """Dispatch function for the 'invoice' subcommands."""
    subcmd = getattr(args, "invoice_command", None)
    decimals = config.display.decimals

    if subcmd == "next-number":
        if args.reserve:
            number = reserve_invoice_number(config, args.business_unit, _as_of(args))
        else:
            number = suggest_invoice_number(config, args.business_unit, _as_of(args))
        if args.json:
            _print_json(number)
        else:
            print(number)
    elif subcmd == "create":
        _handle_invoice_create(args, config)
    elif subcmd == "list":
        filters = InvoiceFilter(
            business_unit=args.business_unit,
            status=args.status,
            start=_parse_optional_date(args.from_date),
            end=_parse_optional_date(args.to_date),
            search=args.search,
        )
        documents = list_invoices(config.database, filters)
        if args.json:
            _print_json([invoice_payload(d) for d in documents])
        else:
            df = invoices_to_dataframe(documents, decimals)
            _render(args, config, df, "Invoices", "invoices")
    elif subcmd == "show":
        _render_record(args, invoice_payload(get_invoice(config.database, args.id)))
    elif subcmd == "update":
        _handle_invoice_update(args, config)
    elif subcmd == "delete":
        deleted = delete_invoice_document(config, args.id)
        _render_message(args, f"Invoice {deleted.document_number} has been deleted")
    elif subcmd == "stats":
        stats = invoice_statistics(config)
        payload = invoice_stats_payload(stats)
        if args.json:
            _print_json(payload)
            return
        print(f"Total documents: {stats.total_documents}")
        print(f"Total amount:    {stats.total_amount:.{decimals}f}")
        for key in ("byBusinessUnit", "byStatus"):
            df = pd.DataFrame(payload[key])
            _render(args, config, round_amounts(df, decimals), key, f"invoice_{key}")
        _render(
            args,
            config,
            invoices_to_dataframe(stats.recent_documents, decimals),
            "Recent documents",
            "invoice_recent",
        )
    else:
        print(
            "No invoice subcommand specified. Available subcommands are: "
            "'next-number', 'create', 'list', 'show', 'update', 'delete', 'stats'."
        )


# ---------------------------------------------------------------------------
# financial
# ---------------------------------------------------------------------------


def _handle_financial_command(args: argparse.Namespace, config: AppConfig) -> None:
    """Dispatch function for the 'financial' subcommands."""
    subcmd = getattr(args, "financial_command", None)
    decimals = config.display.decimals
    as_of = _as_of(args)

    if subcmd == "summary":
        summary = financial_summary(config, as_of)
        if args.json:
            _print_json(financial_summary_payload(summary))
            return
        df = pd.DataFrame(
            [
                {"item": "Total income", "amount": summary.total_income},
                {"item": "Total expenses", "amount": summary.total_expenses},
                {"item": "Total balance", "amount": summary.total_balance},
            ]
        )
        df = round_amounts(df, decimals)
        _render(args, config, df, "Financial summary", "financial_summary")
        _render(
            args,
            config,
            summary_to_dataframe(summary.income_summary, decimals),
            "Income summary",
            "income_summary",
        )
        _render(
            args,
            config,
            summary_to_dataframe(summary.expense_summary, decimals),
            "Expense summary",
            "expense_summary",
        )
    elif subcmd == "analytics":
        result = financial_analytics(config, as_of)
        if args.json:
            _print_json(financial_analytics_payload(result))
            return
        analytics = result.analytics
        for title, stem, df in (
            ("Monthly", "monthly", analytics.monthly),
            ("Quarterly", "quarterly", analytics.quarterly),
            ("Yearly", "yearly", analytics.yearly),
            ("Income by category", "income_by_category", analytics.income_by_category),
            (
                "Expenses by category",
                "expenses_by_category",
                analytics.expenses_by_category,
            ),
        ):
            _render(args, config, round_amounts(df, decimals), title, stem)

        growth = analytics.growth
        projections = result.projections
        print()
        print(
            f"Growth: monthly {growth.monthly:.1f}% | "
            f"quarterly {growth.quarterly:.1f}% | yearly {growth.yearly:.1f}%"
        )
        for label, projection in (
            ("Next quarter", projections.next_quarter),
            ("Next year", projections.next_year),
        ):
            print(
                f"{label} projection: income {projection.income:.{decimals}f} | "
                f"expenses {projection.expenses:.{decimals}f} | "
                f"balance {projection.balance:.{decimals}f}"
            )
    elif subcmd == "balance-sheet":
        sheet = balance_sheet(config, as_of)
        _render_record(args, balance_sheet_payload(sheet))
    else:
        print(
            "No financial subcommand specified. Available subcommands are: "
            "'summary', 'analytics', 'balance-sheet'."
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the STS Ledger CLI.

    Parses command-line arguments, loads the configuration, configures
    logging and dispatches to the requested command. Store errors end the
    process with their message.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"sts_ledger version {__version__}")
        return

    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handlers = {
        "income": _handle_income_command,
        "expense": _handle_expense_command,
        "invoice": _handle_invoice_command,
        "financial": _handle_financial_command,
    }
    handler = handlers.get(getattr(args, "command", None))
    if handler is None:
        parser.print_help()
        return

    try:
        handler(args, config)
    except LedgerError as exc:
        logger.debug("Command failed", exc_info=True)
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()

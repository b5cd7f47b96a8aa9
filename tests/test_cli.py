import json

import pytest

from sts_ledger import __version__
from sts_ledger.cli import main, parse_service
from sts_ledger.errors import ValidationError


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "sts_ledger_config.toml"
    path.write_text(
        '[database]\npath = "ledger.sqlite"\n\n[display]\nmode = "table"\n',
        encoding="utf-8",
    )
    return str(path)


def _run(capsys, config_path, *args):
    main(["--config", config_path, "--as-of", "2025-03-15", *args])
    return capsys.readouterr().out


def _run_json(capsys, config_path, *args):
    return json.loads(_run(capsys, config_path, "--json", *args))


def test_version_flag(capsys) -> None:
    main(["--version"])
    assert capsys.readouterr().out.strip() == f"sts_ledger version {__version__}"


def test_no_command_prints_help(capsys, config_path) -> None:
    main(["--config", config_path])
    assert "usage:" in capsys.readouterr().out


def test_income_add_mark_paid_and_summary(capsys, config_path) -> None:
    created = _run_json(
        capsys,
        config_path,
        "income",
        "add",
        "--amount",
        "5000",
        "--category",
        "Wedding Video Invitation",
        "--source",
        "Sharma family",
        "--date",
        "2025-01-20",
        "--total-amount",
        "10000",
        "--advance-amount",
        "5000",
        "--due-date",
        "2025-03-01",
    )
    assert created["dueAmount"] == 5000.0
    assert created["isDuePaid"] is False

    dues = _run_json(capsys, config_path, "income", "dues")
    assert [d["id"] for d in dues] == [created["id"]]
    assert dues[0]["isOverdue"] is True
    assert dues[0]["daysOverdue"] == 14

    settled = _run_json(
        capsys,
        config_path,
        "income",
        "mark-paid",
        str(created["id"]),
        "--paid-date",
        "2025-02-15",
    )
    assert settled["amount"] == 10000.0
    assert settled["duePaidDate"] == "2025-02-15"

    summary = _run_json(capsys, config_path, "income", "summary")
    assert summary["total"] == 10000.0


def test_income_list_renders_table(capsys, config_path) -> None:
    _run(
        capsys,
        config_path,
        "income",
        "add",
        "--amount",
        "1200",
        "--category",
        "SMM",
        "--source",
        "Bakery",
        "--date",
        "2025-03-01",
    )

    out = _run(capsys, config_path, "income", "list")

    assert "=== Income ===" in out
    assert "Bakery" in out


def test_errors_exit_with_message(capsys, config_path) -> None:
    with pytest.raises(SystemExit) as exc:
        _run(capsys, config_path, "income", "mark-paid", "99")
    assert 'Income with ID "99" not found' in str(exc.value)

    with pytest.raises(SystemExit) as exc:
        _run(
            capsys,
            config_path,
            "expense",
            "add",
            "--amount",
            "abc",
            "--category",
            "Rent",
            "--purpose",
            "Office",
            "--date",
            "2025-03-01",
        )
    assert "Invalid amount" in str(exc.value)


def test_invoice_next_number_create_and_conflict(capsys, config_path) -> None:
    assert _run(capsys, config_path, "invoice", "next-number", "SD").strip() == (
        "STS/SD/2025/1611"
    )

    created = _run_json(
        capsys,
        config_path,
        "invoice",
        "create",
        "--business-unit",
        "SD",
        "--invoice-date",
        "2025-03-15",
        "--client-name",
        "Acme",
        "--service",
        "Website design:2:500:10",
        "--service",
        "Hosting: yearly:1:1200",
    )
    assert created["documentNumber"] == "STS/SD/2025/1611"
    assert created["subtotal"] == 2200.0
    assert created["totalDiscount"] == 100.0
    assert created["grandTotal"] == 2100.0
    assert created["services"][1]["description"] == "Hosting: yearly"

    with pytest.raises(SystemExit) as exc:
        _run(
            capsys,
            config_path,
            "invoice",
            "create",
            "--business-unit",
            "SD",
            "--invoice-date",
            "2025-03-15",
            "--client-name",
            "Other",
            "--number",
            "STS/SD/2025/1611",
        )
    assert "already exists" in str(exc.value)

    reserved = _run(capsys, config_path, "invoice", "next-number", "SD", "--reserve")
    assert reserved.strip() == "STS/SD/2025/1612"


def test_financial_analytics_json(capsys, config_path) -> None:
    _run(
        capsys,
        config_path,
        "expense",
        "add",
        "--amount",
        "1000",
        "--category",
        "Rent",
        "--purpose",
        "Office",
        "--date",
        "2025-03-01",
    )

    payload = _run_json(capsys, config_path, "financial", "analytics")

    assert len(payload["monthly"]) == 12
    assert payload["categoryWiseExpenses"] == [{"category": "Rent", "total": 1000.0}]
    assert "nextYearProjection" in payload


def test_csv_display_mode_writes_files(capsys, config_path, tmp_path) -> None:
    out_dir = tmp_path / "out"

    out = _run(
        capsys,
        config_path,
        "--display-mode",
        "csv",
        "--output",
        str(out_dir),
        "expense",
        "list",
    )

    files = list(out_dir.glob("expenses_*.csv"))
    assert len(files) == 1
    assert "Wrote" in out


def test_invalid_as_of_date_exits(config_path) -> None:
    with pytest.raises(SystemExit, match="YYYY-MM-DD"):
        main(["--config", config_path, "--as-of", "15/03/2025", "financial", "summary"])


def test_parse_service_reads_numbers_from_the_right() -> None:
    line = parse_service("SEO: audit:3:1000:5")
    assert line.description == "SEO: audit"
    assert (line.quantity, line.rate, line.discount_percent) == (3.0, 1000.0, 5.0)
    assert line.amount == pytest.approx(2850.0)


def test_parse_service_rejects_incomplete_values() -> None:
    with pytest.raises(SystemExit):
        parse_service("just a description")
    with pytest.raises(ValidationError):
        parse_service("Design:two:500")


def test_unknown_configured_log_level_exits(tmp_path) -> None:
    path = tmp_path / "sts_ledger_config.toml"
    path.write_text('[logging]\nlevel = "LOUD"\n', encoding="utf-8")

    with pytest.raises(SystemExit, match="logging.level"):
        main(["--config", str(path), "financial", "summary"])


def test_unknown_log_level_flag_is_rejected(config_path) -> None:
    with pytest.raises(SystemExit):
        main(["--config", config_path, "--log-level", "LOUD", "financial", "summary"])

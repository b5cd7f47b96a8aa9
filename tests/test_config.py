from pathlib import Path

import pytest

from sts_ledger.config import (
    AnalyticsConfig,
    DisplayConfig,
    InvoiceConfig,
    load_app_config,
)


def _write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "sts_ledger_config.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_app_config_full_file(tmp_path):
    """Every section should be parsed and paths resolved next to the file."""
    path = _write_config(
        tmp_path,
        """
        [database]
        engine = "sqlite"
        path = "db/ledger.sqlite"

        [invoices]
        prefix = "ACME"
        sequence_start = 100
        recent_documents_limit = 5

        [analytics]
        yearly_history_years = 3
        projection_baseline_months = 6

        [display]
        mode = "both"
        decimals = 0

        [logging]
        level = "info"
        """,
    )

    config = load_app_config(str(path))

    assert config.database.engine == "sqlite"
    assert config.database.path == (tmp_path / "db" / "ledger.sqlite").resolve()
    assert config.invoices == InvoiceConfig(
        prefix="ACME", sequence_start=100, recent_documents_limit=5
    )
    assert config.analytics == AnalyticsConfig(
        yearly_history_years=3, projection_baseline_months=6
    )
    assert config.display == DisplayConfig(mode="both", decimals=0)
    assert config.log_level == "INFO"


def test_empty_file_gives_defaults(tmp_path):
    config = load_app_config(str(_write_config(tmp_path, "")))

    assert config.database.path == (tmp_path / "data/db/sts_ledger.sqlite").resolve()
    assert config.invoices == InvoiceConfig()
    assert config.analytics == AnalyticsConfig()
    assert config.display == DisplayConfig()
    assert config.log_level == "WARNING"


def test_missing_default_file_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    config = load_app_config()

    assert config.database.path == (tmp_path / "data/db/sts_ledger.sqlite").resolve()
    assert config.invoices.prefix == "STS"


def test_explicit_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))


def test_malformed_toml_raises_value_error(tmp_path):
    path = _write_config(tmp_path, "[database\npath = ")
    with pytest.raises(ValueError, match="Failed to parse"):
        load_app_config(str(path))


@pytest.mark.parametrize(
    "content, message",
    [
        ('[invoices]\nprefix = "A/B"', "invoices.prefix"),
        ("[invoices]\nsequence_start = 0", "invoices.sequence_start"),
        ('[analytics]\nyearly_history_years = "five"', "yearly_history_years"),
        ('[display]\nmode = "html"', "display.mode"),
        ('[display]\ndecimals = "many"', "display.decimals"),
        ("[display]\ndecimals = -1", "display.decimals"),
        ('[logging]\nlevel = "LOUD"', "logging.level"),
    ],
)
def test_invalid_values_are_rejected(tmp_path, content, message):
    path = _write_config(tmp_path, content)
    with pytest.raises(ValueError, match=message):
        load_app_config(str(path))


def test_zero_decimals_and_lowercase_level_are_accepted(tmp_path):
    path = _write_config(
        tmp_path, '[display]\ndecimals = 0\n\n[logging]\nlevel = "debug"\n'
    )
    config = load_app_config(str(path))
    assert config.display.decimals == 0
    assert config.log_level == "DEBUG"

# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for STS Ledger.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the services and the CLI.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .db import DatabaseConfig

DEFAULT_CONFIG_FILE = "sts_ledger_config.toml"
DEFAULT_DATABASE_PATH = "data/db/sts_ledger.sqlite"
DISPLAY_MODES = ("table", "csv", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class InvoiceConfig:
    """Invoice numbering and statistics options."""

    prefix: str = "STS"
    sequence_start: int = 1611
    recent_documents_limit: int = 10


@dataclass(frozen=True)
class AnalyticsConfig:
    """Windows used by the analytics aggregator and the projection engine."""

    yearly_history_years: int = 5
    projection_baseline_months: int = 3


@dataclass(frozen=True)
class DisplayConfig:
    mode: str = "table"
    decimals: int = 2


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for STS Ledger.

    This aggregates:
    - the database configuration (where records and documents are stored),
    - invoice numbering options,
    - analytics and projection windows,
    - display options for the CLI,
    - the default logging level.
    """

    database: DatabaseConfig
    invoices: InvoiceConfig = field(default_factory=InvoiceConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    log_level: str = "WARNING"


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a TOML table, or an empty mapping when absent or malformed."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _int_setting(
    section: Mapping[str, Any],
    key: str,
    qualified: str,
    default: int,
    minimum: int = 1,
) -> int:
    raw_value = section.get(key, default)
    try:
        value = int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{qualified}' in the configuration. "
            "Expected an integer."
        ) from exc
    if value < minimum:
        raise ValueError(
            f"Invalid value for '{qualified}' in the configuration. "
            f"Expected an integer >= {minimum}."
        )
    return value


def default_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """All-defaults configuration, with the database rooted at ``base_dir``."""
    root = (base_dir or Path.cwd()).resolve()
    return AppConfig(
        database=DatabaseConfig(
            engine="sqlite",
            path=(root / DEFAULT_DATABASE_PATH).resolve(),
        )
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the STS Ledger application configuration from a TOML file.

    Expected top-level sections in the TOML file (all optional)
    -----------------------------------------------------------
    [database]
        ``engine`` (only "sqlite") and ``path`` of the SQLite file.

    [invoices]
        ``prefix``, ``sequence_start`` and ``recent_documents_limit``.

    [analytics]
        ``yearly_history_years`` and ``projection_baseline_months``.

    [display]
        ``mode`` ("table", "csv" or "both") and ``decimals``.

    [logging]
        ``level`` used by the CLI when ``--log-level`` is not given.

    Notes
    -----
    - All file paths in the TOML are resolved relative to the directory of
      the TOML file itself.
    - When no path is given and ``sts_ledger_config.toml`` does not exist in
      the working directory, the all-defaults configuration is returned.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If an explicit ``config_path`` does not exist.
    ValueError
        If the file cannot be parsed or a value is invalid.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
        if not config_file.is_file():
            return default_app_config()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or DEFAULT_DATABASE_PATH
    db_path = (base_dir / str(db_path_raw)).resolve()
    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 2) Invoices section
    invoices_section = _section(raw, "invoices")
    prefix = str(invoices_section.get("prefix") or "STS")
    if "/" in prefix:
        raise ValueError(
            "Invalid value for 'invoices.prefix' in the configuration. "
            "The prefix cannot contain '/'."
        )
    invoices = InvoiceConfig(
        prefix=prefix,
        sequence_start=_int_setting(
            invoices_section, "sequence_start", "invoices.sequence_start", 1611
        ),
        recent_documents_limit=_int_setting(
            invoices_section,
            "recent_documents_limit",
            "invoices.recent_documents_limit",
            10,
        ),
    )

    # 3) Analytics section
    analytics_section = _section(raw, "analytics")
    analytics = AnalyticsConfig(
        yearly_history_years=_int_setting(
            analytics_section,
            "yearly_history_years",
            "analytics.yearly_history_years",
            5,
        ),
        projection_baseline_months=_int_setting(
            analytics_section,
            "projection_baseline_months",
            "analytics.projection_baseline_months",
            3,
        ),
    )

    # 4) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            "Invalid value for 'display.mode' in the configuration. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )
    decimals = _int_setting(
        display_section, "decimals", "display.decimals", 2, minimum=0
    )

    # 5) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level") or "WARNING").upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(
            "Invalid value for 'logging.level' in the configuration. "
            f"Expected one of: {', '.join(LOG_LEVELS)}."
        )

    return AppConfig(
        database=database_config,
        invoices=invoices,
        analytics=analytics,
        display=DisplayConfig(mode=display_mode, decimals=decimals),
        log_level=log_level,
    )

import pytest

from sts_ledger.config import AppConfig
from sts_ledger.db import DatabaseConfig


@pytest.fixture
def db_cfg(tmp_path) -> DatabaseConfig:
    """DatabaseConfig pointing to a temporary SQLite file."""
    return DatabaseConfig(engine="sqlite", path=tmp_path / "test_ledger.sqlite")


@pytest.fixture
def app_config(db_cfg) -> AppConfig:
    """All-defaults application configuration on the temporary database."""
    return AppConfig(database=db_cfg)

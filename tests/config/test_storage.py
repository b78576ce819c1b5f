from __future__ import annotations

import logging
from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from trackfix.config import configure_logging, storage


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("TRACKFIX_DATA_DIR", str(custom))
    monkeypatch.setenv("TRACKFIX_DB_FILENAME", "scans.db")

    config = storage.get_storage_config()

    assert config.database_path(create_dir=False) == custom.resolve() / "scans.db"
    assert not custom.exists()


def test_database_config_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")

    assert storage.get_database_config().uri == "sqlite:///override.db"


def test_database_config_creates_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.delenv("TRACKFIX_DB_FILENAME", raising=False)
    monkeypatch.setenv("TRACKFIX_DATA_DIR", str(tmp_path / "data-dir"))

    uri = storage.get_database_config().uri

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_platform_data_dir_follows_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("TRACKFIX_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    config = storage.get_storage_config()

    assert config.data_dir == (tmp_path / storage.APP_DIR_NAME).resolve()


def test_configure_logging_quiets_sqlalchemy() -> None:
    configure_logging(verbose=True, force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    configure_logging(force=True)

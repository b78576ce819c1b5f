"""Where the scan result store lives."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env

APP_DIR_NAME: Final[str] = "trackfix"
DEFAULT_DB_FILENAME: Final[str] = "trackfix.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, create_dir: bool = True) -> Path:
        base = self.data_dir.expanduser().resolve()
        if create_dir:
            base.mkdir(parents=True, exist_ok=True)
        return base / self.database_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def platform_data_dir() -> Path:
    """Per-user data directory: LOCALAPPDATA on Windows, XDG elsewhere."""

    if os.name == "nt":
        base = optional_env("LOCALAPPDATA")
        root = Path(base) if base else Path.home() / "AppData" / "Local"
    else:
        base = optional_env("XDG_DATA_HOME")
        root = Path(base) if base else Path.home() / ".local" / "share"
    return (root / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    data_dir = optional_env("TRACKFIX_DATA_DIR")
    return StorageConfig(
        data_dir=Path(data_dir) if data_dir else platform_data_dir(),
        database_filename=optional_env("TRACKFIX_DB_FILENAME") or DEFAULT_DB_FILENAME,
    )


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""

    uri = optional_env("DATABASE_URI")
    if uri:
        return DatabaseConfig(uri=uri)
    path = (storage or get_storage_config()).database_path()
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{path}")

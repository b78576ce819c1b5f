"""Cloud provider sync roots."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from trackfix.domain.cloud_sync import CloudProvider

from .env import env_paths

DROPBOX_DIR_NAMES = (
    "Dropbox",
    "Dropbox (Personal)",
    "Dropbox (Business)",
    "dropbox",
    ".dropbox",
)


@dataclass(frozen=True, slots=True)
class CloudSyncConfig:
    providers: tuple[CloudProvider, ...]


def default_dropbox_roots(home: Path | None = None) -> tuple[str, ...]:
    base = home or Path.home()
    return tuple(str(base / name) for name in DROPBOX_DIR_NAMES)


def get_cloud_sync_config(*, home: Path | None = None) -> CloudSyncConfig:
    roots = env_paths("TRACKFIX_CLOUD_ROOTS") or default_dropbox_roots(home)
    return CloudSyncConfig(providers=(CloudProvider(name="dropbox", roots=roots),))

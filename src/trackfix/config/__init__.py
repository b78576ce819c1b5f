"""Application configuration helpers."""

from __future__ import annotations

from .cloud import CloudSyncConfig, default_dropbox_roots, get_cloud_sync_config
from .env import env_float, env_paths, optional_env
from .errors import ConfigurationError
from .logging import configure_logging
from .matching import MatchingConfig, get_matching_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CloudSyncConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MatchingConfig",
    "StorageConfig",
    "configure_logging",
    "default_dropbox_roots",
    "env_float",
    "env_paths",
    "get_cloud_sync_config",
    "get_database_config",
    "get_matching_config",
    "get_storage_config",
    "optional_env",
]

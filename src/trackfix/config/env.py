"""Environment variable loaders for configuration."""

from __future__ import annotations

import os

from .errors import ConfigurationError


def optional_env(name: str) -> str | None:
    """Return a stripped environment value, treating blank values as unset."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def env_float(name: str, default: float) -> float:
    """Return a float environment value or ``default`` when unset."""

    value = optional_env(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid number for {name}: {value!r}") from exc


def env_paths(name: str) -> tuple[str, ...]:
    """Split an ``os.pathsep``-separated environment value into paths."""

    value = optional_env(name)
    if value is None:
        return ()
    return tuple(part for part in (p.strip() for p in value.split(os.pathsep)) if part)

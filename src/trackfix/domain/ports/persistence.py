"""Ports for persisting scan results between sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from trackfix.domain.model import ScanKind


@dataclass(frozen=True, slots=True, kw_only=True)
class ScanRecord:
    """Stored result of one scan kind for one library file.

    ``payload`` and ``options`` hold JSON-compatible values only.
    """

    library_path: str
    kind: ScanKind
    payload: object
    options: dict[str, object] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@runtime_checkable
class ScanResultRepository(Protocol):
    """Persistence contract for scan results keyed by library path and kind."""

    def save(self, record: ScanRecord) -> ScanRecord:
        """Insert or replace, preserving the original ``created_at``."""
        ...

    def get(self, library_path: str, kind: ScanKind) -> ScanRecord | None: ...

    def delete(self, library_path: str, kind: ScanKind | None = None) -> int: ...

    def library_paths(self, kind: ScanKind | None = None) -> list[str]:
        """Library paths with stored results, most recently updated first."""
        ...

    def count(self, kind: ScanKind | None = None) -> int: ...

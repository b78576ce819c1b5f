"""Filesystem access needed by the relocation matcher."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from trackfix.domain.model import FileProbe


@runtime_checkable
class FilesystemProber(Protocol):
    """Existence checks and directory enumeration.

    Implementations may raise ``OSError``; callers decide whether that skips
    one item or fails the call.
    """

    def exists(self, path: str) -> bool: ...

    def is_audio_file(self, path: str) -> bool: ...

    def list_files(
        self,
        search_path: str,
        *,
        recursive: bool = True,
        max_depth: int | None = None,
    ) -> Iterable[FileProbe]: ...

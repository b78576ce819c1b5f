"""Local filesystem prober."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Final

from trackfix.domain.model import FileProbe

if TYPE_CHECKING:
    from collections.abc import Iterator

AUDIO_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {".mp3", ".m4a", ".wav", ".flac", ".aiff", ".aif", ".ogg"}
)


@dataclass(slots=True, kw_only=True)
class LocalFilesystemProber:
    """Probe the local disk; tags are not read, so probes carry size only."""

    audio_extensions: frozenset[str] = AUDIO_EXTENSIONS
    follow_symlinks: bool = False
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def exists(self, path: str) -> bool:
        return Path(path).expanduser().is_file()

    def is_audio_file(self, path: str) -> bool:
        return Path(path).suffix.lower() in self.audio_extensions

    def list_files(
        self,
        search_path: str,
        *,
        recursive: bool = True,
        max_depth: int | None = None,
    ) -> Iterator[FileProbe]:
        root = Path(search_path).expanduser()
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {search_path}")
        yield from self._walk(root, depth=0, recursive=recursive, max_depth=max_depth)

    def _walk(
        self,
        directory: Path,
        *,
        depth: int,
        recursive: bool,
        max_depth: int | None,
    ) -> Iterator[FileProbe]:
        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except PermissionError as exc:
            self.logger.warning("Skipping unreadable directory %s: %s", directory, exc)
            return
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_dir(follow_symlinks=self.follow_symlinks):
                if recursive and (max_depth is None or depth < max_depth):
                    yield from self._walk(
                        Path(entry.path),
                        depth=depth + 1,
                        recursive=recursive,
                        max_depth=max_depth,
                    )
                continue
            if not entry.is_file(follow_symlinks=self.follow_symlinks):
                continue
            if not self.is_audio_file(entry.name):
                continue
            try:
                size = entry.stat(follow_symlinks=self.follow_symlinks).st_size
            except OSError as exc:
                self.logger.warning("Cannot stat %s: %s", entry.path, exc)
                size = None
            yield FileProbe(path=entry.path, size_bytes=size)


if TYPE_CHECKING:
    from trackfix.domain.ports import FilesystemProber

    _prober_check: FilesystemProber = LocalFilesystemProber()

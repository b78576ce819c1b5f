"""Library snapshot entities exchanged with the parser/serializer.

Tracks, playlists and computers are immutable values. The reconciliation
engine never edits them in place: the ``LibraryIndex`` swaps in updated copies
through ``dataclasses.replace`` so every mutation goes through one API.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC
from typing import TYPE_CHECKING

from trackfix.domain.errors import InvalidInputError

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class Track:
    id: str
    title: str = ""
    artist: str = ""
    album: str = ""
    duration_seconds: float | None = None
    bitrate_kbps: int | None = None
    file_size_bytes: int | None = None
    location: str = ""
    cloud_path: str | None = None
    owner_computer_id: str | None = None
    rating: int = 0
    play_count: int = 0
    date_added: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise InvalidInputError(f"Track id must be a non-empty string, got {self.id!r}")
        for name in ("duration_seconds", "bitrate_kbps", "file_size_bytes"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidInputError(f"Track {self.id}: {name} must be non-negative")
        for name in ("rating", "play_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidInputError(
                    f"Track {self.id}: {name} must be a non-negative integer, got {value!r}"
                )
        if self.date_added is not None and self.date_added.tzinfo is None:
            # Naive timestamps are taken as UTC so every date_added is comparable.
            object.__setattr__(self, "date_added", self.date_added.replace(tzinfo=UTC))


@dataclass(frozen=True, slots=True, kw_only=True)
class Playlist:
    playlist_id: str
    name: str = ""
    track_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class Computer:
    """A machine whose library was imported, identified by its library roots."""

    computer_id: str
    name: str = ""
    library_roots: tuple[str, ...] = ()
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class Library:
    tracks: tuple[Track, ...] = ()
    playlists: tuple[Playlist, ...] = ()
    computers: tuple[Computer, ...] = ()

    def track(self, track_id: str) -> Track | None:
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None


@dataclass(frozen=True, slots=True, kw_only=True)
class FileProbe:
    """A file seen by the filesystem prober, with whatever tags it could read."""

    path: str
    size_bytes: int | None = None
    title: str = ""
    artist: str = ""
    album: str = ""
    duration_seconds: float | None = None

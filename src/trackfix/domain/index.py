"""Indexed, mutable view over one imported library snapshot.

The index is the only component allowed to change tracks or playlists.
Detectors read from it; resolvers and fixers wrap each logical change in
``mutation()`` so a failure half-way restores the previous state.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from trackfix.domain.errors import InvalidInputError, UnknownTrackError
from trackfix.domain.model import Computer, Library, Playlist, Track
from trackfix.domain.normalize import match_key

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


@dataclass(slots=True)
class _Snapshot:
    tracks: dict[str, Track]
    playlists: dict[str, Playlist]
    computers: dict[str, Computer]


@dataclass(slots=True)
class LibraryIndex:
    """Lookup by id, by normalized artist/title key and by owning computer."""

    _tracks: dict[str, Track] = field(default_factory=dict)
    _playlists: dict[str, Playlist] = field(default_factory=dict)
    _computers: dict[str, Computer] = field(default_factory=dict)
    _positions: dict[str, int] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    @classmethod
    def from_library(
        cls, library: Library, *, logger: logging.Logger | None = None
    ) -> LibraryIndex:
        if not isinstance(library, Library):
            raise InvalidInputError(f"Expected a Library, got {type(library).__name__}")
        index = cls() if logger is None else cls(logger=logger)
        for position, track in enumerate(library.tracks):
            if not isinstance(track, Track):
                raise InvalidInputError(f"Expected a Track, got {type(track).__name__}")
            if track.id in index._tracks:
                raise InvalidInputError(f"Duplicate track id: {track.id}")
            index._tracks[track.id] = track
            index._positions[track.id] = position
        for playlist in library.playlists:
            if playlist.playlist_id in index._playlists:
                raise InvalidInputError(f"Duplicate playlist id: {playlist.playlist_id}")
            index._playlists[playlist.playlist_id] = playlist
        for computer in library.computers:
            if computer.computer_id in index._computers:
                raise InvalidInputError(f"Duplicate computer id: {computer.computer_id}")
            index._computers[computer.computer_id] = computer
        index.logger.debug(
            "Indexed library: tracks=%d, playlists=%d, computers=%d",
            len(index._tracks),
            len(index._playlists),
            len(index._computers),
        )
        return index

    # Reads ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._tracks

    def tracks(self) -> tuple[Track, ...]:
        """Current tracks in stable insertion order."""

        with self._lock:
            return tuple(self._tracks.values())

    def playlists(self) -> tuple[Playlist, ...]:
        with self._lock:
            return tuple(self._playlists.values())

    def computers(self) -> tuple[Computer, ...]:
        with self._lock:
            return tuple(self._computers.values())

    def get(self, track_id: str) -> Track | None:
        return self._tracks.get(track_id)

    def require(self, track_id: str) -> Track:
        track = self._tracks.get(track_id)
        if track is None:
            raise UnknownTrackError(track_id)
        return track

    def computer(self, computer_id: str) -> Computer | None:
        return self._computers.get(computer_id)

    def position(self, track_id: str) -> int:
        """Original import position, used to order detector output."""

        try:
            return self._positions[track_id]
        except KeyError as exc:
            raise UnknownTrackError(track_id) from exc

    def by_key(self, artist: str, title: str) -> tuple[Track, ...]:
        key = match_key(artist, title)
        return tuple(
            track for track in self.tracks() if match_key(track.artist, track.title) == key
        )

    def by_owner(self, computer_id: str | None) -> tuple[Track, ...]:
        return tuple(track for track in self.tracks() if track.owner_computer_id == computer_id)

    def playlists_containing(self, track_id: str) -> tuple[Playlist, ...]:
        return tuple(playlist for playlist in self.playlists() if track_id in playlist.track_ids)

    # Mutations --------------------------------------------------------------

    @contextmanager
    def mutation(self) -> Iterator[LibraryIndex]:
        """Hold the mutation lock and roll back every change if the body raises."""

        with self._lock:
            snapshot = _Snapshot(
                tracks=dict(self._tracks),
                playlists=dict(self._playlists),
                computers=dict(self._computers),
            )
            try:
                yield self
            except BaseException:
                self._tracks = snapshot.tracks
                self._playlists = snapshot.playlists
                self._computers = snapshot.computers
                self.logger.debug("Rolled back library mutation")
                raise

    def update_track(self, track_id: str, **changes: object) -> Track:
        if "id" in changes:
            raise InvalidInputError("Track ids are immutable")
        with self._lock:
            current = self.require(track_id)
            try:
                updated = replace(current, **changes)  # pyright: ignore[reportArgumentType]
            except TypeError as exc:
                raise InvalidInputError(f"Invalid track update for {track_id}: {exc}") from exc
            self._tracks[track_id] = updated
            return updated

    def set_location(self, track_id: str, location: str) -> Track:
        return self.update_track(track_id, location=location)

    def set_cloud_path(self, track_id: str, cloud_path: str | None) -> Track:
        return self.update_track(track_id, cloud_path=cloud_path)

    def set_owner(self, track_id: str, computer_id: str | None) -> Track:
        return self.update_track(track_id, owner_computer_id=computer_id)

    def rewrite_references(self, replacements: Mapping[str, str]) -> tuple[str, ...]:
        """Point playlist entries at their replacement ids.

        A playlist that already lists a replacement keeps its first occurrence
        only, so a merge never leaves the same track twice in one playlist.
        Returns the ids of the playlists that changed.
        """

        targets = set(replacements.values())
        changed: list[str] = []
        with self._lock:
            for playlist_id, playlist in self._playlists.items():
                if not any(track_id in replacements for track_id in playlist.track_ids):
                    continue
                rewritten: list[str] = []
                seen_targets: set[str] = set()
                for track_id in playlist.track_ids:
                    new_id = replacements.get(track_id, track_id)
                    if new_id in targets:
                        if new_id in seen_targets:
                            continue
                        seen_targets.add(new_id)
                    rewritten.append(new_id)
                self._playlists[playlist_id] = replace(playlist, track_ids=tuple(rewritten))
                changed.append(playlist_id)
        return tuple(changed)

    def remove_track(self, track_id: str) -> Track:
        with self._lock:
            track = self.require(track_id)
            referencing = self.playlists_containing(track_id)
            if referencing:
                raise InvalidInputError(
                    f"Track {track_id} is still referenced by playlist {referencing[0].playlist_id}"
                )
            del self._tracks[track_id]
            return track

    def register_computer(self, computer: Computer) -> bool:
        """Add ``computer`` unless its id is already known; returns whether it was added."""

        with self._lock:
            if computer.computer_id in self._computers:
                return False
            self._computers[computer.computer_id] = computer
            return True

    def to_library(self) -> Library:
        with self._lock:
            return Library(
                tracks=tuple(self._tracks.values()),
                playlists=tuple(self._playlists.values()),
                computers=tuple(self._computers.values()),
            )

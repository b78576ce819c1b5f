"""Apply duplicate resolutions to the library index.

Each group is merged inside one index mutation: the survivor inherits the
best play statistics of the group, every playlist reference to a losing
track is pointed at the survivor, and the losers are removed. A group that
fails leaves the index exactly as it was and does not stop the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trackfix.domain.errors import InvalidInputError, InvalidResolutionError, ReconciliationError
from trackfix.domain.model import MergePolicy, MergeRecord

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from trackfix.domain.index import LibraryIndex
    from trackfix.domain.model import DuplicateGroup, Track


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateResolution:
    group_id: str
    policy: MergePolicy = MergePolicy.KEEP_HIGHEST_BITRATE
    survivor_id: str | None = None
    path_preferences: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ResolutionFailure:
    group_id: str
    error: Exception


@dataclass(frozen=True, slots=True)
class ResolutionReport:
    applied: tuple[MergeRecord, ...] = ()
    failed: tuple[ResolutionFailure, ...] = ()


_METADATA_FIELDS = (
    "title",
    "artist",
    "album",
    "duration_seconds",
    "bitrate_kbps",
    "file_size_bytes",
    "date_added",
)


def metadata_completeness(track: Track) -> int:
    return sum(1 for name in _METADATA_FIELDS if getattr(track, name) not in (None, ""))


def _bitrate(track: Track) -> int:
    return track.bitrate_kbps if track.bitrate_kbps is not None else -1


def _added_timestamp(track: Track) -> float | None:
    return track.date_added.timestamp() if track.date_added is not None else None


def _quality_key(track: Track) -> tuple[int, int]:
    return (-_bitrate(track), -metadata_completeness(track))


def _preference_rank(track: Track, preferences: tuple[str, ...]) -> int:
    """Index of the first preference found anywhere in the location, ignoring case."""

    location = track.location.casefold()
    for rank, fragment in enumerate(preferences):
        if fragment and fragment.casefold() in location:
            return rank
    return len(preferences)


def choose_survivor(
    members: list[Track],
    resolution: DuplicateResolution,
    position: Callable[[str], int],
) -> Track:
    """Pick the surviving track; ties fall back to import order."""

    if resolution.survivor_id is not None:
        for track in members:
            if track.id == resolution.survivor_id:
                return track
        raise InvalidResolutionError(
            f"Survivor {resolution.survivor_id} is not a member of group {resolution.group_id}"
        )

    match resolution.policy:
        case MergePolicy.KEEP_EXPLICIT_CHOICE:
            raise InvalidResolutionError(
                f"Group {resolution.group_id}: keep-explicit-choice requires a survivor id"
            )
        case MergePolicy.KEEP_HIGHEST_BITRATE:
            return min(members, key=lambda t: (*_quality_key(t), position(t.id)))
        case MergePolicy.KEEP_MOST_COMPLETE_METADATA:
            return min(
                members,
                key=lambda t: (-metadata_completeness(t), -_bitrate(t), position(t.id)),
            )
        case MergePolicy.KEEP_NEWEST:

            def newest_key(track: Track) -> tuple[int, float, int]:
                stamp = _added_timestamp(track)
                return (stamp is None, -(stamp or 0.0), position(track.id))

            return min(members, key=newest_key)
        case MergePolicy.KEEP_OLDEST:

            def oldest_key(track: Track) -> tuple[int, float, int]:
                stamp = _added_timestamp(track)
                return (stamp is None, stamp or 0.0, position(track.id))

            return min(members, key=oldest_key)
        case MergePolicy.KEEP_PREFERRED_PATH:
            # Without preferences every rank is 0 and quality decides.
            preferences = resolution.path_preferences
            return min(
                members,
                key=lambda t: (
                    _preference_rank(t, preferences),
                    *_quality_key(t),
                    position(t.id),
                ),
            )


@dataclass(slots=True, kw_only=True)
class DuplicateResolver:
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def resolve_duplicates(
        self,
        index: LibraryIndex,
        resolutions: Iterable[DuplicateResolution],
        groups: Iterable[DuplicateGroup],
    ) -> ResolutionReport:
        groups_by_id = {group.group_id: group for group in groups}
        requested = list(resolutions)
        for resolution in requested:
            if not isinstance(resolution, DuplicateResolution):
                raise InvalidInputError(
                    f"Expected a DuplicateResolution, got {type(resolution).__name__}"
                )

        applied: list[MergeRecord] = []
        failed: list[ResolutionFailure] = []
        for resolution in requested:
            try:
                record = self._apply(index, resolution, groups_by_id.get(resolution.group_id))
            except ReconciliationError as exc:
                self.logger.warning("Resolution of %s failed: %s", resolution.group_id, exc)
                failed.append(ResolutionFailure(resolution.group_id, exc))
                continue
            except Exception as exc:
                self.logger.exception("Unexpected error resolving %s", resolution.group_id)
                failed.append(ResolutionFailure(resolution.group_id, exc))
                continue
            applied.append(record)

        self.logger.info(
            "Resolved duplicate groups: applied=%d, failed=%d", len(applied), len(failed)
        )
        return ResolutionReport(applied=tuple(applied), failed=tuple(failed))

    def _apply(
        self,
        index: LibraryIndex,
        resolution: DuplicateResolution,
        group: DuplicateGroup | None,
    ) -> MergeRecord:
        if group is None:
            raise InvalidResolutionError(f"Unknown duplicate group: {resolution.group_id}")

        with index.mutation():
            members: list[Track] = []
            for track_id in group.track_ids:
                track = index.get(track_id)
                if track is None:
                    raise InvalidResolutionError(
                        f"Track {track_id} of group {group.group_id} is no longer in the library"
                    )
                members.append(track)

            survivor = choose_survivor(members, resolution, index.position)
            losers = [track for track in members if track.id != survivor.id]
            added = [track.date_added for track in members if track.date_added is not None]
            index.update_track(
                survivor.id,
                rating=max(track.rating for track in members),
                play_count=max(track.play_count for track in members),
                date_added=min(added) if added else None,
            )
            rewritten = index.rewrite_references({track.id: survivor.id for track in losers})
            for loser in losers:
                index.remove_track(loser.id)

        self.logger.debug(
            "Merged group %s into %s (removed %s)",
            group.group_id,
            survivor.id,
            ", ".join(track.id for track in losers),
        )
        return MergeRecord(
            group_id=group.group_id,
            survivor_id=survivor.id,
            removed_ids=tuple(track.id for track in losers),
            rewritten_playlist_ids=rewritten,
        )

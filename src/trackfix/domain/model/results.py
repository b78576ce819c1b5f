"""Read-only detector results and fix acknowledgements.

Results reference tracks by id, never by copy; appliers re-read the current
track from the index before mutating it.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from statistics import fmean
from typing import TYPE_CHECKING

from trackfix.domain.errors import InvalidInputError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from trackfix.domain.model.enums import (
        CloudSyncIssueKind,
        ConfidenceLevel,
        Evidence,
        RelocationStatus,
    )


def duplicate_group_id(track_ids: Iterable[str]) -> str:
    """Derive a stable group id from the member ids (order-independent)."""

    digest = hashlib.blake2b(digest_size=8)
    for track_id in sorted(track_ids):
        digest.update(track_id.encode("utf-8"))
        digest.update(b"\x00")
    return f"dup-{digest.hexdigest()}"


@dataclass(frozen=True, slots=True)
class PairScore:
    first_id: str
    second_id: str
    score: float


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateGroup:
    group_id: str
    track_ids: tuple[str, ...]
    pair_scores: tuple[PairScore, ...] = ()

    def __post_init__(self) -> None:
        if len(self.track_ids) < 2:
            raise InvalidInputError("A duplicate group needs at least two tracks")

    def __contains__(self, track_id: object) -> bool:
        return track_id in self.track_ids

    @property
    def confidence(self) -> float:
        if not self.pair_scores:
            return 0.0
        return fmean(pair.score for pair in self.pair_scores)

    def score_for(self, first_id: str, second_id: str) -> float | None:
        for pair in self.pair_scores:
            if {pair.first_id, pair.second_id} == {first_id, second_id}:
                return pair.score
        return None


@dataclass(frozen=True, slots=True, kw_only=True)
class RelocationCandidate:
    track_id: str
    candidate_path: str
    confidence: float
    level: ConfidenceLevel
    evidence: frozenset[Evidence] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True, kw_only=True)
class CloudSyncIssue:
    track_id: str
    issue_kind: CloudSyncIssueKind
    expected_path: str
    actual_path: str | None
    provider: str


@dataclass(frozen=True, slots=True, kw_only=True)
class OwnershipIssue:
    track_id: str
    conflicting_computer_ids: frozenset[str]
    suggested_owner_id: str
    current_owner_id: str | None = None

    def __post_init__(self) -> None:
        if len(self.conflicting_computer_ids) < 2:
            raise InvalidInputError("An ownership conflict needs at least two computers")
        if self.suggested_owner_id not in self.conflicting_computer_ids:
            raise InvalidInputError("Suggested owner must be one of the conflicting computers")


@dataclass(frozen=True, slots=True)
class OwnershipIntegrityReport:
    total_tracks: int
    tracks_with_owners: int
    tracks_with_valid_owners: int
    grey_tracks: int
    orphaned_tracks: int


# Acknowledgements -------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MergeRecord:
    group_id: str
    survivor_id: str
    removed_ids: tuple[str, ...]
    rewritten_playlist_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RelocationAck:
    track_id: str
    old_location: str
    new_location: str


@dataclass(frozen=True, slots=True)
class AutoRelocation:
    track_id: str
    status: RelocationStatus
    new_location: str | None = None
    confidence: float | None = None
    candidates: tuple[RelocationCandidate, ...] = ()


@dataclass(frozen=True, slots=True)
class CloudSyncFix:
    track_id: str
    issue_kind: CloudSyncIssueKind
    field_name: str
    previous_value: str | None
    new_value: str


@dataclass(frozen=True, slots=True)
class OwnershipFix:
    track_id: str
    previous_owner_id: str | None
    new_owner_id: str

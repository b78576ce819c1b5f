"""Duplicate detection over the library index.

Tracks are bucketed by their normalized artist/title key, every pair inside a
bucket is scored, and pairs at or above the threshold become edges. Connected
components of that graph are the duplicate groups, so duplicate-ness is
transitive: A~B and B~C put A, B and C in one group even if A and C score low.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import TYPE_CHECKING, Protocol

from trackfix.domain.model import (
    ConfidenceLevel,
    ConfidenceThresholds,
    DuplicateGroup,
    PairScore,
    ScoringWeights,
    Threshold,
    duplicate_group_id,
)
from trackfix.domain.normalize import match_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from trackfix.domain.index import LibraryIndex
    from trackfix.domain.model import Track


class PairScorer(Protocol):
    def score(self, a: Track, b: Track, *, weights: ScoringWeights | None = None) -> float: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateOptions:
    threshold: Threshold = ConfidenceLevel.HIGH
    weights: ScoringWeights | None = None


class _UnionFind:
    def __init__(self, items: Iterable[str]) -> None:
        self._parent = {item: item for item in items}

    def find(self, item: str) -> str:
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, left: str, right: str) -> None:
        left_root = self.find(left)
        right_root = self.find(right)
        if left_root != right_root:
            self._parent[right_root] = left_root


@dataclass(slots=True, kw_only=True)
class DuplicateDetector:
    scorer: PairScorer
    thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def find_duplicates(
        self,
        index: LibraryIndex,
        options: DuplicateOptions | None = None,
        *,
        tracks: Iterable[Track] | None = None,
    ) -> tuple[DuplicateGroup, ...]:
        """Group likely duplicates among ``tracks`` (default: the whole index)."""

        opts = options or DuplicateOptions()
        threshold = self.thresholds.resolve(opts.threshold)
        candidates = index.tracks() if tracks is None else tuple(tracks)
        ordered = sorted(candidates, key=lambda track: index.position(track.id))

        buckets: dict[str, list[Track]] = {}
        for track in ordered:
            buckets.setdefault(match_key(track.artist, track.title), []).append(track)

        union_find = _UnionFind(track.id for track in ordered)
        pair_scores: dict[str, list[PairScore]] = {}
        for bucket in buckets.values():
            if len(bucket) < 2:
                continue
            for left, right in combinations(bucket, 2):
                score = self.scorer.score(left, right, weights=opts.weights)
                self.logger.debug("Scored %s/%s: %.6f", left.id, right.id, score)
                if score >= threshold:
                    union_find.union(left.id, right.id)
                pair_scores.setdefault(left.id, []).append(PairScore(left.id, right.id, score))

        members: dict[str, list[str]] = {}
        for track in ordered:
            members.setdefault(union_find.find(track.id), []).append(track.id)

        groups: list[DuplicateGroup] = []
        for track_ids in members.values():
            if len(track_ids) < 2:
                continue
            member_set = set(track_ids)
            scores = tuple(
                pair
                for track_id in track_ids
                for pair in pair_scores.get(track_id, ())
                if pair.second_id in member_set
            )
            groups.append(
                DuplicateGroup(
                    group_id=duplicate_group_id(track_ids),
                    track_ids=tuple(track_ids),
                    pair_scores=scores,
                )
            )

        self.logger.info(
            "Duplicate scan finished: tracks=%d, buckets=%d, groups=%d, threshold=%.2f",
            len(ordered),
            len(buckets),
            len(groups),
            threshold,
        )
        return tuple(groups)

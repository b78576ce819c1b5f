"""Shared similarity primitive used by every detector.

Each signal yields a similarity in ``[0, 1]``. Signals whose inputs are
missing on either side are left out and the remaining weights renormalized,
so an absent duration never drags a score down. Every per-signal function is
symmetric in its arguments, which makes ``score(a, b) == score(b, a)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rapidfuzz.distance import Levenshtein

from trackfix.domain.model import (
    DUPLICATE_WEIGHTS,
    ConfidenceLevel,
    ConfidenceThresholds,
    ScoringWeights,
    Signal,
)
from trackfix.domain.normalize import basename_stem, normalize_text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from trackfix.domain.model import Track

_SCORE_DIGITS = 6


def text_similarity(left: str | None, right: str | None) -> float | None:
    """Normalized Levenshtein similarity, ``None`` when either side is blank."""

    a = normalize_text(left)
    b = normalize_text(right)
    if not a or not b:
        return None
    if a == b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def duration_similarity(left: float | None, right: float | None, tolerance: float) -> float | None:
    if left is None or right is None:
        return None
    if tolerance <= 0:
        return 1.0 if left == right else 0.0
    return max(0.0, 1.0 - abs(left - right) / tolerance)


def size_similarity(left: int | None, right: int | None, tolerance_ratio: float) -> float | None:
    if left is None or right is None:
        return None
    largest = max(left, right)
    if largest == 0:
        return 1.0
    if tolerance_ratio <= 0:
        return 1.0 if left == right else 0.0
    return max(0.0, 1.0 - abs(left - right) / (tolerance_ratio * largest))


def path_edit_distance(left: str, right: str) -> int:
    """Raw edit distance between two paths, used to break ranking ties."""

    return Levenshtein.distance(left, right)


@dataclass(slots=True, kw_only=True)
class ConfidenceScorer:
    weights: ScoringWeights = DUPLICATE_WEIGHTS
    thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)
    duration_tolerance_seconds: float = 2.0
    size_tolerance_ratio: float = 0.02

    def breakdown(
        self,
        a: Track,
        b: Track,
        *,
        signals: Iterable[Signal] | None = None,
    ) -> dict[Signal, float]:
        """Per-signal similarities for the signals available on both tracks."""

        selected = tuple(Signal) if signals is None else tuple(signals)
        result: dict[Signal, float] = {}
        for signal in selected:
            value = self._signal(signal, a, b)
            if value is not None:
                result[signal] = value
        return result

    def score(
        self,
        a: Track,
        b: Track,
        *,
        signals: Iterable[Signal] | None = None,
        weights: ScoringWeights | None = None,
    ) -> float:
        effective = weights or self.weights
        total_weight = 0.0
        weighted = 0.0
        for signal, similarity in self.breakdown(a, b, signals=signals).items():
            weight = effective.for_signal(signal)
            if weight <= 0:
                continue
            total_weight += weight
            weighted += weight * similarity
        if total_weight <= 0:
            return 0.0
        return round(weighted / total_weight, _SCORE_DIGITS)

    def classify(self, score: float) -> ConfidenceLevel:
        return self.thresholds.classify(score)

    def _signal(self, signal: Signal, a: Track, b: Track) -> float | None:
        match signal:
            case Signal.TITLE:
                return text_similarity(a.title, b.title)
            case Signal.ARTIST:
                return text_similarity(a.artist, b.artist)
            case Signal.ALBUM:
                return text_similarity(a.album, b.album)
            case Signal.DURATION:
                return duration_similarity(
                    a.duration_seconds, b.duration_seconds, self.duration_tolerance_seconds
                )
            case Signal.SIZE:
                return size_similarity(
                    a.file_size_bytes, b.file_size_bytes, self.size_tolerance_ratio
                )
            case Signal.PATH:
                return text_similarity(basename_stem(a.location), basename_stem(b.location))

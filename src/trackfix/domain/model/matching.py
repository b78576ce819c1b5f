"""Scoring weights and confidence thresholds.

These are explicit configuration values: detectors receive them from
``trackfix.config.MatchingConfig`` or per call site, never from hidden
module constants.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from trackfix.domain.errors import InvalidInputError
from trackfix.domain.model.enums import ConfidenceLevel, Signal

type Threshold = ConfidenceLevel | float | str


@dataclass(frozen=True, slots=True, kw_only=True)
class ScoringWeights:
    title: float = 0.3
    artist: float = 0.3
    album: float = 0.0
    duration: float = 0.15
    size: float = 0.15
    path: float = 0.1

    def __post_init__(self) -> None:
        values = [getattr(self, f.name) for f in fields(self)]
        if any(value < 0 for value in values):
            raise InvalidInputError("Scoring weights must be non-negative")
        if sum(values) <= 0:
            raise InvalidInputError("At least one scoring weight must be positive")

    def for_signal(self, signal: Signal) -> float:
        return float(getattr(self, signal.value))


DUPLICATE_WEIGHTS = ScoringWeights()
RELOCATION_WEIGHTS = ScoringWeights(
    title=0.15,
    artist=0.15,
    album=0.0,
    duration=0.15,
    size=0.15,
    path=0.4,
)


@dataclass(frozen=True, slots=True, kw_only=True)
class ConfidenceThresholds:
    """Lower bounds of each confidence level; anything below ``medium`` is low."""

    exact: float = 0.95
    high: float = 0.80
    medium: float = 0.60

    def __post_init__(self) -> None:
        if not 0.0 <= self.medium <= self.high <= self.exact <= 1.0:
            raise InvalidInputError(
                "Confidence thresholds must satisfy 0 <= medium <= high <= exact <= 1"
            )

    def value_for(self, level: ConfidenceLevel) -> float:
        match level:
            case ConfidenceLevel.EXACT:
                return self.exact
            case ConfidenceLevel.HIGH:
                return self.high
            case ConfidenceLevel.MEDIUM:
                return self.medium
            case ConfidenceLevel.LOW:
                return 0.0

    def classify(self, score: float) -> ConfidenceLevel:
        if score >= self.exact:
            return ConfidenceLevel.EXACT
        if score >= self.high:
            return ConfidenceLevel.HIGH
        if score >= self.medium:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def resolve(self, threshold: Threshold) -> float:
        """Turn a level, a level name or a raw number into a numeric threshold."""

        if isinstance(threshold, ConfidenceLevel):
            return self.value_for(threshold)
        if isinstance(threshold, str):
            try:
                return self.value_for(ConfidenceLevel(threshold.strip().lower()))
            except ValueError:
                try:
                    threshold = float(threshold)
                except ValueError as exc:
                    raise InvalidInputError(f"Unknown confidence threshold: {threshold!r}") from exc
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InvalidInputError(f"Unknown confidence threshold: {threshold!r}")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidInputError(f"Confidence threshold out of range: {threshold}")
        return float(threshold)

"""Matching thresholds, tolerances and scoring weights."""

from __future__ import annotations

from dataclasses import dataclass, field

from trackfix.domain.errors import InvalidInputError
from trackfix.domain.model import (
    DUPLICATE_WEIGHTS,
    RELOCATION_WEIGHTS,
    ConfidenceLevel,
    ConfidenceThresholds,
    ScoringWeights,
    Threshold,
)

from .env import env_float, optional_env
from .errors import ConfigurationError

DEFAULT_DURATION_TOLERANCE_SECONDS = 2.0
DEFAULT_SIZE_TOLERANCE_RATIO = 0.02


@dataclass(frozen=True, slots=True, kw_only=True)
class MatchingConfig:
    thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)
    duplicate_weights: ScoringWeights = DUPLICATE_WEIGHTS
    relocation_weights: ScoringWeights = RELOCATION_WEIGHTS
    duration_tolerance_seconds: float = DEFAULT_DURATION_TOLERANCE_SECONDS
    size_tolerance_ratio: float = DEFAULT_SIZE_TOLERANCE_RATIO
    duplicate_threshold: Threshold = ConfidenceLevel.HIGH
    auto_relocate_threshold: Threshold = ConfidenceLevel.HIGH


def _threshold_env(name: str, thresholds: ConfidenceThresholds) -> Threshold:
    value = optional_env(name)
    if value is None:
        return ConfidenceLevel.HIGH
    try:
        thresholds.resolve(value)
    except InvalidInputError as exc:
        raise ConfigurationError(f"Invalid threshold for {name}: {value!r}") from exc
    try:
        return ConfidenceLevel(value.lower())
    except ValueError:
        return float(value)


def get_matching_config() -> MatchingConfig:
    thresholds = ConfidenceThresholds()
    duration = env_float("TRACKFIX_DURATION_TOLERANCE_SECONDS", DEFAULT_DURATION_TOLERANCE_SECONDS)
    size_ratio = env_float("TRACKFIX_SIZE_TOLERANCE_RATIO", DEFAULT_SIZE_TOLERANCE_RATIO)
    if duration < 0:
        raise ConfigurationError("TRACKFIX_DURATION_TOLERANCE_SECONDS must be non-negative")
    if size_ratio < 0:
        raise ConfigurationError("TRACKFIX_SIZE_TOLERANCE_RATIO must be non-negative")
    return MatchingConfig(
        thresholds=thresholds,
        duration_tolerance_seconds=duration,
        size_tolerance_ratio=size_ratio,
        duplicate_threshold=_threshold_env("TRACKFIX_DUPLICATE_THRESHOLD", thresholds),
        auto_relocate_threshold=_threshold_env("TRACKFIX_AUTO_RELOCATE_THRESHOLD", thresholds),
    )

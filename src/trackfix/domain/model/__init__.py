"""Public domain model surface."""

from __future__ import annotations

from trackfix.domain.model.enums import (
    EVIDENCE_BY_SIGNAL,
    BatchOutcome,
    CloudSyncIssueKind,
    ConfidenceLevel,
    Evidence,
    MergePolicy,
    RelocationStatus,
    ScanKind,
    Signal,
)
from trackfix.domain.model.library import Computer, FileProbe, Library, Playlist, Track
from trackfix.domain.model.matching import (
    DUPLICATE_WEIGHTS,
    RELOCATION_WEIGHTS,
    ConfidenceThresholds,
    ScoringWeights,
    Threshold,
)
from trackfix.domain.model.results import (
    AutoRelocation,
    CloudSyncFix,
    CloudSyncIssue,
    DuplicateGroup,
    MergeRecord,
    OwnershipFix,
    OwnershipIntegrityReport,
    OwnershipIssue,
    PairScore,
    RelocationAck,
    RelocationCandidate,
    duplicate_group_id,
)

__all__ = [  # noqa: RUF022
    # enums
    "BatchOutcome",
    "CloudSyncIssueKind",
    "ConfidenceLevel",
    "EVIDENCE_BY_SIGNAL",
    "Evidence",
    "MergePolicy",
    "RelocationStatus",
    "ScanKind",
    "Signal",
    # library snapshot
    "Computer",
    "FileProbe",
    "Library",
    "Playlist",
    "Track",
    # matching configuration
    "ConfidenceThresholds",
    "DUPLICATE_WEIGHTS",
    "RELOCATION_WEIGHTS",
    "ScoringWeights",
    "Threshold",
    # results
    "AutoRelocation",
    "CloudSyncFix",
    "CloudSyncIssue",
    "DuplicateGroup",
    "MergeRecord",
    "OwnershipFix",
    "OwnershipIntegrityReport",
    "OwnershipIssue",
    "PairScore",
    "RelocationAck",
    "RelocationCandidate",
    "duplicate_group_id",
]

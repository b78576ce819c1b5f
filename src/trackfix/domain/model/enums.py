"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ConfidenceLevel(StrEnum):
    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Signal(StrEnum):
    """Similarity signals combined by the confidence scorer."""

    TITLE = "title"
    ARTIST = "artist"
    ALBUM = "album"
    DURATION = "duration"
    SIZE = "size"
    PATH = "path"


class Evidence(StrEnum):
    """Coarse evidence categories reported on relocation candidates."""

    FILENAME = "filename"
    METADATA = "metadata"
    SIZE = "size"
    DURATION = "duration"


EVIDENCE_BY_SIGNAL: dict[Signal, Evidence] = {
    Signal.TITLE: Evidence.METADATA,
    Signal.ARTIST: Evidence.METADATA,
    Signal.ALBUM: Evidence.METADATA,
    Signal.DURATION: Evidence.DURATION,
    Signal.SIZE: Evidence.SIZE,
    Signal.PATH: Evidence.FILENAME,
}


class MergePolicy(StrEnum):
    KEEP_HIGHEST_BITRATE = "keep-highest-bitrate"
    KEEP_MOST_COMPLETE_METADATA = "keep-most-complete-metadata"
    KEEP_EXPLICIT_CHOICE = "keep-explicit-choice"
    KEEP_NEWEST = "keep-newest"
    KEEP_OLDEST = "keep-oldest"
    KEEP_PREFERRED_PATH = "keep-preferred-path"


class CloudSyncIssueKind(StrEnum):
    PATH_MISMATCH = "path-mismatch"
    MISSING_CLOUD_PATH = "missing-cloud-path"
    ORPHANED_CLOUD_ENTRY = "orphaned-cloud-entry"


class BatchOutcome(StrEnum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RelocationStatus(StrEnum):
    RELOCATED = "relocated"
    NEEDS_REVIEW = "needs-review"


class ScanKind(StrEnum):
    DUPLICATES = "duplicates"
    MISSING_TRACKS = "missing-tracks"
    RELOCATIONS = "relocations"
    CLOUD_SYNC = "cloud-sync"
    OWNERSHIP = "ownership"

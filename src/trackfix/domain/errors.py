"""Error kinds raised by the reconciliation engine.

Structural problems (bad input, bad references) fail the call that received
them. Batch operations never raise these for a single item; the runner records
them per item in the ``BatchResult`` instead.
"""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for engine errors."""


class InvalidInputError(ReconciliationError, ValueError):
    """Raised for malformed tracks, options or batch inputs."""


class UnknownTrackError(InvalidInputError):
    """Raised when a track id is not present in the library index."""

    def __init__(self, track_id: str) -> None:
        self.track_id = track_id
        super().__init__(f"Unknown track id: {track_id}")


class OperationAlreadyRunningError(InvalidInputError):
    """Raised when a batch is started with an operation id that is still in flight."""

    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id
        super().__init__(f"Batch operation already running: {operation_id}")


class InvalidResolutionError(ReconciliationError):
    """Raised when a resolution references an unknown group, track or survivor."""


class RelocationError(ReconciliationError):
    """Raised when the filesystem collaborator rejects a relocation target."""

    def __init__(self, track_id: str, path: str, reason: str) -> None:
        self.track_id = track_id
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot relocate {track_id} to {path}: {reason}")


class ConflictError(ReconciliationError):
    """Raised when a fix target was changed or resolved by another operation."""

    def __init__(self, track_id: str, reason: str) -> None:
        self.track_id = track_id
        self.reason = reason
        super().__init__(f"Conflict on track {track_id}: {reason}")

"""Request/response surface of the reconciliation engine.

One service instance owns one library session: it builds the index once,
wires the detectors to shared scoring configuration and keeps track of
background batches by operation id.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from trackfix.adapters.snapshot import to_jsonable
from trackfix.config import get_cloud_sync_config, get_matching_config
from trackfix.domain.batch import BatchOperationRunner
from trackfix.domain.cloud_sync import CloudSyncAnalyzer
from trackfix.domain.duplicates import DuplicateDetector, DuplicateOptions
from trackfix.domain.errors import InvalidInputError
from trackfix.domain.index import LibraryIndex
from trackfix.domain.model import ScanKind
from trackfix.domain.ownership import OwnershipResolver
from trackfix.domain.ports.persistence import ScanRecord
from trackfix.domain.relocation import RelocationMatcher, RelocationOptions
from trackfix.domain.resolve import DuplicateResolver
from trackfix.domain.scoring import ConfidenceScorer

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable, Sequence

    from trackfix.config import CloudSyncConfig, MatchingConfig
    from trackfix.domain.batch import (
        BatchFailure,
        BatchOperation,
        BatchResult,
        ProgressCallback,
        ProgressEvent,
    )
    from trackfix.domain.cloud_sync import CloudProvider
    from trackfix.domain.model import (
        AutoRelocation,
        CloudSyncFix,
        CloudSyncIssue,
        Computer,
        DuplicateGroup,
        Library,
        OwnershipFix,
        OwnershipIntegrityReport,
        OwnershipIssue,
        RelocationAck,
        RelocationCandidate,
        Track,
    )
    from trackfix.domain.ports import FilesystemProber, ScanUnitOfWork
    from trackfix.domain.relocation import RelocationRequest
    from trackfix.domain.resolve import DuplicateResolution, ResolutionReport

type UnitOfWorkFactory = Callable[[], ScanUnitOfWork]

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _TrackedOperation:
    operation: BatchOperation[AutoRelocation]
    library_path: str | None
    options: RelocationOptions


class ReconciliationService:
    def __init__(
        self,
        library: Library,
        *,
        prober: FilesystemProber,
        matching: MatchingConfig | None = None,
        cloud: CloudSyncConfig | None = None,
        providers: Sequence[CloudProvider] | None = None,
        unit_of_work_factory: UnitOfWorkFactory | None = None,
        scorer: ConfidenceScorer | None = None,
        runner: BatchOperationRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or log
        self.config = matching or get_matching_config()
        if providers is None:
            providers = (cloud or get_cloud_sync_config()).providers
        thresholds = self.config.thresholds
        self.scorer = scorer or ConfidenceScorer(
            weights=self.config.duplicate_weights,
            thresholds=thresholds,
            duration_tolerance_seconds=self.config.duration_tolerance_seconds,
            size_tolerance_ratio=self.config.size_tolerance_ratio,
        )
        self.index = LibraryIndex.from_library(library)
        self.runner = runner or BatchOperationRunner()
        self.duplicates = DuplicateDetector(scorer=self.scorer, thresholds=thresholds)
        self.resolver = DuplicateResolver()
        self.relocation = RelocationMatcher(
            prober=prober,
            scorer=self.scorer,
            thresholds=thresholds,
            weights=self.config.relocation_weights,
        )
        self.cloud_sync = CloudSyncAnalyzer(providers=tuple(providers))
        self.ownership = OwnershipResolver()
        self._unit_of_work_factory = unit_of_work_factory
        self._groups: dict[str, DuplicateGroup] = {}
        self._operations: dict[str, _TrackedOperation] = {}
        self._finished: dict[str, BatchOperation[AutoRelocation]] = {}

    def library(self) -> Library:
        """Current library value, including every applied fix."""

        return self.index.to_library()

    # Duplicates -------------------------------------------------------------

    def find_duplicates(
        self, options: DuplicateOptions | None = None
    ) -> tuple[DuplicateGroup, ...]:
        opts = options or DuplicateOptions(threshold=self.config.duplicate_threshold)
        groups = self.duplicates.find_duplicates(self.index, opts)
        self._groups = {group.group_id: group for group in groups}
        return groups

    def resolve_duplicates(
        self,
        resolutions: Iterable[DuplicateResolution],
        groups: Iterable[DuplicateGroup] | None = None,
    ) -> ResolutionReport:
        """Apply resolutions against ``groups`` (default: the latest scan)."""

        known = self._groups.values() if groups is None else groups
        report = self.resolver.resolve_duplicates(self.index, resolutions, known)
        for record in report.applied:
            self._groups.pop(record.group_id, None)
        return report

    # Relocation -------------------------------------------------------------

    def find_missing_tracks(self, tracks: Iterable[Track] | None = None) -> tuple[Track, ...]:
        candidates = self.index.tracks() if tracks is None else tracks
        return self.relocation.find_missing_tracks(candidates)

    def find_relocation_candidates(
        self,
        track: Track | str,
        options: RelocationOptions | None = None,
    ) -> tuple[RelocationCandidate, ...]:
        target = self.index.require(track) if isinstance(track, str) else track
        opts = options or self._relocation_options()
        return self.relocation.find_relocation_candidates(target, opts)

    def relocate_track(
        self, track_id: str, old_location: str, new_location: str
    ) -> RelocationAck:
        return self.relocation.relocate_track(self.index, track_id, old_location, new_location)

    async def batch_relocate_tracks(
        self,
        relocations: Sequence[RelocationRequest],
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult[RelocationAck]:
        return await self.relocation.batch_relocate_tracks(
            self.runner,
            self.index,
            relocations,
            operation_id=operation_id,
            on_progress=on_progress,
        )

    def auto_relocate_tracks(
        self,
        tracks: Sequence[Track] | None = None,
        options: RelocationOptions | None = None,
        library_path: str | None = None,
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Start auto-relocation in the background and return its operation id.

        Must be called from a running event loop. When the batch finishes its
        result is stored under ``library_path`` and kept for ``wait``.
        """

        opts = options or self._relocation_options()
        targets = self.find_missing_tracks() if tracks is None else tracks
        operation = self.relocation.start_auto_relocate(
            self.runner,
            self.index,
            targets,
            opts,
            operation_id=operation_id,
            on_progress=on_progress,
        )
        self._operations[operation.operation_id] = _TrackedOperation(
            operation=operation, library_path=library_path, options=opts
        )
        operation.add_done_callback(self._finish_auto_relocate)
        self.logger.info(
            "Started auto-relocation %s for %d track(s)", operation.operation_id, len(targets)
        )
        return operation.operation_id

    def cancel_auto_relocate(self, operation_id: str) -> bool:
        return self.runner.cancel(operation_id)

    def active_operations(self) -> tuple[str, ...]:
        """Ids of auto-relocations that are still running."""

        return tuple(self._operations)

    def progress(self, operation_id: str) -> AsyncIterator[ProgressEvent]:
        return self._operation(operation_id).progress()

    async def wait(self, operation_id: str) -> BatchResult[AutoRelocation]:
        """Result of an auto-relocation, waiting for it if it is still running.

        Each finished result can be collected once.
        """

        operation = self._operation(operation_id)
        try:
            return await operation.result()
        finally:
            self._finished.pop(operation_id, None)

    def _finish_auto_relocate(self, operation: BatchOperation[AutoRelocation]) -> None:
        operation_id = operation.operation_id
        tracked = self._operations.pop(operation_id)
        self._finished[operation_id] = operation
        try:
            result = operation.finished_result()
        except asyncio.CancelledError:
            self.logger.warning(
                "Auto-relocation %s was cancelled by the event loop", operation_id
            )
            return
        except Exception:
            self.logger.exception("Auto-relocation %s failed", operation_id)
            return
        self.logger.info(
            "Auto-relocation %s finished: outcome=%s, processed=%d/%d",
            operation_id,
            result.outcome,
            result.processed,
            result.total,
        )
        if tracked.library_path is not None:
            self.record_scan(
                ScanKind.RELOCATIONS,
                result,
                library_path=tracked.library_path,
                options={"search_paths": list(tracked.options.search_paths)},
            )

    def _operation(self, operation_id: str) -> BatchOperation[AutoRelocation]:
        tracked = self._operations.get(operation_id)
        if tracked is not None:
            return tracked.operation
        finished = self._finished.get(operation_id)
        if finished is None:
            raise InvalidInputError(f"Unknown auto-relocation operation: {operation_id}")
        return finished

    def _relocation_options(self) -> RelocationOptions:
        return RelocationOptions(auto_threshold=self.config.auto_relocate_threshold)

    # Cloud sync -------------------------------------------------------------

    def detect_cloud_sync_issues(
        self, tracks: Iterable[Track] | None = None
    ) -> tuple[CloudSyncIssue, ...]:
        return self.cloud_sync.detect_cloud_sync_issues(
            self.index.tracks() if tracks is None else tracks
        )

    def fix_cloud_sync_issue(self, issue: CloudSyncIssue) -> CloudSyncFix:
        return self.cloud_sync.fix_cloud_sync_issue(self.index, issue)

    async def batch_fix_cloud_sync_issues(
        self,
        issues: Sequence[CloudSyncIssue],
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult[CloudSyncFix]:
        return await self.cloud_sync.batch_fix_cloud_sync_issues(
            self.runner, self.index, issues, operation_id=operation_id, on_progress=on_progress
        )

    # Ownership --------------------------------------------------------------

    def detect_ownership_issues(
        self,
        tracks: Iterable[Track] | None = None,
        computers: Iterable[Computer] | None = None,
    ) -> tuple[OwnershipIssue, ...]:
        return self.ownership.detect_ownership_issues(
            self.index.tracks() if tracks is None else tracks,
            self.index.computers() if computers is None else computers,
        )

    def fix_track_ownership(
        self, issue: OwnershipIssue, owner_id: str | None = None
    ) -> OwnershipFix:
        return self.ownership.fix_track_ownership(self.index, issue, owner_id)

    async def batch_fix_ownership(
        self,
        issues: Sequence[OwnershipIssue],
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult[OwnershipFix]:
        return await self.ownership.batch_fix_ownership(
            self.runner, self.index, issues, operation_id=operation_id, on_progress=on_progress
        )

    def update_library_ownership(
        self,
        library: Library,
        fixes: Iterable[OwnershipFix],
        current_computer: Computer | None = None,
    ) -> tuple[Library, tuple[BatchFailure, ...]]:
        return self.ownership.update_library_ownership(library, fixes, current_computer)

    def validate_ownership_integrity(self) -> OwnershipIntegrityReport:
        return self.ownership.validate_ownership_integrity(
            self.index.tracks(), self.index.computers()
        )

    # Scan store -------------------------------------------------------------

    def record_scan(
        self,
        kind: ScanKind,
        results: object,
        *,
        library_path: str,
        options: dict[str, object] | None = None,
    ) -> ScanRecord | None:
        """Persist ``results`` for ``library_path``; no-op without a store."""

        if self._unit_of_work_factory is None:
            return None
        record = ScanRecord(
            library_path=library_path,
            kind=kind,
            payload=to_jsonable(results),
            options=options or {},
        )
        with self._unit_of_work_factory() as uow:
            saved = uow.repositories.scans.save(record)
            uow.commit()
        self.logger.info("Stored %s scan for %s", kind, library_path)
        return saved

    def load_scan(self, library_path: str, kind: ScanKind) -> ScanRecord | None:
        if self._unit_of_work_factory is None:
            return None
        with self._unit_of_work_factory() as uow:
            return uow.repositories.scans.get(library_path, kind)

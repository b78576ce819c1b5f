"""Cross-computer ownership conflicts.

A track is contested when its location lies under the library roots of two
or more computers. The suggested owner is the computer with the longest
matching root; ties go to the computer whose own tracks were added most
recently, then to the lexically smallest computer id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trackfix.domain.batch import BatchFailure
from trackfix.domain.errors import ConflictError, InvalidInputError, ReconciliationError
from trackfix.domain.index import LibraryIndex
from trackfix.domain.model import OwnershipFix, OwnershipIntegrityReport, OwnershipIssue
from trackfix.domain.normalize import comparable_path, is_under

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime

    from trackfix.domain.batch import BatchOperationRunner, BatchResult, ProgressCallback
    from trackfix.domain.model import Computer, Library, Track


def _longest_root(location: str, computer: Computer) -> int:
    return max(
        (len(comparable_path(root)) for root in computer.library_roots if is_under(location, root)),
        default=0,
    )


def _timestamp(value: datetime | None) -> float:
    return value.timestamp() if value is not None else float("-inf")


@dataclass(slots=True, kw_only=True)
class OwnershipResolver:
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def detect_ownership_issues(
        self,
        tracks: Iterable[Track],
        computers: Iterable[Computer],
    ) -> tuple[OwnershipIssue, ...]:
        candidates = tuple(tracks)
        machines = tuple(computer for computer in computers if computer.library_roots)
        latest_added: dict[str, float] = {}
        for track in candidates:
            if track.owner_computer_id is None or track.date_added is None:
                continue
            stamp = _timestamp(track.date_added)
            previous = latest_added.get(track.owner_computer_id, float("-inf"))
            latest_added[track.owner_computer_id] = max(previous, stamp)

        issues: list[OwnershipIssue] = []
        for track in candidates:
            if not track.location:
                continue
            depths = {
                computer.computer_id: depth
                for computer in machines
                if (depth := _longest_root(track.location, computer)) > 0
            }
            if len(depths) < 2:
                continue
            suggested = min(
                depths,
                key=lambda cid: (
                    -depths[cid],
                    -latest_added.get(cid, float("-inf")),
                    cid,
                ),
            )
            self.logger.debug(
                "Ownership conflict on %s: %s, suggesting %s",
                track.id,
                sorted(depths),
                suggested,
            )
            issues.append(
                OwnershipIssue(
                    track_id=track.id,
                    conflicting_computer_ids=frozenset(depths),
                    suggested_owner_id=suggested,
                    current_owner_id=track.owner_computer_id,
                )
            )
        self.logger.info(
            "Ownership scan finished: tracks=%d, computers=%d, conflicts=%d",
            len(candidates),
            len(machines),
            len(issues),
        )
        return tuple(issues)

    def fix_track_ownership(
        self,
        index: LibraryIndex,
        issue: OwnershipIssue,
        owner_id: str | None = None,
    ) -> OwnershipFix:
        target = owner_id or issue.suggested_owner_id
        if target not in issue.conflicting_computer_ids:
            raise InvalidInputError(
                f"Owner {target} is not one of the conflicting computers for {issue.track_id}"
            )
        with index.mutation():
            current = index.get(issue.track_id)
            if current is None:
                raise ConflictError(issue.track_id, "track no longer exists")
            if current.owner_computer_id == target:
                return OwnershipFix(issue.track_id, target, target)
            if current.owner_computer_id != issue.current_owner_id:
                raise ConflictError(
                    issue.track_id,
                    f"owner changed to {current.owner_computer_id!r} since detection",
                )
            index.set_owner(issue.track_id, target)
        self.logger.info(
            "Assigned %s to %s (was %s)", issue.track_id, target, issue.current_owner_id
        )
        return OwnershipFix(issue.track_id, issue.current_owner_id, target)

    async def batch_fix_ownership(
        self,
        runner: BatchOperationRunner,
        index: LibraryIndex,
        issues: Sequence[OwnershipIssue],
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult[OwnershipFix]:
        return await runner.run(
            issues,
            lambda issue: self.fix_track_ownership(index, issue),
            operation_id=operation_id,
            item_id=lambda issue: issue.track_id,
            on_progress=on_progress,
        )

    def update_library_ownership(
        self,
        library: Library,
        fixes: Iterable[OwnershipFix],
        current_computer: Computer | None = None,
    ) -> tuple[Library, tuple[BatchFailure, ...]]:
        """Apply accepted fixes to a library value, one track at a time.

        A fix whose track vanished or whose owner moved elsewhere is reported
        as a failure and leaves that track untouched. ``current_computer`` is
        registered when the library does not know it yet.
        """

        index = LibraryIndex.from_library(library, logger=self.logger)
        failures: list[BatchFailure] = []
        applied = 0
        for fix in fixes:
            try:
                with index.mutation():
                    track = index.get(fix.track_id)
                    if track is None:
                        raise ConflictError(fix.track_id, "track no longer exists")
                    if track.owner_computer_id not in (fix.previous_owner_id, fix.new_owner_id):
                        raise ConflictError(
                            fix.track_id,
                            f"owner is {track.owner_computer_id!r}, "
                            f"expected {fix.previous_owner_id!r}",
                        )
                    index.set_owner(fix.track_id, fix.new_owner_id)
            except ReconciliationError as exc:
                self.logger.warning("Ownership update of %s failed: %s", fix.track_id, exc)
                failures.append(BatchFailure(fix.track_id, exc))
                continue
            applied += 1
        if current_computer is not None and index.register_computer(current_computer):
            self.logger.info("Registered computer %s", current_computer.computer_id)
        self.logger.info(
            "Updated library ownership: applied=%d, failed=%d", applied, len(failures)
        )
        return index.to_library(), tuple(failures)

    def validate_ownership_integrity(
        self,
        tracks: Iterable[Track],
        computers: Iterable[Computer],
    ) -> OwnershipIntegrityReport:
        active = {computer.computer_id for computer in computers if computer.is_active}
        total = with_owner = valid = grey = orphaned = 0
        for track in tracks:
            total += 1
            owner = track.owner_computer_id
            if owner is None:
                grey += 1
                continue
            with_owner += 1
            if owner in active:
                valid += 1
            else:
                orphaned += 1
        return OwnershipIntegrityReport(
            total_tracks=total,
            tracks_with_owners=with_owner,
            tracks_with_valid_owners=valid,
            grey_tracks=grey,
            orphaned_tracks=orphaned,
        )

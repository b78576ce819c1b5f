"""Reconcile library locations with cloud-provider relative paths.

A track stored under a provider's sync root should carry the cloud path
derived from its location (``/`` separated, leading ``/``). Tracks that carry
a cloud path but live outside every root are orphaned entries; their
expected location is the cloud path rebuilt under the first provider's
primary root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from trackfix.domain.errors import ConflictError, InvalidInputError
from trackfix.domain.model import CloudSyncFix, CloudSyncIssue, CloudSyncIssueKind
from trackfix.domain.normalize import comparable_path, is_under, relative_to_root

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from trackfix.domain.batch import BatchOperationRunner, BatchResult, ProgressCallback
    from trackfix.domain.index import LibraryIndex
    from trackfix.domain.model import Track


@dataclass(frozen=True, slots=True)
class CloudProvider:
    name: str
    roots: tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.roots, str):
            raise InvalidInputError("Provider roots must be a sequence of paths")

    @property
    def primary_root(self) -> str | None:
        return self.roots[0] if self.roots else None


def derive_cloud_path(location: str, root: str) -> str:
    return "/" + relative_to_root(location, root)


def join_under_root(root: str, cloud_path: str) -> str:
    """Rebuild a local path from a root and a provider-relative path."""

    separator = "\\" if "\\" in root and "/" not in root else "/"
    parts = [part for part in cloud_path.replace("\\", "/").split("/") if part]
    base = root.rstrip("/\\") or root[:1]
    if base in ("/", "\\"):
        return base + separator.join(parts)
    return separator.join([base, *parts])


@dataclass(slots=True, kw_only=True)
class CloudSyncAnalyzer:
    providers: tuple[CloudProvider, ...] = ()
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def _matching_root(self, location: str) -> tuple[CloudProvider, str] | None:
        best: tuple[CloudProvider, str] | None = None
        for provider in self.providers:
            for root in provider.roots:
                if not is_under(location, root):
                    continue
                if best is None or len(comparable_path(root)) > len(comparable_path(best[1])):
                    best = (provider, root)
        return best

    def _orphan_target(self) -> tuple[CloudProvider, str] | None:
        for provider in self.providers:
            if provider.primary_root:
                return provider, provider.primary_root
        return None

    def issue_for(self, track: Track) -> CloudSyncIssue | None:
        match = self._matching_root(track.location) if track.location else None
        if match is not None:
            provider, root = match
            derived = derive_cloud_path(track.location, root)
            if not track.cloud_path:
                return CloudSyncIssue(
                    track_id=track.id,
                    issue_kind=CloudSyncIssueKind.MISSING_CLOUD_PATH,
                    expected_path=derived,
                    actual_path=track.cloud_path,
                    provider=provider.name,
                )
            if comparable_path(track.cloud_path) != comparable_path(derived):
                return CloudSyncIssue(
                    track_id=track.id,
                    issue_kind=CloudSyncIssueKind.PATH_MISMATCH,
                    expected_path=derived,
                    actual_path=track.cloud_path,
                    provider=provider.name,
                )
            return None
        if not track.cloud_path:
            return None
        target = self._orphan_target()
        if target is None:
            return None
        provider, root = target
        return CloudSyncIssue(
            track_id=track.id,
            issue_kind=CloudSyncIssueKind.ORPHANED_CLOUD_ENTRY,
            expected_path=join_under_root(root, track.cloud_path),
            actual_path=track.location,
            provider=provider.name,
        )

    def detect_cloud_sync_issues(self, tracks: Iterable[Track]) -> tuple[CloudSyncIssue, ...]:
        issues: list[CloudSyncIssue] = []
        scanned = 0
        for track in tracks:
            scanned += 1
            issue = self.issue_for(track)
            if issue is not None:
                self.logger.debug("Cloud sync issue %s on %s", issue.issue_kind, track.id)
                issues.append(issue)
        self.logger.info("Cloud sync scan finished: tracks=%d, issues=%d", scanned, len(issues))
        return tuple(issues)

    def fix_cloud_sync_issue(self, index: LibraryIndex, issue: CloudSyncIssue) -> CloudSyncFix:
        """Rewrite the field the issue is about, unless it changed since detection."""

        with index.mutation():
            current = index.get(issue.track_id)
            if current is None:
                raise ConflictError(issue.track_id, "track no longer exists")
            if issue.issue_kind is CloudSyncIssueKind.ORPHANED_CLOUD_ENTRY:
                field_name = "location"
                previous = current.location
            else:
                field_name = "cloud_path"
                previous = current.cloud_path
            if (previous or None) != (issue.actual_path or None):
                raise ConflictError(
                    issue.track_id,
                    f"{field_name} is {previous!r}, expected {issue.actual_path!r}",
                )
            index.update_track(issue.track_id, **{field_name: issue.expected_path})
        self.logger.info(
            "Fixed %s on %s: %s -> %s",
            issue.issue_kind,
            issue.track_id,
            previous,
            issue.expected_path,
        )
        return CloudSyncFix(
            track_id=issue.track_id,
            issue_kind=issue.issue_kind,
            field_name=field_name,
            previous_value=previous,
            new_value=issue.expected_path,
        )

    async def batch_fix_cloud_sync_issues(
        self,
        runner: BatchOperationRunner,
        index: LibraryIndex,
        issues: Sequence[CloudSyncIssue],
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult[CloudSyncFix]:
        return await runner.run(
            issues,
            lambda issue: self.fix_cloud_sync_issue(index, issue),
            operation_id=operation_id,
            item_id=lambda issue: issue.track_id,
            on_progress=on_progress,
        )

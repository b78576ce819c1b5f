"""Application orchestration entry points used by the CLI."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from trackfix.adapters.filesystem import LocalFilesystemProber
from trackfix.adapters.snapshot import dump_library, load_library, to_jsonable
from trackfix.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyScanUnitOfWork,
    is_started,
    startup,
)
from trackfix.domain.cloud_sync import CloudProvider
from trackfix.domain.duplicates import DuplicateOptions
from trackfix.domain.model import MergePolicy, ScanKind
from trackfix.domain.relocation import RelocationOptions
from trackfix.domain.resolve import DuplicateResolution
from trackfix.service import ReconciliationService

if TYPE_CHECKING:
    from pathlib import Path

    from trackfix.domain.batch import BatchResult
    from trackfix.domain.model import AutoRelocation, Threshold

log = getLogger(__name__)

type Report = dict[str, object]


def open_session(
    snapshot: str | Path,
    *,
    store: bool = False,
    cloud_roots: tuple[str, ...] = (),
) -> ReconciliationService:
    """Load a snapshot and build a service around it."""

    library = load_library(snapshot)
    unit_of_work_factory = None
    if store:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyScanUnitOfWork
    providers = (CloudProvider(name="dropbox", roots=cloud_roots),) if cloud_roots else None
    return ReconciliationService(
        library,
        prober=LocalFilesystemProber(),
        providers=providers,
        unit_of_work_factory=unit_of_work_factory,
    )


def _finish(
    service: ReconciliationService,
    report: Report,
    output: str | Path | None,
) -> Report:
    if output is not None:
        dump_library(service.library(), output)
        report["output"] = str(output)
    return report


def run_duplicates(
    snapshot: str | Path,
    *,
    threshold: Threshold | None = None,
    policy: MergePolicy = MergePolicy.KEEP_HIGHEST_BITRATE,
    apply: bool = False,
    output: str | Path | None = None,
    store: bool = False,
) -> Report:
    service = open_session(snapshot, store=store)
    options = DuplicateOptions(threshold=threshold) if threshold is not None else None
    groups = service.find_duplicates(options)
    report: Report = {"groups": to_jsonable(groups)}
    if store:
        service.record_scan(
            ScanKind.DUPLICATES,
            groups,
            library_path=str(snapshot),
            options={"threshold": to_jsonable(threshold)},
        )
    if apply and groups:
        resolutions = [
            DuplicateResolution(group_id=group.group_id, policy=policy) for group in groups
        ]
        resolution = service.resolve_duplicates(resolutions)
        report["resolution"] = to_jsonable(resolution)
        log.info(
            "Merged %d group(s), %d failed", len(resolution.applied), len(resolution.failed)
        )
    return _finish(service, report, output)


def run_missing(snapshot: str | Path, *, store: bool = False) -> Report:
    service = open_session(snapshot, store=store)
    missing = service.find_missing_tracks()
    if store:
        service.record_scan(
            ScanKind.MISSING_TRACKS,
            [track.id for track in missing],
            library_path=str(snapshot),
        )
    return {"missing": [track.id for track in missing]}


async def _auto_relocate(
    service: ReconciliationService,
    options: RelocationOptions,
    library_path: str | None,
) -> BatchResult[AutoRelocation]:
    operation_id = service.auto_relocate_tracks(None, options, library_path)
    async for event in service.progress(operation_id):
        log.info(
            "Relocation progress %d/%d (%s)",
            event.processed,
            event.total,
            event.current_item_id,
        )
    return await service.wait(operation_id)


def run_relocate(
    snapshot: str | Path,
    *,
    search_paths: tuple[str, ...],
    threshold: Threshold | None = None,
    limit: int = 10,
    apply: bool = False,
    output: str | Path | None = None,
    store: bool = False,
) -> Report:
    service = open_session(snapshot, store=store)
    options = RelocationOptions(
        search_paths=search_paths,
        limit=limit,
        auto_threshold=(
            threshold if threshold is not None else service.config.auto_relocate_threshold
        ),
    )
    if apply:
        library_path = str(snapshot) if store else None
        result = asyncio.run(_auto_relocate(service, options, library_path))
        report: Report = {"auto_relocation": to_jsonable(result)}
        return _finish(service, report, output)

    candidates = {
        track.id: to_jsonable(service.find_relocation_candidates(track, options))
        for track in service.find_missing_tracks()
    }
    if store:
        service.record_scan(
            ScanKind.RELOCATIONS,
            candidates,
            library_path=str(snapshot),
            options={"search_paths": list(search_paths), "limit": limit},
        )
    return {"candidates": candidates}


def run_cloud_sync(
    snapshot: str | Path,
    *,
    cloud_roots: tuple[str, ...] = (),
    apply: bool = False,
    output: str | Path | None = None,
    store: bool = False,
) -> Report:
    service = open_session(snapshot, store=store, cloud_roots=cloud_roots)
    issues = service.detect_cloud_sync_issues()
    report: Report = {"issues": to_jsonable(issues)}
    if store:
        service.record_scan(ScanKind.CLOUD_SYNC, issues, library_path=str(snapshot))
    if apply and issues:
        result = asyncio.run(service.batch_fix_cloud_sync_issues(issues))
        report["fixes"] = to_jsonable(result)
    return _finish(service, report, output)


def run_ownership(
    snapshot: str | Path,
    *,
    apply: bool = False,
    output: str | Path | None = None,
    store: bool = False,
) -> Report:
    service = open_session(snapshot, store=store)
    issues = service.detect_ownership_issues()
    report: Report = {
        "issues": to_jsonable(issues),
        "integrity": to_jsonable(service.validate_ownership_integrity()),
    }
    if store:
        service.record_scan(ScanKind.OWNERSHIP, issues, library_path=str(snapshot))
    if apply and issues:
        result = asyncio.run(service.batch_fix_ownership(issues))
        report["fixes"] = to_jsonable(result)
    return _finish(service, report, output)

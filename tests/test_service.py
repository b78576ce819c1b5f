from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from tests.helpers.tracks import FakeProber, make_track
from trackfix.config import MatchingConfig
from trackfix.domain.cloud_sync import CloudProvider
from trackfix.domain.errors import InvalidInputError
from trackfix.domain.model import (
    BatchOutcome,
    Computer,
    ConfidenceLevel,
    Library,
    Playlist,
    RelocationStatus,
    ScanKind,
)
from trackfix.domain.relocation import RelocationOptions
from trackfix.domain.resolve import DuplicateResolution
from trackfix.service import ReconciliationService

if TYPE_CHECKING:
    from collections.abc import Callable

    from trackfix.adapters.sqlalchemy.unit_of_work import SqlAlchemyScanUnitOfWork
    from trackfix.domain.batch import BatchResult, ProgressEvent
    from trackfix.domain.model import AutoRelocation


def _library(missing: int = 0) -> Library:
    lost = tuple(
        make_track(
            f"lost{n}",
            title=f"Track {n}",
            location=f"/old/Aphex Twin - Track {n}.mp3",
            file_size_bytes=1000 + n,
        )
        for n in range(missing)
    )
    return Library(
        tracks=(
            make_track("a", bitrate_kbps=128, location="/music/a/Aphex Twin - Windowlicker.mp3"),
            make_track("b", bitrate_kbps=320, location="/music/b/Aphex Twin - Windowlicker.mp3"),
            *lost,
        ),
        playlists=(Playlist(playlist_id="p", track_ids=("a", "b")),),
        computers=(Computer(computer_id="mac", library_roots=("/music",)),),
    )


def _prober(missing: int = 0) -> FakeProber:
    prober = FakeProber()
    prober.add("/music/a/Aphex Twin - Windowlicker.mp3")
    prober.add("/music/b/Aphex Twin - Windowlicker.mp3")
    for n in range(missing):
        prober.add(f"/new/Aphex Twin - Track {n}.mp3", size_bytes=1000 + n)
    return prober


def _service(missing: int = 0, **kwargs: object) -> ReconciliationService:
    return ReconciliationService(
        _library(missing),
        prober=_prober(missing),
        matching=MatchingConfig(),
        providers=(CloudProvider(name="dropbox", roots=("/music",)),),
        **kwargs,  # pyright: ignore[reportArgumentType]
    )


def test_find_then_resolve_duplicates_from_latest_scan() -> None:
    service = _service()

    (group,) = service.find_duplicates()
    report = service.resolve_duplicates([DuplicateResolution(group_id=group.group_id)])

    assert report.applied[0].survivor_id == "b"
    library = service.library()
    assert [track.id for track in library.tracks] == ["b"]
    assert library.playlists[0].track_ids == ("b",)
    assert service.find_duplicates() == ()


def test_resolving_against_consumed_scan_fails() -> None:
    service = _service()
    (group,) = service.find_duplicates()
    resolution = DuplicateResolution(group_id=group.group_id)
    service.resolve_duplicates([resolution])

    report = service.resolve_duplicates([resolution])

    assert report.applied == ()
    assert len(report.failed) == 1


def test_relocation_flow() -> None:
    service = _service(missing=2)

    missing = service.find_missing_tracks()
    candidates = service.find_relocation_candidates(
        "lost0", RelocationOptions(search_paths=("/new",))
    )

    assert [track.id for track in missing] == ["lost0", "lost1"]
    assert candidates[0].candidate_path == "/new/Aphex Twin - Track 0.mp3"
    assert candidates[0].level is ConfidenceLevel.EXACT


def test_auto_relocation_streams_progress_and_stores_results(
    sqlite_unit_of_work: Callable[[], SqlAlchemyScanUnitOfWork],
) -> None:
    service = _service(missing=3, unit_of_work_factory=sqlite_unit_of_work)

    async def scenario() -> tuple[list[ProgressEvent], BatchResult[AutoRelocation]]:
        operation_id = service.auto_relocate_tracks(
            options=RelocationOptions(search_paths=("/new",)),
            library_path="/lib.json",
            operation_id="auto",
        )
        events = [event async for event in service.progress(operation_id)]
        return events, await service.wait(operation_id)

    events, result = asyncio.run(scenario())

    assert [event.processed for event in events] == [1, 2, 3]
    assert result.outcome is BatchOutcome.COMPLETED
    statuses = {s.value.status for s in result.succeeded}
    assert statuses == {RelocationStatus.RELOCATED}
    assert service.find_missing_tracks() == ()
    stored = service.load_scan("/lib.json", ScanKind.RELOCATIONS)
    assert stored is not None
    assert stored.payload["processed"] == 3  # pyright: ignore[reportIndex]
    assert stored.options == {"search_paths": ["/new"]}


def test_auto_relocation_can_be_cancelled() -> None:
    service = _service(missing=10)

    async def scenario() -> BatchResult[AutoRelocation]:
        operation_id = service.auto_relocate_tracks(
            options=RelocationOptions(search_paths=("/new",)),
            on_progress=lambda event: (
                service.cancel_auto_relocate(event.operation_id) if event.processed == 3 else None
            ),
        )
        return await service.wait(operation_id)

    result = asyncio.run(scenario())

    assert result.processed == 3
    assert result.untouched == 7
    assert len(service.find_missing_tracks()) == 7


def test_cancelled_auto_relocation_is_collected_without_wait(
    sqlite_unit_of_work: Callable[[], SqlAlchemyScanUnitOfWork],
) -> None:
    service = _service(missing=10, unit_of_work_factory=sqlite_unit_of_work)

    async def scenario() -> tuple[str, tuple[str, ...], BatchResult[AutoRelocation]]:
        operation_id = service.auto_relocate_tracks(
            options=RelocationOptions(search_paths=("/new",)),
            library_path="/lib.json",
            on_progress=lambda event: (
                service.cancel_auto_relocate(event.operation_id) if event.processed == 3 else None
            ),
        )
        running = service.active_operations()
        while service.active_operations():
            await asyncio.sleep(0)
        return operation_id, running, await service.wait(operation_id)

    operation_id, running, result = asyncio.run(scenario())

    assert running == (operation_id,)
    assert not service.runner.is_running(operation_id)
    stored = service.load_scan("/lib.json", ScanKind.RELOCATIONS)
    assert stored is not None
    assert stored.payload["outcome"] == "cancelled"  # pyright: ignore[reportIndex]
    assert stored.payload["processed"] == 3  # pyright: ignore[reportIndex]
    assert result.processed == 3
    with pytest.raises(InvalidInputError):
        asyncio.run(service.wait(operation_id))


def test_unknown_operation_is_rejected() -> None:
    service = _service()

    with pytest.raises(InvalidInputError):
        asyncio.run(service.wait("nope"))
    assert service.cancel_auto_relocate("nope") is False


def test_cloud_sync_and_ownership_through_service() -> None:
    service = _service()

    issues = service.detect_cloud_sync_issues()
    result = asyncio.run(service.batch_fix_cloud_sync_issues(issues))

    assert [s.item_id for s in result.succeeded] == ["a", "b"]
    assert service.detect_cloud_sync_issues() == ()
    assert service.detect_ownership_issues() == ()
    integrity = service.validate_ownership_integrity()
    assert integrity.grey_tracks == 2


def test_scans_are_not_stored_without_a_store() -> None:
    service = _service()

    assert service.record_scan(ScanKind.DUPLICATES, [], library_path="/lib.json") is None
    assert service.load_scan("/lib.json", ScanKind.DUPLICATES) is None

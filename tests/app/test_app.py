from __future__ import annotations

import json
from typing import TYPE_CHECKING

from trackfix import app
from trackfix.adapters.snapshot import load_library
from trackfix.domain.model import ScanKind

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from trackfix.adapters.sqlalchemy.unit_of_work import SqlAlchemyScanUnitOfWork


def _write_snapshot(path: Path, tracks: list[dict[str, object]], **extra: object) -> Path:
    document = {"tracks": tracks, "playlists": [], "computers": [], **extra}
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def _track(track_id: str, **fields: object) -> dict[str, object]:
    return {
        "id": track_id,
        "title": "Windowlicker",
        "artist": "Aphex Twin",
        "duration_seconds": 367.0,
        "file_size_bytes": 14,
        "location": f"/gone/{track_id}/Aphex Twin - Windowlicker.mp3",
        **fields,
    }


def test_run_duplicates_applies_merges_and_writes_output(tmp_path: Path) -> None:
    snapshot = _write_snapshot(
        tmp_path / "lib.json",
        [_track("a", bitrate_kbps=128), _track("b", bitrate_kbps=320)],
        playlists=[{"playlist_id": "p", "track_ids": ["a", "b"]}],
    )
    output = tmp_path / "out" / "lib.json"

    report = app.run_duplicates(snapshot, apply=True, output=output)

    assert len(report["groups"]) == 1  # pyright: ignore[reportArgumentType]
    merged = load_library(output)
    assert [track.id for track in merged.tracks] == ["b"]
    assert merged.playlists[0].track_ids == ("b",)


def test_run_missing_and_store(
    tmp_path: Path,
    sqlite_unit_of_work: Callable[[], SqlAlchemyScanUnitOfWork],
) -> None:
    present = tmp_path / "here.mp3"
    present.write_bytes(b"x")
    snapshot = _write_snapshot(
        tmp_path / "lib.json", [_track("gone"), _track("here", location=str(present))]
    )

    report = app.run_missing(snapshot, store=True)

    assert report == {"missing": ["gone"]}
    with sqlite_unit_of_work() as uow:
        stored = uow.repositories.scans.get(str(snapshot), ScanKind.MISSING_TRACKS)
    assert stored is not None
    assert stored.payload == ["gone"]


def test_run_relocate_apply_moves_confident_matches(tmp_path: Path) -> None:
    moved = tmp_path / "new" / "Aphex Twin - Windowlicker.mp3"
    moved.parent.mkdir()
    moved.write_bytes(b"0123456789abcd")
    snapshot = _write_snapshot(tmp_path / "lib.json", [_track("a")])
    output = tmp_path / "fixed.json"

    report = app.run_relocate(
        snapshot, search_paths=(str(tmp_path / "new"),), apply=True, output=output
    )

    outcome = report["auto_relocation"]
    assert outcome["processed"] == 1  # pyright: ignore[reportIndex]
    track = load_library(output).track("a")
    assert track is not None
    assert track.location == str(moved)


def test_run_relocate_lists_candidates(tmp_path: Path) -> None:
    moved = tmp_path / "new" / "Aphex Twin - Windowlicker.mp3"
    moved.parent.mkdir()
    moved.write_bytes(b"0123456789abcd")
    snapshot = _write_snapshot(tmp_path / "lib.json", [_track("a")])

    report = app.run_relocate(snapshot, search_paths=(str(tmp_path / "new"),), limit=1)

    candidates = report["candidates"]["a"]  # pyright: ignore[reportIndex]
    assert [c["candidate_path"] for c in candidates] == [str(moved)]


def test_run_cloud_sync_and_ownership(tmp_path: Path) -> None:
    snapshot = _write_snapshot(
        tmp_path / "lib.json",
        [_track("a", location="/Users/dj/Dropbox/Music/a.mp3", owner_computer_id="mac")],
        computers=[
            {"computer_id": "mac", "library_roots": ["/Users/dj"]},
            {"computer_id": "studio", "library_roots": ["/Users/dj/Dropbox"]},
        ],
    )
    output = tmp_path / "fixed.json"

    cloud = app.run_cloud_sync(
        snapshot, cloud_roots=("/Users/dj/Dropbox",), apply=True, output=output
    )
    ownership = app.run_ownership(output, apply=True, output=output)

    assert cloud["issues"][0]["issue_kind"] == "missing-cloud-path"  # pyright: ignore[reportIndex]
    assert ownership["issues"][0]["suggested_owner_id"] == "studio"  # pyright: ignore[reportIndex]
    track = load_library(output).track("a")
    assert track is not None
    assert (track.cloud_path, track.owner_computer_id) == ("/Music/a.mp3", "studio")

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from tests.helpers.tracks import make_track
from trackfix.domain.batch import BatchOperationRunner
from trackfix.domain.errors import ConflictError, InvalidInputError
from trackfix.domain.index import LibraryIndex
from trackfix.domain.model import Computer, Library, OwnershipFix, OwnershipIssue
from trackfix.domain.ownership import OwnershipResolver

MAC = Computer(computer_id="mac", library_roots=("/Shared/Music",))
STUDIO = Computer(computer_id="studio", library_roots=("/Shared/Music/Studio",))
LAPTOP = Computer(computer_id="laptop", library_roots=("/Shared/Music",))


def test_longest_matching_root_is_suggested() -> None:
    track = make_track("t", location="/Shared/Music/Studio/loop.wav", owner_computer_id="mac")

    (issue,) = OwnershipResolver().detect_ownership_issues([track], [MAC, STUDIO])

    assert issue.conflicting_computer_ids == frozenset({"mac", "studio"})
    assert issue.suggested_owner_id == "studio"
    assert issue.current_owner_id == "mac"


def test_equal_roots_prefer_most_recent_activity() -> None:
    tracks = [
        make_track("t", location="/Shared/Music/loop.wav"),
        make_track(
            "recent",
            location="/Local/a.mp3",
            owner_computer_id="mac",
            date_added=datetime(2024, 1, 1, tzinfo=UTC),
        ),
        make_track(
            "older",
            location="/Local/b.mp3",
            owner_computer_id="laptop",
            date_added=datetime(2023, 1, 1, tzinfo=UTC),
        ),
    ]

    (issue,) = OwnershipResolver().detect_ownership_issues(tracks, [LAPTOP, MAC])

    assert issue.suggested_owner_id == "mac"


@pytest.mark.parametrize("computers", [[MAC, LAPTOP], [LAPTOP, MAC]])
def test_full_tie_falls_back_to_smallest_id(computers: list[Computer]) -> None:
    track = make_track("t", location="/shared/music/loop.wav")

    (issue,) = OwnershipResolver().detect_ownership_issues([track], computers)

    assert issue.suggested_owner_id == "laptop"


def test_no_issue_without_overlap() -> None:
    elsewhere = Computer(computer_id="pc", library_roots=("/Shared/MusicOld",))
    inactive_roots = Computer(computer_id="old")
    track = make_track("t", location="/Shared/Music/loop.wav")

    assert OwnershipResolver().detect_ownership_issues(
        [track], [MAC, elsewhere, inactive_roots]
    ) == ()


def _index() -> LibraryIndex:
    return LibraryIndex.from_library(
        Library(
            tracks=(make_track("t", location="/Shared/Music/x.mp3", owner_computer_id="mac"),),
            computers=(MAC, LAPTOP),
        )
    )


def _issue(current: str | None = "mac") -> OwnershipIssue:
    return OwnershipIssue(
        track_id="t",
        conflicting_computer_ids=frozenset({"mac", "laptop"}),
        suggested_owner_id="laptop",
        current_owner_id=current,
    )


def test_fix_assigns_suggested_or_chosen_owner() -> None:
    index = _index()
    resolver = OwnershipResolver()

    fix = resolver.fix_track_ownership(index, _issue())

    assert fix == OwnershipFix("t", "mac", "laptop")
    assert index.require("t").owner_computer_id == "laptop"
    assert resolver.fix_track_ownership(index, _issue(), "laptop") == OwnershipFix(
        "t", "laptop", "laptop"
    )


def test_fix_rejects_owner_outside_conflict() -> None:
    with pytest.raises(InvalidInputError):
        OwnershipResolver().fix_track_ownership(_index(), _issue(), "studio")


def test_fix_conflicts_when_owner_moved() -> None:
    index = _index()
    index.set_owner("t", None)

    with pytest.raises(ConflictError):
        OwnershipResolver().fix_track_ownership(index, _issue())


def test_batch_fix_ownership() -> None:
    index = _index()
    issues = [_issue(), _issue()]

    result = asyncio.run(
        OwnershipResolver().batch_fix_ownership(BatchOperationRunner(), index, issues)
    )

    assert result.processed == 2
    assert result.failed == ()
    assert index.require("t").owner_computer_id == "laptop"


def test_update_library_ownership_returns_new_value() -> None:
    library = _index().to_library()
    fixes = [OwnershipFix("t", "mac", "laptop"), OwnershipFix("ghost", None, "mac")]
    current = Computer(computer_id="studio-new", library_roots=("/Studio",))

    updated, failures = OwnershipResolver().update_library_ownership(library, fixes, current)

    track = updated.track("t")
    assert track is not None
    assert track.owner_computer_id == "laptop"
    assert [f.item_id for f in failures] == ["ghost"]
    assert [c.computer_id for c in updated.computers] == ["mac", "laptop", "studio-new"]
    original = library.track("t")
    assert original is not None
    assert original.owner_computer_id == "mac"


def test_validate_ownership_integrity() -> None:
    retired = Computer(computer_id="retired", is_active=False)
    tracks = [
        make_track("a", owner_computer_id="mac"),
        make_track("b", owner_computer_id="retired"),
        make_track("c", owner_computer_id="vanished"),
        make_track("d"),
    ]

    report = OwnershipResolver().validate_ownership_integrity(tracks, [MAC, retired])

    assert report.total_tracks == 4
    assert report.tracks_with_owners == 3
    assert report.tracks_with_valid_owners == 1
    assert report.grey_tracks == 1
    assert report.orphaned_tracks == 2

from __future__ import annotations

import pytest

from tests.helpers.tracks import StubScorer, make_track, pair_scores
from trackfix.domain.duplicates import DuplicateDetector, DuplicateOptions
from trackfix.domain.index import LibraryIndex
from trackfix.domain.model import ConfidenceLevel, Library, Track
from trackfix.domain.resolve import DuplicateResolution, DuplicateResolver
from trackfix.domain.scoring import ConfidenceScorer


def _copies() -> tuple[Track, ...]:
    return (
        make_track("a1", bitrate_kbps=192),
        make_track("b1", title="Flim", duration_seconds=176.0, file_size_bytes=7_000_000),
        make_track(
            "a2",
            duration_seconds=367.5,
            file_size_bytes=14_760_000,
            location="/music/b/Aphex Twin - Windowlicker (1).mp3",
        ),
        make_track("a3", artist="aphex twin", title="WINDOWLICKER"),
    )


def _detector() -> DuplicateDetector:
    return DuplicateDetector(scorer=ConfidenceScorer())


def test_groups_copies_of_the_same_song() -> None:
    index = LibraryIndex.from_library(Library(tracks=_copies()))

    groups = _detector().find_duplicates(index)

    assert len(groups) == 1
    assert groups[0].track_ids == ("a1", "a2", "a3")
    assert groups[0].confidence >= 0.80


def test_groups_partition_the_library() -> None:
    tracks = (
        *_copies(),
        make_track("b2", title="Flim", duration_seconds=176.0, file_size_bytes=7_000_000),
        make_track("c1", title="Xtal"),
    )
    index = LibraryIndex.from_library(Library(tracks=tracks))

    groups = _detector().find_duplicates(index)

    members = [track_id for group in groups for track_id in group.track_ids]
    assert len(members) == len(set(members))
    assert all(len(group.track_ids) >= 2 for group in groups)
    assert [group.track_ids for group in groups] == [("a1", "a2", "a3"), ("b1", "b2")]


def test_groups_are_transitive_closures() -> None:
    tracks = tuple(make_track(track_id) for track_id in ("a", "b", "c"))
    scorer = StubScorer(pair_scores([("a", "b", 0.85), ("b", "c", 0.85), ("a", "c", 0.50)]))
    index = LibraryIndex.from_library(Library(tracks=tracks))

    groups = DuplicateDetector(scorer=scorer).find_duplicates(
        index, DuplicateOptions(threshold=0.80)
    )

    assert len(groups) == 1
    assert groups[0].track_ids == ("a", "b", "c")
    assert groups[0].score_for("a", "c") == 0.50


def test_only_tracks_sharing_a_key_are_compared() -> None:
    tracks = (make_track("a"), make_track("b", title="Flim"), make_track("c", artist="Autechre"))
    scorer = StubScorer({}, default=1.0)
    index = LibraryIndex.from_library(Library(tracks=tracks))

    assert DuplicateDetector(scorer=scorer).find_duplicates(index) == ()
    assert scorer.calls == []


@pytest.mark.parametrize(
    ("threshold", "expected"),
    [(ConfidenceLevel.HIGH, ()), (ConfidenceLevel.MEDIUM, (("a", "b"),)), ("0.7", (("a", "b"),))],
)
def test_threshold_controls_grouping(threshold: object, expected: tuple) -> None:
    tracks = (make_track("a"), make_track("b"))
    scorer = StubScorer(pair_scores([("a", "b", 0.75)]))
    index = LibraryIndex.from_library(Library(tracks=tracks))

    groups = DuplicateDetector(scorer=scorer).find_duplicates(
        index,
        DuplicateOptions(threshold=threshold),  # pyright: ignore[reportArgumentType]
    )

    assert tuple(group.track_ids for group in groups) == expected


def test_group_ids_are_stable_between_scans() -> None:
    index = LibraryIndex.from_library(Library(tracks=_copies()))
    detector = _detector()

    assert detector.find_duplicates(index) == detector.find_duplicates(index)


def test_resolving_every_group_leaves_no_duplicates() -> None:
    index = LibraryIndex.from_library(Library(tracks=_copies()))
    detector = _detector()
    groups = detector.find_duplicates(index)

    report = DuplicateResolver().resolve_duplicates(
        index, [DuplicateResolution(group_id=group.group_id) for group in groups], groups
    )

    assert report.failed == ()
    assert detector.find_duplicates(index) == ()

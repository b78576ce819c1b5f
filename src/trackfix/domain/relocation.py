"""Find and repair tracks whose files are no longer where the library says.

Candidates come from enumerating the configured search paths through the
filesystem prober and scoring every audio file against the missing track.
Tag-less files fall back to an ``Artist - Title`` reading of their file name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from trackfix.domain.errors import ConflictError, InvalidInputError, RelocationError
from trackfix.domain.model import (
    EVIDENCE_BY_SIGNAL,
    RELOCATION_WEIGHTS,
    AutoRelocation,
    ConfidenceLevel,
    ConfidenceThresholds,
    RelocationAck,
    RelocationCandidate,
    RelocationStatus,
    ScoringWeights,
    Signal,
    Threshold,
    Track,
)
from trackfix.domain.normalize import basename_stem, comparable_path, split_artist_title
from trackfix.domain.scoring import path_edit_distance

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from trackfix.domain.batch import (
        BatchOperation,
        BatchOperationRunner,
        BatchResult,
        ProgressCallback,
    )
    from trackfix.domain.index import LibraryIndex
    from trackfix.domain.model import FileProbe
    from trackfix.domain.ports import FilesystemProber

DEFAULT_CANDIDATE_LIMIT = 10


class CandidateScorer(Protocol):
    def score(self, a: Track, b: Track, *, weights: ScoringWeights | None = None) -> float: ...

    def breakdown(self, a: Track, b: Track) -> dict[Signal, float]: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class RelocationOptions:
    search_paths: tuple[str, ...] = ()
    limit: int = DEFAULT_CANDIDATE_LIMIT
    auto_threshold: Threshold = ConfidenceLevel.HIGH
    weights: ScoringWeights | None = None
    recursive: bool = True
    max_depth: int | None = None

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise InvalidInputError("Candidate limit must be at least 1")
        if isinstance(self.search_paths, str):
            raise InvalidInputError("search_paths must be a sequence of paths, not a string")


@dataclass(frozen=True, slots=True)
class RelocationRequest:
    track_id: str
    old_location: str
    new_location: str


def probe_as_track(probe: FileProbe) -> Track:
    """View a probed file as a track so the scorer can compare it."""

    title = probe.title
    artist = probe.artist
    if not title:
        stem_artist, stem_title = split_artist_title(basename_stem(probe.path))
        title = stem_title
        artist = artist or stem_artist
    return Track(
        id=f"file:{probe.path}",
        title=title,
        artist=artist,
        album=probe.album,
        duration_seconds=probe.duration_seconds,
        file_size_bytes=probe.size_bytes,
        location=probe.path,
    )


@dataclass(slots=True, kw_only=True)
class RelocationMatcher:
    prober: FilesystemProber
    scorer: CandidateScorer
    thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)
    weights: ScoringWeights = RELOCATION_WEIGHTS
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def find_missing_tracks(self, tracks: Iterable[Track]) -> tuple[Track, ...]:
        missing: list[Track] = []
        checked = 0
        for track in tracks:
            if not track.location:
                continue
            checked += 1
            try:
                exists = self.prober.exists(track.location)
            except OSError as exc:
                self.logger.warning(
                    "Skipping %s: cannot probe %s (%s)", track.id, track.location, exc
                )
                continue
            if not exists:
                self.logger.debug("Missing file for %s: %s", track.id, track.location)
                missing.append(track)
        self.logger.info(
            "Missing-file scan finished: checked=%d, missing=%d", checked, len(missing)
        )
        return tuple(missing)

    def find_relocation_candidates(
        self,
        track: Track,
        options: RelocationOptions | None = None,
    ) -> tuple[RelocationCandidate, ...]:
        opts = options or RelocationOptions()
        weights = opts.weights or self.weights
        own_location = comparable_path(track.location) if track.location else None
        seen: set[str] = set()
        scored: list[tuple[float, int, str, RelocationCandidate]] = []
        for search_path in opts.search_paths:
            try:
                probes = list(
                    self.prober.list_files(
                        search_path, recursive=opts.recursive, max_depth=opts.max_depth
                    )
                )
            except OSError as exc:
                self.logger.warning("Cannot search %s: %s", search_path, exc)
                continue
            for probe in probes:
                key = comparable_path(probe.path)
                if key == own_location or key in seen:
                    continue
                seen.add(key)
                if not self.prober.is_audio_file(probe.path):
                    continue
                candidate = self._score_probe(track, probe, weights)
                distance = path_edit_distance(probe.path, track.location)
                scored.append((-candidate.confidence, distance, probe.path, candidate))

        scored.sort(key=lambda entry: entry[:3])
        ranked = tuple(entry[3] for entry in scored[: opts.limit])
        self.logger.debug(
            "Track %s: %d candidate(s) from %d file(s)", track.id, len(ranked), len(scored)
        )
        return ranked

    def _score_probe(
        self, track: Track, probe: FileProbe, weights: ScoringWeights
    ) -> RelocationCandidate:
        as_track = probe_as_track(probe)
        confidence = self.scorer.score(track, as_track, weights=weights)
        evidence = frozenset(
            EVIDENCE_BY_SIGNAL[signal]
            for signal, similarity in self.scorer.breakdown(track, as_track).items()
            if similarity > 0 and weights.for_signal(signal) > 0
        )
        return RelocationCandidate(
            track_id=track.id,
            candidate_path=probe.path,
            confidence=confidence,
            level=self.thresholds.classify(confidence),
            evidence=evidence,
        )

    def relocate_track(
        self,
        index: LibraryIndex,
        track_id: str,
        old_location: str,
        new_location: str,
    ) -> RelocationAck:
        """Point ``track_id`` at ``new_location`` after the prober accepts it."""

        if not new_location:
            raise InvalidInputError("New location must not be empty")
        if not self.prober.exists(new_location):
            raise RelocationError(track_id, new_location, "file does not exist")
        if not self.prober.is_audio_file(new_location):
            raise RelocationError(track_id, new_location, "not a supported audio file")
        with index.mutation():
            current = index.require(track_id)
            if current.location != old_location:
                raise ConflictError(
                    track_id, f"location is {current.location!r}, expected {old_location!r}"
                )
            index.set_location(track_id, new_location)
        self.logger.info("Relocated %s: %s -> %s", track_id, old_location, new_location)
        return RelocationAck(track_id, old_location, new_location)

    def auto_relocate(
        self,
        index: LibraryIndex,
        track: Track,
        options: RelocationOptions,
    ) -> AutoRelocation:
        """Relocate one track if its best candidate clears the auto threshold."""

        threshold = self.thresholds.resolve(options.auto_threshold)
        current = index.require(track.id)
        candidates = self.find_relocation_candidates(current, options)
        if not candidates or candidates[0].confidence < threshold:
            self.logger.debug(
                "Track %s needs review: best=%s, threshold=%.2f",
                current.id,
                f"{candidates[0].confidence:.6f}" if candidates else "none",
                threshold,
            )
            return AutoRelocation(
                track_id=current.id,
                status=RelocationStatus.NEEDS_REVIEW,
                confidence=candidates[0].confidence if candidates else None,
                candidates=candidates,
            )
        best = candidates[0]
        self.relocate_track(index, current.id, current.location, best.candidate_path)
        return AutoRelocation(
            track_id=current.id,
            status=RelocationStatus.RELOCATED,
            new_location=best.candidate_path,
            confidence=best.confidence,
            candidates=candidates,
        )

    def start_auto_relocate(
        self,
        runner: BatchOperationRunner,
        index: LibraryIndex,
        tracks: Sequence[Track],
        options: RelocationOptions,
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchOperation[AutoRelocation]:
        return runner.start(
            tracks,
            lambda track: self.auto_relocate(index, track, options),
            operation_id=operation_id,
            item_id=lambda track: track.id,
            on_progress=on_progress,
        )

    async def batch_relocate_tracks(
        self,
        runner: BatchOperationRunner,
        index: LibraryIndex,
        relocations: Sequence[RelocationRequest],
        *,
        operation_id: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult[RelocationAck]:
        return await runner.run(
            relocations,
            lambda request: self.relocate_track(
                index, request.track_id, request.old_location, request.new_location
            ),
            operation_id=operation_id,
            item_id=lambda request: request.track_id,
            on_progress=on_progress,
        )

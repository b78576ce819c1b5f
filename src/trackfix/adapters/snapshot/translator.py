"""Translate between snapshot documents and domain values."""

from __future__ import annotations

import dataclasses
import json
from datetime import datetime
from enum import Enum
from typing import cast

from pydantic import ValidationError

from trackfix.domain.errors import InvalidInputError
from trackfix.domain.model import Computer, Library, Playlist, Track

from .schema import ComputerRecord, LibrarySnapshot, PlaylistRecord, TrackRecord


def _track(record: TrackRecord) -> Track:
    return Track(**record.model_dump())


def _playlist(record: PlaylistRecord) -> Playlist:
    return Playlist(
        playlist_id=record.playlist_id, name=record.name, track_ids=tuple(record.track_ids)
    )


def _computer(record: ComputerRecord) -> Computer:
    return Computer(
        computer_id=record.computer_id,
        name=record.name,
        library_roots=tuple(record.library_roots),
        is_active=record.is_active,
    )


def parse_snapshot(document: object) -> LibrarySnapshot:
    if isinstance(document, LibrarySnapshot):
        return document
    try:
        return LibrarySnapshot.model_validate(document)
    except ValidationError as exc:
        raise InvalidInputError(f"Malformed library snapshot: {exc}") from exc


def library_from_json(document: object) -> Library:
    snapshot = parse_snapshot(document)
    return Library(
        tracks=tuple(_track(record) for record in snapshot.tracks),
        playlists=tuple(_playlist(record) for record in snapshot.playlists),
        computers=tuple(_computer(record) for record in snapshot.computers),
    )


def to_jsonable(value: object) -> object:
    """Convert model values (dataclasses, enums, sets, datetimes) to JSON types."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: to_jsonable(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, BaseException):
        return {"type": type(value).__name__, "message": str(value)}
    if isinstance(value, dict):
        mapping = cast("dict[object, object]", value)
        return {str(to_jsonable(key)): to_jsonable(item) for key, item in mapping.items()}
    if isinstance(value, (frozenset, set)):
        items = [to_jsonable(item) for item in cast("set[object]", value)]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True))
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in cast("tuple[object, ...]", value)]
    return value

"""Public interface for the JSON library snapshot adapter."""

from __future__ import annotations

from .files import dump_library, load_library
from .schema import LibrarySnapshot, TrackRecord, parse_iso_datetime
from .translator import library_from_json, parse_snapshot, to_jsonable

__all__ = [
    "LibrarySnapshot",
    "TrackRecord",
    "dump_library",
    "library_from_json",
    "load_library",
    "parse_iso_datetime",
    "parse_snapshot",
    "to_jsonable",
]

"""Read and write library snapshots on disk.

The snapshot is a plain document with ``tracks``, ``playlists`` and
``computers`` arrays whose keys mirror the dataclass fields. ``date_added``
is ISO-8601 and always read back as UTC.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from trackfix.domain.errors import InvalidInputError

from .translator import library_from_json, to_jsonable

if TYPE_CHECKING:
    from trackfix.domain.model import Library

log = logging.getLogger(__name__)


def load_library(path: str | Path) -> Library:
    source = Path(path)
    with source.open(encoding="utf-8") as handle:
        try:
            document = json.load(handle)
        except json.JSONDecodeError as exc:
            raise InvalidInputError(f"{source} is not valid JSON: {exc}") from exc
    library = library_from_json(document)
    log.info(
        "Loaded %s: tracks=%d, playlists=%d, computers=%d",
        source,
        len(library.tracks),
        len(library.playlists),
        len(library.computers),
    )
    return library


def dump_library(library: Library, path: str | Path) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(to_jsonable(library), handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    log.info("Wrote %s: tracks=%d", target, len(library.tracks))

"""Deterministic text and path normalization shared by the detectors."""

from __future__ import annotations

import re
import unicodedata
from pathlib import PurePosixPath, PureWindowsPath

_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str | None) -> str:
    """Strip diacritics and punctuation, casefold and collapse whitespace."""

    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    chars: list[str] = []
    for char in decomposed:
        category = unicodedata.category(char)
        if category == "Mn":
            continue
        if category.startswith(("P", "S")):
            chars.append(" ")
            continue
        chars.append(char)
    return _WHITESPACE.sub(" ", "".join(chars).casefold()).strip()


def match_key(artist: str | None, title: str | None) -> str:
    """Bucket key for duplicate detection: alphanumerics of artist and title."""

    artist_key = "".join(ch for ch in normalize_text(artist) if ch.isalnum())
    title_key = "".join(ch for ch in normalize_text(title) if ch.isalnum())
    return f"{artist_key}|{title_key}"


def _pure_path(path: str) -> PurePosixPath | PureWindowsPath:
    if "\\" in path or (len(path) > 1 and path[1] == ":"):
        return PureWindowsPath(path)
    return PurePosixPath(path)


def basename_stem(path: str | None) -> str:
    """File name without directory or extension, for either separator style."""

    if not path:
        return ""
    return _pure_path(path).stem


def split_artist_title(stem: str) -> tuple[str, str]:
    """Split an ``Artist - Title`` file stem; the artist is empty when absent."""

    artist, sep, title = stem.partition(" - ")
    if not sep:
        return "", stem.strip()
    return artist.strip(), title.strip()


def _unify(path: str) -> str:
    unified = path.replace("\\", "/")
    # A leading double separator marks a UNC share and is kept.
    share = unified.startswith("//") and unified.strip("/") != ""
    if share:
        unified = unified.lstrip("/")
    while "//" in unified:
        unified = unified.replace("//", "/")
    if share:
        return "//" + unified.rstrip("/")
    if len(unified) > 1:
        unified = unified.rstrip("/")
    return unified


def comparable_path(path: str) -> str:
    """Forward-slash, casefolded path without trailing separator."""

    return _unify(path).casefold()


def is_under(path: str, root: str) -> bool:
    """Case-insensitive prefix test that only matches at a separator boundary."""

    candidate = comparable_path(path)
    prefix = comparable_path(root)
    if not prefix:
        return False
    if prefix == "/":
        return candidate.startswith("/")
    return candidate == prefix or candidate.startswith(prefix + "/")


def relative_to_root(path: str, root: str) -> str:
    """Return ``path`` relative to ``root`` with ``/`` separators, preserving case."""

    return _unify(path)[len(_unify(root)) :].lstrip("/")

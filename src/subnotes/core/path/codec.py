"""Encode and decode level paths embedded in note filenames.

Current format: ``<d1>[.<d2>...]. <title>.md``, e.g. ``2.3.1. Architecture.md``.
The space after the final period is optional on input (``2.3.1.Architecture.md``
decodes identically) and always written on output.

Level segments are positive integers without leading zeros; ``0``, ``01``
and non-numeric segments make the whole name foreign.

Legacy format: ``<12-digit timestamp>[.<levels>].md``, e.g. ``202401151030.2.1.md``.
Legacy names are never part of the live hierarchy, they are only read for migration.
"""

import re
from typing import NamedTuple

from subnotes.config import NOTE_EXTENSION
from subnotes.models.note import LevelPath

_SEGMENT = r"[1-9]\d*"
_LEVEL = rf"{_SEGMENT}(?:\.{_SEGMENT})*"

_NAME_RE = re.compile(rf"^(?P<level>{_LEVEL})\. ?(?P<title>.+){re.escape(NOTE_EXTENSION)}$")
_LEVEL_RE = re.compile(rf"^{_LEVEL}$")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_LEGACY_RE = re.compile(rf"^(?P<stamp>\d{{12}})(?:\.(?P<level>{_LEVEL}))?{re.escape(NOTE_EXTENSION)}$")


class DecodedName(NamedTuple):
    path: LevelPath
    title: str


class LegacyName(NamedTuple):
    timestamp: str
    levels: LevelPath


def parse_level(text: str) -> LevelPath | None:
    """Parse ``"2.3.1"`` into ``(2, 3, 1)``, or None if malformed."""
    if not _LEVEL_RE.match(text):
        return None
    return tuple(int(part) for part in text.split("."))


def format_level(path: LevelPath) -> str:
    return ".".join(str(n) for n in path)


def decode(filename: str) -> DecodedName | None:
    """Decode a filename into its level path and title.

    Returns None for anything that is not a current-format note name,
    including legacy timestamp names.
    """
    if _LEGACY_RE.match(filename):
        return None
    match = _NAME_RE.match(filename)
    if not match:
        return None
    title = match.group("title")
    if not title.strip() or "/" in title or "\\" in title or _CONTROL_RE.search(title):
        return None
    path = parse_level(match.group("level"))
    if path is None:
        return None
    return DecodedName(path=path, title=title)


def encode(path: LevelPath, title: str) -> str:
    """Build the canonical filename for a level path and title."""
    if not path:
        msg = "Cannot encode an empty level path"
        raise ValueError(msg)
    if any(n < 1 for n in path):
        msg = f"Level path elements must be positive: {path!r}"
        raise ValueError(msg)
    if not title.strip():
        msg = "Title must not be blank"
        raise ValueError(msg)
    if "/" in title or "\\" in title:
        msg = f"Title must not contain a path separator: {title!r}"
        raise ValueError(msg)
    if _CONTROL_RE.search(title):
        msg = f"Title must not contain control characters: {title!r}"
        raise ValueError(msg)
    return f"{format_level(path)}. {title}{NOTE_EXTENSION}"


def decode_legacy(filename: str) -> LegacyName | None:
    match = _LEGACY_RE.match(filename)
    if not match:
        return None
    level = match.group("level")
    levels = parse_level(level) if level else ()
    return LegacyName(timestamp=match.group("stamp"), levels=levels or ())

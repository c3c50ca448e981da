"""Classification of HLS playlist lines.

Every line of a playlist is either a directive (``#`` tags and blank
separators), a segment reference that needs a signed URL, or an unrecognised
line that is passed through untouched. Classification is a pure string
transform: it never touches the network or credentials.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

from mediagate.config import DEFAULT_SEGMENT_SUFFIXES, parse_suffixes

DEFAULT_SUFFIXES: Tuple[str, ...] = parse_suffixes(DEFAULT_SEGMENT_SUFFIXES)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_LINE_BREAK_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class Directive:
    text: str


@dataclass(frozen=True)
class Passthrough:
    text: str


@dataclass(frozen=True)
class SegmentReference:
    text: str
    path: str

    @property
    def is_absolute(self) -> bool:
        return has_scheme(self.path)


ManifestLine = Union[Directive, Passthrough, SegmentReference]


def has_scheme(value: str) -> bool:
    return bool(_SCHEME_RE.match(value))


def manifest_base_dir(manifest_path: str) -> str:
    """Directory prefix of ``manifest_path`` including its trailing ``/``."""

    head, sep, _ = manifest_path.rpartition("/")
    return f"{head}{sep}"


def classify(
    base_dir: str, raw_line: str, suffixes: Iterable[str] = DEFAULT_SUFFIXES
) -> ManifestLine:
    trimmed = raw_line.strip()
    if not trimmed or trimmed.startswith("#"):
        return Directive(raw_line)
    if not trimmed.lower().endswith(tuple(suffixes)):
        return Passthrough(raw_line)
    if has_scheme(trimmed):
        return SegmentReference(raw_line, trimmed)
    return SegmentReference(raw_line, f"{base_dir}{trimmed}")


def split_lines(text: str) -> List[str]:
    """Split playlist ``text`` on LF or CRLF, keeping blank and trailing lines."""

    return _LINE_BREAK_RE.split(text)


def join_lines(lines: Iterable[str]) -> str:
    return "\n".join(lines)


__all__ = [
    "DEFAULT_SUFFIXES",
    "Directive",
    "ManifestLine",
    "Passthrough",
    "SegmentReference",
    "classify",
    "has_scheme",
    "join_lines",
    "manifest_base_dir",
    "split_lines",
]

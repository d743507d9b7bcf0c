"""Semantic version value type and comparison."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import semantic_version

from errors import MalformedConstraint

# First numeric version in a piece of text, with optional prerelease/build.
_VERSION_RE = re.compile(
    r'(?P<core>\d+(?:\.\d+){0,2})'
    r'(?:-(?P<prerelease>[0-9A-Za-z]+(?:\.[0-9A-Za-z-]+)*))?'
    r'(?:\+(?P<build>[0-9A-Za-z]+(?:\.[0-9A-Za-z-]+)*))?'
)


@functools.total_ordering
@dataclass(frozen=True)
class SemVer:
    """Immutable semantic version.

    Rich comparisons follow the strict order (a prerelease sorts below the
    release of the same triple). Use :func:`compare` for the numeric-only order.
    """
    major: int
    minor: int = 0
    patch: int = 0
    prerelease: Optional[str] = None

    @property
    def triple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @property
    def major_minor(self) -> str:
        return f"{self.major}.{self.minor}"

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def release(self) -> "SemVer":
        """Return this version without its prerelease tag."""
        return SemVer(self.major, self.minor, self.patch)

    def next_major(self) -> "SemVer":
        return SemVer(self.major + 1, 0, 0)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return compare(self, other, strict=True) < 0

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{self.prerelease}" if self.prerelease else core


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _prerelease_key(tag: Optional[str]) -> Tuple:
    # A release (no tag) sorts above every prerelease of the same triple.
    if not tag:
        return (1,)
    parts = []
    for piece in tag.split('.'):
        parts.append((0, int(piece), '') if piece.isdigit() else (1, 0, piece))
    return (0, tuple(parts))


def compare(a: SemVer, b: SemVer, *, strict: bool = False) -> int:
    """Compare two versions, returning -1, 0 or 1.

    By default only (major, minor, patch) are compared; prerelease tags are
    ignored, so ``1.2.3-beta`` equals ``1.2.3``. With ``strict=True`` a
    prerelease sorts below the release of the same triple.
    """
    result = _cmp(a.triple, b.triple)
    if result or not strict:
        return result
    return _cmp(_prerelease_key(a.prerelease), _prerelease_key(b.prerelease))


def parse_version(text: Union[str, SemVer, None]) -> SemVer:
    """Parse the first numeric version found in ``text``.

    Quotes and a leading ``v`` are tolerated; partial versions are coerced
    (``3.5`` -> ``3.5.0``). Build metadata is dropped.

    Raises:
        MalformedConstraint: if no numeric version can be extracted.
    """
    if isinstance(text, SemVer):
        return text
    if text is None:
        raise MalformedConstraint(text)
    cleaned = str(text).strip().strip('"\'')
    match = _VERSION_RE.search(cleaned)
    if not match:
        raise MalformedConstraint(text)

    candidate = match.group('core')
    if match.group('prerelease'):
        candidate += '-' + match.group('prerelease')
    try:
        coerced = semantic_version.Version.coerce(candidate)
    except ValueError as exc:
        raise MalformedConstraint(text, str(exc)) from exc

    prerelease = '.'.join(coerced.prerelease) if coerced.prerelease else None
    return SemVer(coerced.major, coerced.minor, coerced.patch, prerelease)


def try_parse_version(text: Union[str, SemVer, None]) -> Optional[SemVer]:
    """Like :func:`parse_version` but returns None instead of raising."""
    try:
        return parse_version(text)
    except MalformedConstraint:
        return None

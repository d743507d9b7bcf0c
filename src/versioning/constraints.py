"""Version constraints: exact, at-least, caret, range and ``any``.

Constraint text follows the pubspec grammar:

- ``any``
- ``^1.2.3`` meaning ``>=1.2.3 <2.0.0`` (no special case for a zero major)
- space separated comparators, e.g. ``>=2.12.0 <3.0.0`` or ``>1.0.0 <=1.5.0``
- a bare version, whose meaning the call site chooses via :class:`BareVersion`
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from errors import MalformedConstraint
from .semver import SemVer, compare, parse_version

_COMPARATOR_RE = re.compile(r'(>=|<=|>|<|\^)?\s*v?(\d+(?:\.\d+)*(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)')


class ConstraintKind(Enum):
    """How a constraint was written."""
    EXACT = "exact"
    AT_LEAST = "at_least"
    CARET = "caret"
    RANGE = "range"
    ANY = "any"


class BareVersion(Enum):
    """Meaning of a bare ``X.Y.Z`` in constraint text."""
    EXACT = "exact"
    AT_LEAST = "at_least"


@dataclass(frozen=True)
class VersionConstraint:
    """A predicate over SemVer bounded by an optional lower and upper version."""
    raw: str
    kind: ConstraintKind
    lower: Optional[SemVer] = None
    lower_inclusive: bool = True
    upper: Optional[SemVer] = None
    upper_inclusive: bool = False

    @classmethod
    def exact(cls, version: SemVer) -> "VersionConstraint":
        return cls(str(version), ConstraintKind.EXACT, version, True, version, True)

    @classmethod
    def at_least(cls, version: SemVer) -> "VersionConstraint":
        return cls(f">={version}", ConstraintKind.AT_LEAST, version, True)

    @classmethod
    def caret(cls, version: SemVer) -> "VersionConstraint":
        return cls(f"^{version}", ConstraintKind.CARET, version, True, version.next_major(), False)

    @classmethod
    def between(cls, minimum: SemVer, maximum: SemVer) -> "VersionConstraint":
        return cls(f">={minimum} <{maximum}", ConstraintKind.RANGE, minimum, True, maximum, False)

    @classmethod
    def any_version(cls) -> "VersionConstraint":
        return cls("any", ConstraintKind.ANY)

    def satisfies(self, version: SemVer) -> bool:
        """Return True when ``version`` lies within the bounds.

        Prerelease tags are ignored, the same as :func:`compare`.
        """
        if self.lower is not None:
            low = compare(version, self.lower)
            if low < 0 or (low == 0 and not self.lower_inclusive):
                return False
        if self.upper is not None:
            high = compare(version, self.upper)
            if high > 0 or (high == 0 and not self.upper_inclusive):
                return False
        return True

    def __str__(self) -> str:
        return self.raw


def parse_constraint(text: Optional[str], *, bare: BareVersion) -> VersionConstraint:
    """Parse constraint text.

    Args:
        text: Constraint as written in a manifest or registry payload.
        bare: What a bare version means at this call site.

    Raises:
        MalformedConstraint: if no numeric version can be extracted.
    """
    if text is None:
        raise MalformedConstraint(text)
    cleaned = str(text).strip().strip('"\'').strip()
    if cleaned.lower() == 'any':
        return VersionConstraint.any_version()

    comparators = _COMPARATOR_RE.findall(cleaned)
    if not comparators:
        raise MalformedConstraint(text)

    if len(comparators) == 1:
        op, version_text = comparators[0]
        version = parse_version(version_text)
        if op == '^':
            return replace(VersionConstraint.caret(version), raw=cleaned)
        if not op:
            if bare is BareVersion.AT_LEAST:
                return replace(VersionConstraint.at_least(version), raw=cleaned)
            return replace(VersionConstraint.exact(version), raw=cleaned)

    lower: Optional[SemVer] = None
    lower_inclusive = True
    upper: Optional[SemVer] = None
    upper_inclusive = False
    for op, version_text in comparators:
        version = parse_version(version_text)
        if op in ('>=', '>'):
            lower, lower_inclusive = version, op == '>='
        elif op in ('<', '<='):
            upper, upper_inclusive = version, op == '<='
        elif op == '^':
            lower, lower_inclusive = version, True
            upper, upper_inclusive = version.next_major(), False
        else:
            lower, lower_inclusive = version, True
            if bare is BareVersion.EXACT:
                upper, upper_inclusive = version, True

    kind = ConstraintKind.AT_LEAST if upper is None and lower is not None else ConstraintKind.RANGE
    return VersionConstraint(cleaned, kind, lower, lower_inclusive, upper, upper_inclusive)


def try_parse_constraint(text: Optional[str], *, bare: BareVersion) -> Optional[VersionConstraint]:
    """Like :func:`parse_constraint` but returns None instead of raising."""
    try:
        return parse_constraint(text, bare=bare)
    except MalformedConstraint:
        return None


"""Parsing of dependency-resolution output into structured conflicts.

Only this module knows the wording of ``pub get`` failures; callers work with
:class:`~versioning.models.DependencyConflict` records.
"""

import logging
import re
from typing import Callable, Dict, Iterable, List, Tuple

from .models import SDK_SENTINEL, ConflictKind, DependencyConflict, DuplicatePrecedence
from .semver import SemVer, try_parse_version

logger = logging.getLogger(__name__)

# "http_parser 4.1.2 depends on collection ^1.19.0"
_DEPENDS_ON = re.compile(
    r'(\w+)\s+([\d.]+)\s+depends on\s+(\w+)\s+([^\s,]+)',
    re.MULTILINE,
)

# "flutter_test from sdk is incompatible with http_parser ^4.1.2"
_SDK_INCOMPATIBLE = re.compile(
    r'(\w+)\s+from\s+sdk\s+is\s+incompatible\s+with\s+(\w+)\s+([^\s,]+)',
    re.MULTILINE,
)

# "upgrader >=5.0.0-alpha.1 which requires SDK version >=2.17.1 <4.0.0"
_REQUIRES_SDK = re.compile(
    r'(\w+)\s+[\^>=<]*[\d.\w-]+\s+which requires SDK version >=(\d+\.\d+\.\d+)',
    re.MULTILINE,
)
# "depends on upgrader which requires SDK version >=2.17.1"
_DEPENDS_REQUIRES_SDK = re.compile(
    r'depends on (\w+)[^\w]*which requires SDK version >=(\d+\.\d+\.\d+)',
    re.MULTILINE,
)

# Words of the resolver's prose that the SDK patterns can capture as names.
_RESERVED_WORDS = frozenset({
    'Because', 'pub', 'get', 'version', 'solving', 'failed', 'And',
    'So', 'Thus', 'Therefore', 'which', 'requires', 'every',
})


def _depends_on(match: re.Match) -> DependencyConflict:
    return DependencyConflict(
        package=match.group(1),
        current_version_constraint=match.group(2),
        conflicting_with=match.group(3),
        required_constraint=match.group(4),
        kind=ConflictKind.DEPENDS_ON,
    )


def _sdk_incompatible(match: re.Match) -> DependencyConflict:
    return DependencyConflict(
        package=match.group(2),
        current_version_constraint=match.group(3).replace('^', ''),
        conflicting_with=match.group(1),
        required_constraint=SDK_SENTINEL,
        kind=ConflictKind.SDK_INCOMPATIBLE,
    )


class ConflictParser:
    """Turns combined stdout+stderr text into conflict records.

    Each known shape is matched independently and the results are concatenated
    shape by shape, in text order within a shape. With last-wins
    de-duplication an SDK incompatibility therefore overrides a
    ``depends on`` line for the same package.
    """

    SHAPES: Tuple[Tuple[re.Pattern, Callable[[re.Match], DependencyConflict]], ...] = (
        (_DEPENDS_ON, _depends_on),
        (_SDK_INCOMPATIBLE, _sdk_incompatible),
    )

    def parse(self, text: str) -> List[DependencyConflict]:
        if not text:
            return []
        conflicts = [
            build(match)
            for pattern, build in self.SHAPES
            for match in pattern.finditer(text)
        ]
        logger.debug("Parsed %d conflict(s) from resolver output", len(conflicts))
        return conflicts


def dedupe_conflicts(
    conflicts: Iterable[DependencyConflict],
    precedence: DuplicatePrecedence = DuplicatePrecedence.LAST,
) -> List[DependencyConflict]:
    """Keep one conflict per package.

    Packages keep the position of their first appearance; the record kept is
    the first or the last occurrence depending on ``precedence``.
    """
    unique: Dict[str, DependencyConflict] = {}
    for conflict in conflicts:
        if precedence is DuplicatePrecedence.FIRST and conflict.package in unique:
            continue
        unique[conflict.package] = conflict
    return list(unique.values())


def parse_sdk_requirements(text: str) -> Dict[str, SemVer]:
    """Map packages to the minimum SDK runtime the resolver says they need."""
    requirements: Dict[str, SemVer] = {}
    for pattern in (_REQUIRES_SDK, _DEPENDS_REQUIRES_SDK):
        for match in pattern.finditer(text or ''):
            name = match.group(1)
            if name in _RESERVED_WORDS:
                continue
            version = try_parse_version(match.group(2))
            if version is not None:
                requirements[name] = version
    return requirements

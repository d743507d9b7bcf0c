"""Next-step suggestions for conflicts the engine could not resolve."""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional

from versioning.constraints import BareVersion, ConstraintKind, try_parse_constraint
from versioning.models import DependencyConflict
from versioning.semver import SemVer, compare
from versioning.toolchain import COMPATIBILITY_TABLE, ActiveToolchain, sdk_for_runtime

logger = logging.getLogger(__name__)


def minimum_sdk_for(
    conflicts: Iterable[DependencyConflict],
    sdk_requirements: Optional[Mapping[str, SemVer]] = None,
) -> Optional[SemVer]:
    """Oldest known SDK line that would satisfy every conflict we can reason about.

    Bundled-library conflicts need a line shipping a new enough library; SDK
    requirements (runtime versions) need a line shipping that runtime.
    """
    needed: List[SemVer] = []
    lines = sorted(COMPATIBILITY_TABLE.values(), key=lambda bundle: bundle.runtime_version)

    for conflict in conflicts:
        constraint = try_parse_constraint(conflict.required_constraint, bare=BareVersion.AT_LEAST)
        if constraint is None or constraint.lower is None:
            continue
        for bundle in lines:
            shipped = bundle.bundled_libraries.get(conflict.conflicting_with)
            if shipped is not None and constraint.satisfies(shipped):
                major, minor = bundle.sdk_version.split(".")
                needed.append(SemVer(int(major), int(minor), 0))
                break

    for runtime in (sdk_requirements or {}).values():
        sdk = sdk_for_runtime(runtime)
        if sdk is not None:
            needed.append(sdk)

    return max(needed) if needed else None


def _override_text(constraint_text: str) -> str:
    """Bare versions become caret constraints; ranges are kept as written."""
    parsed = try_parse_constraint(constraint_text, bare=BareVersion.EXACT)
    if parsed is not None and parsed.kind is ConstraintKind.EXACT:
        return f"^{constraint_text}"
    return constraint_text


def suggest(
    unresolved: List[DependencyConflict],
    active: ActiveToolchain,
    sdk_requirements: Optional[Mapping[str, SemVer]] = None,
) -> List[str]:
    """Concrete suggestions, most effective first."""
    if not unresolved:
        return []
    suggestions: List[str] = []

    target = minimum_sdk_for(unresolved, sdk_requirements)
    if target is not None and compare(target, active.sdk_version) > 0:
        suggestions.append(
            f"Upgrade the SDK from {active.sdk_version} to at least {target.major_minor}: "
            f"it ships the library and runtime versions these packages need"
        )
    elif target is None:
        suggestions.append("Upgrade the SDK to a newer line to get newer bundled libraries")

    transitive = [c for c in unresolved if c.is_direct_dependency is False and c.dependents]
    for conflict in transitive:
        suggestions.append(
            f"Update {', '.join(conflict.dependents)} (which depend on {conflict.package})"
        )

    direct = [c for c in unresolved if c.is_direct_dependency is not False]
    if direct:
        names = ", ".join(c.package for c in direct)
        suggestions.append(f"Replace or remove {names}; search the registry for compatible alternatives")

    overrides = "; ".join(f"{c.package}: {_override_text(c.current_version_constraint)}" for c in unresolved)
    suggestions.append(f"Temporarily pin with dependency_overrides ({overrides})")

    logger.debug("Built %d suggestion(s) for %d unresolved conflict(s)", len(suggestions), len(unresolved))
    return suggestions

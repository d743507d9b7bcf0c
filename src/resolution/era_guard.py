"""Guard against silently moving a project across the null-safety watershed.

A project created before sound null safety must not have its manifest
constraint raised into the modern era as a side effect of an SDK update. The
guard restores the legacy-era constraint instead and looks for legacy-compatible
versions of dependencies that already require the modern era.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from constants import Constants
from errors import RegistryUnavailable
from resolution.finder import CompatibleVersionFinder
from versioning.constraints import VersionConstraint
from versioning.models import VersionAnalysis
from versioning.semver import SemVer, compare
from versioning.toolchain import (
    ActiveToolchain,
    Era,
    era_of_runtime,
    era_of_sdk,
    legacy_constraint_for,
    modern_constraint_for,
)

logger = logging.getLogger(__name__)


class SdkConstraintAction(Enum):
    KEEP = "keep"
    UPDATE = "update"
    RESTORE_LEGACY = "restore_legacy"


@dataclass(frozen=True)
class SdkConstraintPlan:
    """What to write into the manifest's SDK constraint line."""
    action: SdkConstraintAction
    constraint: VersionConstraint
    reason: str = ""


@dataclass
class RehomeResult:
    rehomed: Dict[str, SemVer] = field(default_factory=dict)
    manual: List[str] = field(default_factory=list)
    unreachable: List[str] = field(default_factory=list)


def _same_bounds(a: Optional[VersionConstraint], b: VersionConstraint) -> bool:
    if a is None:
        return False
    return (a.lower, a.lower_inclusive, a.upper, a.upper_inclusive) == \
        (b.lower, b.lower_inclusive, b.upper, b.upper_inclusive)


def _excludes_current_minimum(current: Optional[VersionConstraint], target: VersionConstraint) -> bool:
    """True when ``target`` sits below the minimum ``current`` already declares."""
    if current is None or current.lower is None or target.lower is None:
        return False
    return compare(target.lower, current.lower) < 0 and not target.satisfies(current.lower)


def _requires_modern(constraint: Optional[VersionConstraint]) -> bool:
    return (constraint is not None and constraint.lower is not None
            and era_of_runtime(constraint.lower) is Era.MODERN)


class SafetyEraGuard:
    """Decides how the SDK constraint may change and rehomes modern-only dependencies.

    ``accept_upgrade`` is the explicit operator override that allows the
    forward move into the modern era.
    """

    def __init__(self, finder: CompatibleVersionFinder, accept_upgrade: bool = False):
        self.finder = finder
        self.accept_upgrade = accept_upgrade

    def plan(
        self,
        analysis: VersionAnalysis,
        creation: Optional[SemVer],
        current_constraint: Optional[VersionConstraint],
    ) -> SdkConstraintPlan:
        recommended = analysis.recommended
        if recommended is None:
            raise ValueError("cannot plan an SDK constraint without a recommendation")

        created_legacy = creation is not None and era_of_sdk(creation) is Era.LEGACY
        crossing = era_of_sdk(recommended) is Era.MODERN or _requires_modern(current_constraint)

        if created_legacy and crossing and not self.accept_upgrade:
            target = legacy_constraint_for(recommended)
            action = SdkConstraintAction.RESTORE_LEGACY
            reason = (f"Project was created before the null-safety watershed (SDK {creation}); "
                      f"restoring legacy constraint {target} instead of moving to the modern era")
        elif analysis.runtime_floor is not None:
            floor = analysis.runtime_floor.release()
            target = VersionConstraint.between(floor, floor.next_major())
            action = SdkConstraintAction.UPDATE
            reason = f"Aligning SDK constraint with manifest minimum {floor}"
        else:
            target = modern_constraint_for(recommended)
            action = SdkConstraintAction.UPDATE
            reason = f"Aligning SDK constraint with SDK {recommended}"
            if created_legacy and crossing:
                reason += " (modern era explicitly accepted)"

        if _same_bounds(current_constraint, target):
            logger.info("SDK constraint %s already matches SDK %s", current_constraint, recommended)
            return SdkConstraintPlan(SdkConstraintAction.KEEP, current_constraint, "constraint already aligned")
        if action is SdkConstraintAction.UPDATE and _excludes_current_minimum(current_constraint, target):
            logger.info("Keeping SDK constraint %s; %s would drop its minimum", current_constraint, target)
            return SdkConstraintPlan(SdkConstraintAction.KEEP, current_constraint,
                                     f"{target} would exclude the declared minimum")

        logger.info("%s", reason)
        return SdkConstraintPlan(action, target, reason)

    def rehome(
        self,
        dependencies: Mapping[str, VersionConstraint],
        recommended_sdk: SemVer,
    ) -> RehomeResult:
        """Find legacy-compatible versions for dependencies that need the modern era.

        A dependency needs rehoming when every registry version its current
        constraint allows requires a modern runtime.
        """
        legacy_runtime = legacy_constraint_for(recommended_sdk).lower
        active = ActiveToolchain.for_sdk(recommended_sdk, runtime_override=legacy_runtime)
        result = RehomeResult()

        for package in sorted(dependencies):
            if package in Constants.SDK_PACKAGES:
                continue
            constraint = dependencies[package]
            try:
                allowed = [v for v in self.finder.registry.fetch_versions(package)
                           if constraint.satisfies(v.version)]
                if not allowed or not all(_requires_modern(v.sdk_constraint) for v in allowed):
                    continue
                replacement = self.finder.find(package, active)
            except RegistryUnavailable as exc:
                logger.warning("Cannot check %s: %s", package, exc)
                result.unreachable.append(package)
                continue

            if replacement is None:
                logger.warning("%s has no version compatible with the legacy era", package)
                result.manual.append(package)
            else:
                logger.info("%s: using legacy-compatible version %s", package, replacement)
                result.rehomed[package] = replacement
        return result

"""Data models for version reconciliation and conflict resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple

from .constraints import VersionConstraint
from .semver import SemVer

# Sentinel requiredConstraint: the active SDK itself is the blocker.
SDK_SENTINEL = "sdk"


class ConflictKind(Enum):
    """The two recognized shapes of resolver output."""
    DEPENDS_ON = "depends_on"
    SDK_INCOMPATIBLE = "sdk_incompatible"


class DuplicatePrecedence(Enum):
    """Which occurrence wins when several conflicts name the same package."""
    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True)
class DependencyConflict:
    """A dependency resolution failure parsed from resolver output.

    ``is_direct_dependency`` stays None until the dependency graph was queried.
    """
    package: str
    current_version_constraint: str
    conflicting_with: str
    required_constraint: str
    kind: ConflictKind = ConflictKind.DEPENDS_ON
    is_direct_dependency: Optional[bool] = None
    dependents: Tuple[str, ...] = ()

    @property
    def blocked_by_sdk(self) -> bool:
        return self.required_constraint == SDK_SENTINEL

    def __str__(self) -> str:
        return (f"{self.package} {self.current_version_constraint} conflicts with "
                f"{self.conflicting_with} {self.required_constraint}")


@dataclass(frozen=True)
class VersionSignals:
    """The three independent hints about which SDK version a project wants.

    Absence of a signal is a legitimate value.
    """
    creation: Optional[SemVer] = None
    manifest_min: Optional[SemVer] = None
    pinned: Optional[SemVer] = None


class ReconcileDecision(Enum):
    """Row of the reconciliation decision table that produced an analysis."""
    CREATION_AGREES = "creation_agrees"
    CREATION_LOWER = "creation_lower"
    MANIFEST_LOWER = "manifest_lower"
    CREATION_ONLY = "creation_only"
    MANIFEST_ONLY = "manifest_only"
    PINNED_ONLY = "pinned_only"
    NO_SIGNAL = "no_signal"


@dataclass(frozen=True)
class VersionAnalysis:
    """Outcome of reconciling version signals; never persisted."""
    recommended: Optional[SemVer]
    conflict: bool = False
    reason: str = ""
    strategy: str = ""
    decision: ReconcileDecision = ReconcileDecision.NO_SIGNAL
    original_version: Optional[SemVer] = None
    # Runtime the recommendation must at least run; set when the manifest minimum drove it.
    runtime_floor: Optional[SemVer] = None

    @property
    def has_recommendation(self) -> bool:
        return self.recommended is not None


@dataclass(frozen=True)
class PublishedVersion:
    """One published release of a package as reported by the registry."""
    version: SemVer
    sdk_constraint: Optional[VersionConstraint]
    dependencies: Mapping[str, VersionConstraint] = field(default_factory=dict)
    published: Optional[str] = None

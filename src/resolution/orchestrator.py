"""Detect, resolve, apply, verify and roll back dependency conflicts.

One run follows

    IDLE -> BACKED_UP -> DETECTING -> RESOLVING -> VERIFYING -> COMMITTED | ROLLED_BACK

and never leaves the manifest changed unless the run reaches COMMITTED.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from common.logging_utils import Timer, extra_context, is_debug_enabled
from common.process_runner import CommandResult, run_command
from config import EngineConfig
from constants import Constants
from errors import ManualDecisionRequired, NoVersionSignal, RegistryUnavailable
from project.dependency_graph import DependencyGraph
from project.manifest import Manifest, set_dependency_version, set_sdk_constraint
from project.signals import SignalCollector
from registry.pub import PubRegistryClient
from registry.releases import SdkReleaseLookup
from resolution.advice import suggest
from resolution.attempt import BackupStore, ResolutionAttempt
from resolution.era_guard import SafetyEraGuard, SdkConstraintAction, SdkConstraintPlan
from resolution.finder import CompatibleVersionFinder
from resolution.reconciler import VersionReconciler
from versioning.conflicts import ConflictParser, dedupe_conflicts, parse_sdk_requirements
from versioning.models import SDK_SENTINEL, ConflictKind, DependencyConflict, VersionAnalysis
from versioning.semver import SemVer
from versioning.toolchain import ActiveToolchain

logger = logging.getLogger(__name__)

CommandRunner = Callable[[Sequence[str], str, Optional[float]], CommandResult]


class RunState(Enum):
    IDLE = "idle"
    BACKED_UP = "backed_up"
    DETECTING = "detecting"
    RESOLVING = "resolving"
    VERIFYING = "verifying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class ResolutionStatus(Enum):
    """Outcome of a run. Only NO_CHANGES_APPLIED ends rolled back."""
    UP_TO_DATE = "up_to_date"
    RESOLVED = "resolved"
    PARTIAL_RESOLUTION = "partial_resolution"
    NO_CHANGES_APPLIED = "no_changes_applied"


@dataclass
class ResolutionReport:
    status: ResolutionStatus = ResolutionStatus.UP_TO_DATE
    states: List[RunState] = field(default_factory=lambda: [RunState.IDLE])
    resolved: Dict[str, SemVer] = field(default_factory=dict)
    unresolved: List[DependencyConflict] = field(default_factory=list)
    unreachable: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    verification_output: str = ""
    analysis: Optional[VersionAnalysis] = None
    sdk_plan: Optional[SdkConstraintPlan] = None
    rehomed: Dict[str, SemVer] = field(default_factory=dict)

    @property
    def state(self) -> RunState:
        return self.states[-1]

    def enter(self, state: RunState) -> None:
        logger.debug("Resolution state -> %s", state.value)
        self.states.append(state)

    @property
    def has_warnings(self) -> bool:
        return self.status in (ResolutionStatus.PARTIAL_RESOLUTION, ResolutionStatus.NO_CHANGES_APPLIED) \
            or bool(self.unreachable)


class ResolutionOrchestrator:
    """Composes signals, reconciliation, the era guard and conflict resolution.

    Collaborators default to the real implementations built from ``config``;
    tests pass fakes for the registry, the release lookup and the command runner.
    """

    def __init__(
        self,
        config: EngineConfig,
        registry: Optional[PubRegistryClient] = None,
        releases: Optional[SdkReleaseLookup] = None,
        runner: Optional[CommandRunner] = None,
        parser: Optional[ConflictParser] = None,
    ):
        self.config = config
        self.registry = registry or PubRegistryClient(
            endpoint=config.registry_endpoint, timeout=config.request_timeout
        )
        self.releases = releases or SdkReleaseLookup(
            api_base=config.github_api_base, timeout=config.request_timeout
        )
        self.runner = runner or run_command
        self.parser = parser or ConflictParser()
        self.finder = CompatibleVersionFinder(self.registry, include_prerelease=config.include_prerelease)
        self.reconciler = VersionReconciler()
        self.guard = SafetyEraGuard(self.finder, accept_upgrade=config.accept_upgrade)
        self.signals = SignalCollector(config.project_root, self.releases)
        self.backups = BackupStore(config.project_root)

    def _run(self, command: Sequence[str]) -> CommandResult:
        return self.runner(command, self.config.project_root, self.config.command_timeout)

    def _attempt(self, description: str) -> ResolutionAttempt:
        return ResolutionAttempt(
            self.config.manifest_path, self.backups, description, keep_backup=self.config.keep_backup
        )

    def analyze(self) -> VersionAnalysis:
        """Reconcile the project's version signals.

        Raises:
            NoVersionSignal: if no signal offers a recommendation.
        """
        manifest = Manifest.load(self.config.manifest_path)
        logger.info("Analyzing project %s", manifest.name or self.config.project_root)
        analysis = self.reconciler.reconcile_signals(self.signals.collect(manifest))
        if not analysis.has_recommendation:
            raise NoVersionSignal()
        if analysis.conflict:
            logger.warning("Version signals disagree: %s", analysis.reason)
        else:
            logger.info("%s", analysis.reason)
        return analysis

    def sync(self) -> ResolutionReport:
        """Reconcile versions, align the SDK constraint, then resolve conflicts.

        Raises:
            NoVersionSignal: before the manifest is touched.
            ManualDecisionRequired: after restoring the manifest.
        """
        analysis = self.analyze()
        runtime_override = self.config.active_runtime_version or analysis.runtime_floor
        active = ActiveToolchain.for_sdk(analysis.recommended, runtime_override)
        logger.info("Active SDK %s (runtime %s)", active.sdk_version, active.runtime_version)

        plan = None
        rehomed: Dict[str, SemVer] = {}
        unreachable: List[str] = []
        if self.config.align_sdk_constraint:
            plan, rehomed, unreachable = self.align_sdk_constraint(analysis)

        report = self.resolve(active)
        report.analysis = analysis
        report.sdk_plan = plan
        report.rehomed = rehomed
        report.unreachable = sorted(set(report.unreachable) | set(unreachable))
        return report

    def align_sdk_constraint(self, analysis: VersionAnalysis):
        """Write the SDK constraint chosen by the era guard in its own attempt."""
        manifest = Manifest.load(self.config.manifest_path)
        creation = analysis.original_version
        plan = self.guard.plan(analysis, creation, manifest.sdk_constraint)
        if plan.action is SdkConstraintAction.KEEP:
            return plan, {}, []

        with self._attempt(f"Align SDK constraint ({plan.action.value})") as attempt:
            set_sdk_constraint(self.config.manifest_path, str(plan.constraint))
            rehomed: Dict[str, SemVer] = {}
            unreachable: List[str] = []
            if plan.action is SdkConstraintAction.RESTORE_LEGACY:
                result = self.guard.rehome(manifest.hosted_dependencies(), analysis.recommended)
                if result.manual:
                    raise ManualDecisionRequired(result.manual)
                for package, version in result.rehomed.items():
                    set_dependency_version(self.config.manifest_path, package, version)
                rehomed, unreachable = result.rehomed, result.unreachable
            attempt.commit()
        return plan, rehomed, unreachable

    def resolve(self, active: ActiveToolchain) -> ResolutionReport:
        """Run one detect/resolve/verify cycle against the manifest."""
        report = ResolutionReport()
        with Timer() as t, self._attempt("Resolve dependency conflicts") as attempt:
            report.enter(RunState.BACKED_UP)

            report.enter(RunState.DETECTING)
            detection = self._run(self.config.resolution_command)
            if detection.success:
                attempt.commit()
                report.enter(RunState.COMMITTED)
                report.status = ResolutionStatus.UP_TO_DATE
                logger.info("Dependencies resolve; nothing to do")
                return report

            conflicts = self.detect_conflicts(detection.output)
            logger.info("Found %d conflict(s)", len(conflicts))

            report.enter(RunState.RESOLVING)
            resolved, unresolved, unreachable = self._resolve_conflicts(conflicts, active)
            applied, skipped = self._apply(resolved, conflicts)
            unresolved.extend(skipped)
            report.resolved = applied
            report.unresolved = unresolved
            report.unreachable = unreachable

            report.enter(RunState.VERIFYING)
            verification = self._run(self.config.resolution_command)
            report.verification_output = verification.output
            if verification.success:
                attempt.commit()
                report.enter(RunState.COMMITTED)
                report.status = ResolutionStatus.RESOLVED
                logger.info("Resolved %d package(s)", len(applied))
            elif applied:
                attempt.commit()
                report.enter(RunState.COMMITTED)
                report.status = ResolutionStatus.PARTIAL_RESOLUTION
                logger.warning("Partial resolution: %d fixed, %d unresolved",
                               len(applied), len(unresolved))
            else:
                attempt.rollback()
                report.enter(RunState.ROLLED_BACK)
                report.status = ResolutionStatus.NO_CHANGES_APPLIED
                logger.warning("No changes applied; manifest restored")

        if report.unresolved:
            report.unresolved = self._annotate(report.unresolved)
            report.suggestions = suggest(
                report.unresolved, active, parse_sdk_requirements(detection.output)
            )
        if is_debug_enabled(logger):
            logger.debug(
                "Resolution finished",
                extra=extra_context(
                    event="resolution",
                    component="orchestrator",
                    action="resolve",
                    outcome=report.status.value,
                    resolved=len(report.resolved),
                    unresolved=len(report.unresolved),
                    duration_ms=t.duration_ms()
                )
            )
        return report

    def detect_conflicts(self, output: str) -> List[DependencyConflict]:
        """Structured conflicts from resolver output, one per package.

        Output without a recognized conflict shape falls back to the
        "requires SDK version" lines, each becoming an SDK incompatibility.
        """
        conflicts = self.parser.parse(output)
        if not conflicts:
            conflicts = [
                DependencyConflict(
                    package=package,
                    current_version_constraint=f">={runtime}",
                    conflicting_with="dart",
                    required_constraint=SDK_SENTINEL,
                    kind=ConflictKind.SDK_INCOMPATIBLE,
                )
                for package, runtime in parse_sdk_requirements(output).items()
            ]
        return dedupe_conflicts(conflicts, self.config.duplicate_precedence)

    def _resolve_conflicts(self, conflicts: List[DependencyConflict], active: ActiveToolchain):
        resolved: Dict[str, SemVer] = {}
        unresolved: List[DependencyConflict] = []
        unreachable: List[str] = []

        self.registry.prefetch(c.package for c in conflicts if c.package not in Constants.SDK_PACKAGES)
        for conflict in conflicts:
            if conflict.package in Constants.SDK_PACKAGES:
                unresolved.append(conflict)
                continue
            try:
                version = self.finder.find(conflict.package, active)
            except RegistryUnavailable as exc:
                logger.warning("%s", exc)
                unreachable.append(conflict.package)
                continue
            if version is None:
                unresolved.append(conflict)
            else:
                resolved[conflict.package] = version
        return resolved, unresolved, unreachable

    def _apply(self, resolved: Dict[str, SemVer], conflicts: List[DependencyConflict]):
        """Write each resolution.

        Returns the applied versions and the conflicts of packages the manifest
        does not declare, which therefore stay unresolved.
        """
        by_package = {c.package: c for c in conflicts}
        applied: Dict[str, SemVer] = {}
        skipped: List[DependencyConflict] = []
        for package, version in resolved.items():
            if set_dependency_version(self.config.manifest_path, package, version):
                applied[package] = version
            else:
                logger.warning("%s is not declared in the manifest; cannot pin %s", package, version)
                skipped.append(by_package[package])
        return applied, skipped

    def _annotate(self, conflicts: List[DependencyConflict]) -> List[DependencyConflict]:
        result = self._run(self.config.deps_command)
        graph = DependencyGraph.from_json(result.output) if result.success else None
        if graph is None:
            logger.debug("Dependency graph unavailable; conflicts left unannotated")
            return conflicts
        return [graph.annotate(c) for c in conflicts]

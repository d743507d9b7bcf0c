"""CLI entry point for the sync command."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from config import load_config
from constants import ExitCodes
from errors import FlutterFixError, ManifestError, ManualDecisionRequired, NoVersionSignal, RegistryUnavailable
from project.signals import SignalCollector
from resolution.orchestrator import ResolutionOrchestrator, ResolutionReport

logger = logging.getLogger(__name__)


def _overrides(args: Any) -> Dict[str, Any]:
    """Map CLI flags onto config keys; unset flags stay None and are skipped."""
    return {
        "registry_endpoint": getattr(args, "REGISTRY_ENDPOINT", None),
        "active_runtime_version": getattr(args, "RUNTIME_VERSION", None),
        "request_timeout": getattr(args, "REQUEST_TIMEOUT", None),
        "command_timeout": getattr(args, "COMMAND_TIMEOUT", None),
        "duplicate_precedence": getattr(args, "DUPLICATE_PRECEDENCE", None),
        "include_prerelease": getattr(args, "INCLUDE_PRERELEASE", None),
        "align_sdk_constraint": getattr(args, "ALIGN_SDK", None),
        "accept_upgrade": getattr(args, "ACCEPT_UPGRADE", None),
        "keep_backup": getattr(args, "KEEP_BACKUP", None),
    }


def print_report(report: ResolutionReport) -> None:
    if report.analysis is not None:
        print(f"SDK version: {report.analysis.recommended} ({report.analysis.strategy})")
    if report.sdk_plan is not None:
        print(f"SDK constraint: {report.sdk_plan.constraint} [{report.sdk_plan.action.value}]")
    for package, version in sorted(report.rehomed.items()):
        print(f"  rehomed {package} -> ^{version}")

    print(f"Result: {report.status.value}")
    for package, version in sorted(report.resolved.items()):
        print(f"  fixed {package} -> ^{version}")
    for conflict in report.unresolved:
        kind = ""
        if conflict.is_direct_dependency is True:
            kind = " (direct)"
        elif conflict.is_direct_dependency is False:
            kind = " (transitive, required by " + (", ".join(conflict.dependents) or "unknown") + ")"
        print(f"  unresolved {conflict.package}{kind}: {conflict}")
    for package in report.unreachable:
        print(f"  registry unreachable for {package}")
    if report.suggestions:
        print("Suggestions:")
        for index, suggestion in enumerate(report.suggestions, start=1):
            print(f"  {index}. {suggestion}")


def run_sync(args: Any) -> ExitCodes:
    """Run one sync and map its outcome to an exit code."""
    project_root = os.path.abspath(getattr(args, "PROJECT_DIR", ".") or ".")
    try:
        config = load_config(project_root, getattr(args, "CONFIG", None), _overrides(args))
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return ExitCodes.FILE_ERROR

    use_fvm = getattr(args, "USE_FVM", None)
    if use_fvm is None:
        use_fvm = SignalCollector(project_root).uses_version_manager()
    if use_fvm:
        config = config.with_version_manager()

    orchestrator = ResolutionOrchestrator(config)
    try:
        report = orchestrator.sync()
    except NoVersionSignal as exc:
        logger.error("%s", exc)
        for hint in exc.hints:
            logger.error("  - %s", hint)
        return ExitCodes.NO_VERSION_SIGNAL
    except ManualDecisionRequired as exc:
        logger.error("%s", exc)
        logger.error("The manifest was restored. Options:")
        for option in exc.options:
            logger.error("  - %s", option)
        return ExitCodes.MANUAL_DECISION
    except ManifestError as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR
    except RegistryUnavailable as exc:
        logger.error("%s", exc)
        return ExitCodes.CONNECTION_ERROR
    except FlutterFixError as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR

    print_report(report)
    if report.has_warnings and getattr(args, "ERROR_ON_WARNINGS", False):
        return ExitCodes.EXIT_WARNINGS
    return ExitCodes.SUCCESS

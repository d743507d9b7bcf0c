"""Exceptions raised by the reconciliation and resolution engine."""

from typing import Iterable, List, Optional, Sequence


class FlutterFixError(Exception):
    """Base exception class for all flutterfix errors."""


class MalformedConstraint(FlutterFixError):
    """Raised when no numeric version can be extracted from version text."""

    def __init__(self, text: Optional[str], reason: str = "no numeric version found"):
        self.text = text
        super().__init__(f"Malformed version constraint {text!r}: {reason}")


class RegistryUnavailable(FlutterFixError):
    """Raised when the package registry cannot answer.

    This means "no information", never "no compatible version exists".
    """

    def __init__(self, package: str, reason: str):
        self.package = package
        self.reason = reason
        super().__init__(f"Registry unavailable for '{package}': {reason}")


class NoVersionSignal(FlutterFixError):
    """Raised when no source offered a toolchain version recommendation."""

    DEFAULT_HINTS = (
        "Run without SDK alignment to keep the currently installed SDK",
        "Check that .metadata and pubspec.yaml exist in the project",
        "Pin an SDK version explicitly (e.g. fvm use <version>)",
    )

    def __init__(self, hints: Optional[Sequence[str]] = None):
        self.hints: List[str] = list(hints or self.DEFAULT_HINTS)
        super().__init__("Could not detect SDK version requirements for this project")


class ManualDecisionRequired(FlutterFixError):
    """Raised when the safety-era guard finds dependencies it must not guess about."""

    OPTIONS = (
        "remove the dependency",
        "replace it with a legacy-compatible alternative",
        "explicitly accept the upgrade to the modern era",
    )

    def __init__(self, packages: Iterable[str], options: Optional[Sequence[str]] = None):
        self.packages: List[str] = sorted(set(packages))
        self.options: List[str] = list(options or self.OPTIONS)
        super().__init__(
            "Manual decision required for: " + ", ".join(self.packages)
        )


class ManifestError(FlutterFixError):
    """Raised when the manifest is missing or not a YAML mapping."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Manifest error in '{path}': {reason}")


class ResolutionAttemptError(FlutterFixError):
    """Raised on misuse of the transactional resolution attempt."""

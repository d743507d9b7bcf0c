"""Shared fixtures: fake registry, fake command runner and a sample project."""

import json
import os
from typing import Dict, Iterable, List, Optional

import pytest

from common.process_runner import CommandResult
from config import EngineConfig
from errors import RegistryUnavailable
from registry.pub import PubRegistryClient
from versioning.constraints import BareVersion, parse_constraint
from versioning.models import PublishedVersion
from versioning.semver import SemVer, parse_version

PUBSPEC = """name: demo_app
description: A demo app.
version: 1.0.0+1

environment:
  sdk: ">=2.18.0 <4.0.0"  # runtime constraint

dependencies:
  flutter:
    sdk: flutter
  http_parser: ^4.1.2
  # state management
  provider: ^6.0.0

dev_dependencies:
  flutter_test:
    sdk: flutter
"""

HTTP_PARSER_CONFLICT = (
    "Resolving dependencies...\n"
    "Because every version of flutter_test from sdk depends on collection 1.18.0 and "
    "http_parser 4.1.2 depends on collection ^1.19.0, http_parser 4.1.2 is forbidden.\n"
    "So, because demo_app depends on http_parser ^4.1.2, version solving failed.\n"
)


def published(version: str, sdk: Optional[str] = ">=2.12.0 <4.0.0", **dependencies: str) -> PublishedVersion:
    """Build a registry entry; dependency constraints are given as keyword arguments."""
    return PublishedVersion(
        version=parse_version(version),
        sdk_constraint=parse_constraint(sdk, bare=BareVersion.EXACT) if sdk else None,
        dependencies={name: parse_constraint(text, bare=BareVersion.EXACT)
                      for name, text in dependencies.items()},
    )


class FakeRegistry(PubRegistryClient):
    """Registry client answering from memory; caching and prefetch stay real."""

    def __init__(self, versions: Dict[str, List[PublishedVersion]], failures: Iterable[str] = ()):
        super().__init__(endpoint="https://registry.invalid/api/packages/", max_workers=1)
        self.versions = versions
        self.failures = set(failures)
        self.calls: List[str] = []

    def _fetch(self, package: str) -> List[PublishedVersion]:
        self.calls.append(package)
        if package in self.failures:
            raise RegistryUnavailable(package, "HTTP 503")
        if package not in self.versions:
            raise RegistryUnavailable(package, "HTTP 404")
        return sorted(self.versions[package], key=lambda pv: pv.version, reverse=True)


class FakeReleases:
    """Release lookup returning a fixed version for every revision."""

    def __init__(self, version: Optional[SemVer] = None):
        self.version = version
        self.revisions: List[str] = []

    def version_for_revision(self, revision: str) -> Optional[SemVer]:
        self.revisions.append(revision)
        return self.version


class FakeRunner:
    """Command runner replaying canned ``pub get`` results.

    The last result repeats once the list is exhausted. ``pub deps`` calls
    get ``deps_output``. An exception instance in ``results`` is raised.
    """

    def __init__(self, results, deps_output: str = ""):
        self.results = list(results)
        self.deps_output = deps_output
        self.commands: List[List[str]] = []

    def __call__(self, command, cwd, timeout=None):
        command = list(command)
        self.commands.append(command)
        if "deps" in command:
            return CommandResult(command=command, exit_code=0 if self.deps_output else 1,
                                 stdout=self.deps_output)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def pub_get_calls(self) -> int:
        return sum(1 for c in self.commands if "deps" not in c)


def ok(stdout: str = "Got dependencies!") -> CommandResult:
    return CommandResult(command=["flutter", "pub", "get"], exit_code=0, stdout=stdout)


def failed(stderr: str) -> CommandResult:
    return CommandResult(command=["flutter", "pub", "get"], exit_code=1, stderr=stderr)


def write_project(root, pubspec: str = PUBSPEC, revision: Optional[str] = None,
                  fvm_version: Optional[str] = None) -> str:
    """Create a project directory and return the manifest path."""
    root = str(root)
    manifest_path = os.path.join(root, "pubspec.yaml")
    with open(manifest_path, "w", encoding="utf-8", newline="") as handle:
        handle.write(pubspec)
    if revision is not None:
        with open(os.path.join(root, ".metadata"), "w", encoding="utf-8") as handle:
            handle.write(f"version:\n  revision: {revision}\n  channel: stable\n\nproject_type: app\n")
    if fvm_version is not None:
        os.makedirs(os.path.join(root, ".fvm"), exist_ok=True)
        with open(os.path.join(root, ".fvm", "fvm_config.json"), "w", encoding="utf-8") as handle:
            json.dump({"flutterSdkVersion": fvm_version}, handle)
    return manifest_path


def read_bytes(path) -> bytes:
    with open(path, "rb") as handle:
        return handle.read()


@pytest.fixture
def project(tmp_path):
    """A sample project; yields the manifest path."""
    return write_project(tmp_path)


@pytest.fixture
def engine_config(tmp_path):
    return EngineConfig(project_root=str(tmp_path))

"""Static compatibility table for Flutter SDK lines.

Each SDK line (major.minor) maps to the bundle of build toolchain versions
known to work with it, the Dart runtime it ships and the versions of the
transitive libraries the SDK pins through ``flutter_test``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from .constraints import VersionConstraint
from .semver import SemVer, compare, parse_version

logger = logging.getLogger(__name__)

# Dart runtime at which sound null safety became available.
SAFETY_WATERSHED_RUNTIME = SemVer(2, 12, 0)
# Lowest runtime lower bound written for a legacy-era project on a modern SDK.
LEGACY_FALLBACK_RUNTIME = SemVer(2, 10, 0)


class Era(Enum):
    """Safety era of a Dart runtime version."""
    LEGACY = "legacy"
    MODERN = "modern"


@dataclass(frozen=True)
class ToolchainVersionSet:
    """Mutually compatible versions recommended for one SDK line."""
    sdk_version: str
    build_tool: str          # Gradle
    build_tool_plugin: str   # Android Gradle Plugin
    compiler_plugin: str     # Kotlin
    jvm: str
    min_platform: int
    target_platform: int
    compile_platform: int
    runtime_version: SemVer
    bundled_libraries: Mapping[str, SemVer] = field(default_factory=dict)


def _line(sdk, gradle, agp, kotlin, java, min_sdk, target_sdk, compile_sdk, dart, bundled):
    return ToolchainVersionSet(
        sdk_version=sdk,
        build_tool=gradle,
        build_tool_plugin=agp,
        compiler_plugin=kotlin,
        jvm=java,
        min_platform=min_sdk,
        target_platform=target_sdk,
        compile_platform=compile_sdk,
        runtime_version=parse_version(dart),
        bundled_libraries={name: parse_version(v) for name, v in bundled.items()},
    )


COMPATIBILITY_TABLE: Dict[str, ToolchainVersionSet] = {
    "1.17": _line("1.17", "5.6.2", "3.5.0", "1.3.50", "8", 16, 28, 28, "2.8.0",
                  {"collection": "1.14.12", "meta": "1.1.8", "path": "1.6.4", "async": "2.4.1"}),
    "1.20": _line("1.20", "5.6.2", "3.5.0", "1.3.50", "8", 16, 29, 29, "2.9.0",
                  {"collection": "1.14.13", "meta": "1.1.8", "path": "1.7.0", "async": "2.4.2"}),
    "1.22": _line("1.22", "6.7", "4.1.0", "1.3.50", "8", 16, 29, 29, "2.10.0",
                  {"collection": "1.15.0", "meta": "1.2.4", "path": "1.7.0", "async": "2.5.0"}),
    "2.0": _line("2.0", "6.7", "4.1.0", "1.3.50", "8", 16, 30, 30, "2.12.0",
                 {"collection": "1.15.0", "meta": "1.3.0", "path": "1.8.0", "async": "2.5.0"}),
    "2.5": _line("2.5", "6.7", "4.1.0", "1.3.50", "8", 16, 30, 30, "2.14.0",
                 {"collection": "1.15.0", "meta": "1.7.0", "path": "1.8.0", "async": "2.8.1"}),
    "2.8": _line("2.8", "7.0.2", "4.1.0", "1.6.10", "11", 16, 31, 31, "2.15.0",
                 {"collection": "1.15.0", "meta": "1.7.0", "path": "1.8.0", "async": "2.8.2"}),
    "2.10": _line("2.10", "7.0.2", "4.1.0", "1.6.10", "11", 16, 31, 31, "2.16.0",
                  {"collection": "1.15.0", "meta": "1.7.0", "path": "1.8.0", "async": "2.8.2"}),
    "3.0": _line("3.0", "7.4", "7.1.2", "1.6.10", "11", 16, 31, 31, "2.17.0",
                 {"collection": "1.16.0", "meta": "1.7.0", "path": "1.8.1", "async": "2.9.0"}),
    "3.3": _line("3.3", "7.4", "7.1.2", "1.7.10", "11", 16, 33, 33, "2.18.0",
                 {"collection": "1.16.0", "meta": "1.8.0", "path": "1.8.2", "async": "2.9.0"}),
    "3.7": _line("3.7", "7.5", "7.3.0", "1.7.10", "11", 19, 33, 33, "2.19.0",
                 {"collection": "1.17.0", "meta": "1.8.0", "path": "1.8.2", "async": "2.10.0"}),
    "3.10": _line("3.10", "7.6.1", "7.4.2", "1.8.22", "17", 19, 33, 33, "3.0.0",
                  {"collection": "1.17.1", "meta": "1.9.1", "path": "1.8.3", "async": "2.11.0"}),
    "3.13": _line("3.13", "7.6.1", "7.4.2", "1.8.22", "17", 19, 33, 33, "3.1.0",
                  {"collection": "1.17.2", "meta": "1.9.1", "path": "1.8.3", "async": "2.11.0"}),
    "3.16": _line("3.16", "7.6.3", "7.4.2", "1.9.10", "17", 21, 34, 34, "3.2.0",
                  {"collection": "1.18.0", "meta": "1.10.0", "path": "1.8.3", "async": "2.11.0"}),
    "3.19": _line("3.19", "8.3", "8.1.0", "1.9.22", "17", 21, 34, 34, "3.3.0",
                  {"collection": "1.18.0", "meta": "1.11.0", "path": "1.9.0", "async": "2.11.0"}),
    "3.22": _line("3.22", "8.3", "8.1.0", "1.9.22", "17", 21, 34, 34, "3.4.0",
                  {"collection": "1.18.0", "meta": "1.12.0", "path": "1.9.0", "async": "2.11.0"}),
    "3.24": _line("3.24", "8.7", "8.3.0", "1.9.24", "17", 21, 34, 34, "3.5.0",
                  {"collection": "1.18.0", "meta": "1.15.0", "path": "1.9.0", "async": "2.11.0"}),
    "3.27": _line("3.27", "8.10", "8.7.0", "2.0.21", "17", 21, 35, 35, "3.6.0",
                  {"collection": "1.19.0", "meta": "1.15.0", "path": "1.9.0", "async": "2.11.0"}),
}

def _line_key(key: str) -> Tuple[int, int]:
    major, minor = key.split(".")
    return int(major), int(minor)


def _sorted_lines():
    return sorted(COMPATIBILITY_TABLE.items(), key=lambda item: _line_key(item[0]))


def toolchain_for(sdk_version: SemVer) -> ToolchainVersionSet:
    """Return the toolchain bundle for the SDK line of ``sdk_version``.

    Exact major.minor wins; otherwise the closest older line is used. Versions
    older than every known line get the oldest line.
    """
    exact = COMPATIBILITY_TABLE.get(sdk_version.major_minor)
    if exact is not None:
        return exact

    wanted = (sdk_version.major, sdk_version.minor)
    lines = _sorted_lines()
    chosen = lines[0][1]
    for key, bundle in lines:
        if _line_key(key) <= wanted:
            chosen = bundle
    logger.debug("No exact toolchain line for %s, using %s", sdk_version, chosen.sdk_version)
    return chosen


def runtime_for_sdk(sdk_version: SemVer) -> SemVer:
    """Minimum Dart runtime shipped by the SDK line of ``sdk_version``."""
    return toolchain_for(sdk_version).runtime_version


def sdk_for_runtime(runtime_version: SemVer) -> Optional[SemVer]:
    """Oldest known SDK line whose runtime is at least ``runtime_version``."""
    for key, bundle in _sorted_lines():
        if compare(bundle.runtime_version, runtime_version) >= 0:
            major, minor = _line_key(key)
            return SemVer(major, minor, 0)
    return None


def newest_sdk_line() -> SemVer:
    major, minor = _line_key(_sorted_lines()[-1][0])
    return SemVer(major, minor, 0)


def max_provided_version(library: str, sdk_version: SemVer) -> Optional[SemVer]:
    """Version of an SDK-pinned transitive library shipped by the active line.

    Returns None when the library is not pinned by the SDK.
    """
    bundled = toolchain_for(sdk_version).bundled_libraries
    return bundled.get(library)


def is_bundled_library(library: str) -> bool:
    return any(
        library in bundle.bundled_libraries for bundle in COMPATIBILITY_TABLE.values()
    )


def era_of_runtime(runtime_version: SemVer) -> Era:
    if compare(runtime_version, SAFETY_WATERSHED_RUNTIME) < 0:
        return Era.LEGACY
    return Era.MODERN


def era_of_sdk(sdk_version: SemVer) -> Era:
    return era_of_runtime(runtime_for_sdk(sdk_version))


def legacy_constraint_for(sdk_version: SemVer) -> VersionConstraint:
    """Legacy-era manifest constraint matching the runtime of ``sdk_version``.

    The lower bound stays below the watershed so the project keeps its
    pre-null-safety language version.
    """
    runtime = runtime_for_sdk(sdk_version)
    lower = runtime if era_of_runtime(runtime) is Era.LEGACY else LEGACY_FALLBACK_RUNTIME
    return VersionConstraint.between(lower.release(), SemVer(3, 0, 0))


def modern_constraint_for(sdk_version: SemVer) -> VersionConstraint:
    """Manifest constraint for the runtime line of ``sdk_version``."""
    runtime = runtime_for_sdk(sdk_version).release()
    return VersionConstraint.between(runtime, runtime.next_major())


@dataclass(frozen=True)
class ActiveToolchain:
    """The reconciled active SDK and the runtime used to filter registry candidates."""
    sdk_version: SemVer
    runtime_version: SemVer
    toolchain: ToolchainVersionSet

    @classmethod
    def for_sdk(cls, sdk_version: SemVer, runtime_override: Optional[SemVer] = None) -> "ActiveToolchain":
        toolchain = toolchain_for(sdk_version)
        runtime = runtime_override or toolchain.runtime_version
        return cls(sdk_version, runtime, toolchain)

    def max_provided_version(self, library: str) -> Optional[SemVer]:
        return max_provided_version(library, self.sdk_version)

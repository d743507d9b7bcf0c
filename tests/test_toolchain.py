"""Tests for the SDK compatibility table."""

import pytest

from versioning.semver import SemVer
from versioning.toolchain import (
    COMPATIBILITY_TABLE,
    SAFETY_WATERSHED_RUNTIME,
    ActiveToolchain,
    Era,
    era_of_runtime,
    era_of_sdk,
    is_bundled_library,
    legacy_constraint_for,
    max_provided_version,
    modern_constraint_for,
    runtime_for_sdk,
    sdk_for_runtime,
    toolchain_for,
)


class TestLookup:
    """Lookup by SDK line."""

    def test_exact_line(self):
        bundle = toolchain_for(SemVer(3, 24, 5))
        assert bundle.sdk_version == "3.24"
        assert bundle.runtime_version == SemVer(3, 5, 0)

    def test_closest_older_line(self):
        assert toolchain_for(SemVer(3, 25, 0)).sdk_version == "3.24"
        assert toolchain_for(SemVer(2, 2, 0)).sdk_version == "2.0"

    def test_older_than_every_line_uses_oldest(self):
        assert toolchain_for(SemVer(1, 0, 0)).sdk_version == "1.17"

    def test_runtime_mapping(self):
        assert runtime_for_sdk(SemVer(1, 22, 6)) == SemVer(2, 10, 0)
        assert runtime_for_sdk(SemVer(2, 0, 0)) == SemVer(2, 12, 0)

    def test_sdk_for_runtime(self):
        assert sdk_for_runtime(SemVer(2, 17, 1)) == SemVer(3, 3, 0)
        assert sdk_for_runtime(SemVer(9, 0, 0)) is None

    def test_table_is_immutable(self):
        with pytest.raises(Exception):
            COMPATIBILITY_TABLE["3.24"].build_tool = "1.0"  # type: ignore[misc]


class TestBundledLibraries:
    """Versions of libraries pinned by the SDK."""

    def test_max_provided_version(self):
        assert max_provided_version("collection", SemVer(3, 24, 0)) == SemVer(1, 18, 0)
        assert max_provided_version("collection", SemVer(3, 27, 1)) == SemVer(1, 19, 0)
        assert max_provided_version("provider", SemVer(3, 24, 0)) is None

    def test_is_bundled_library(self):
        assert is_bundled_library("collection")
        assert not is_bundled_library("http_parser")

    def test_active_toolchain_runtime_override(self):
        active = ActiveToolchain.for_sdk(SemVer(3, 24, 0), runtime_override=SemVer(3, 5, 4))
        assert active.runtime_version == SemVer(3, 5, 4)
        assert active.max_provided_version("collection") == SemVer(1, 18, 0)


class TestEras:
    """Null-safety eras and constraint text."""

    def test_era_of_runtime(self):
        assert era_of_runtime(SemVer(2, 11, 99)) is Era.LEGACY
        assert era_of_runtime(SAFETY_WATERSHED_RUNTIME) is Era.MODERN

    def test_era_of_sdk(self):
        assert era_of_sdk(SemVer(1, 22, 0)) is Era.LEGACY
        assert era_of_sdk(SemVer(2, 0, 0)) is Era.MODERN

    def test_legacy_constraint_for_legacy_line(self):
        assert str(legacy_constraint_for(SemVer(1, 22, 0))) == ">=2.10.0 <3.0.0"

    def test_legacy_constraint_for_modern_line_stays_below_watershed(self):
        assert str(legacy_constraint_for(SemVer(3, 24, 0))) == ">=2.10.0 <3.0.0"

    def test_modern_constraint(self):
        assert str(modern_constraint_for(SemVer(3, 24, 0))) == ">=3.5.0 <4.0.0"
        assert str(modern_constraint_for(SemVer(2, 5, 0))) == ">=2.14.0 <3.0.0"

"""Tests for version parsing and comparison."""

import itertools

import pytest

from errors import MalformedConstraint
from versioning.semver import SemVer, compare, parse_version, try_parse_version

TRIPLES = [SemVer(*t) for t in itertools.product((0, 1, 2), (0, 3, 10), (0, 1, 7))]


class TestCompare:
    """Ordering of versions."""

    @pytest.mark.parametrize("version", TRIPLES)
    def test_reflexive(self, version):
        assert compare(version, version) == 0

    def test_antisymmetric(self):
        for a, b in itertools.product(TRIPLES, repeat=2):
            assert compare(a, b) == -compare(b, a)

    def test_transitive(self):
        for a, b, c in itertools.product(TRIPLES[::3], repeat=3):
            if compare(a, b) < 0 and compare(b, c) < 0:
                assert compare(a, c) < 0

    def test_lexicographic_on_components(self):
        assert compare(SemVer(1, 10, 0), SemVer(1, 9, 99)) == 1
        assert compare(SemVer(2, 0, 0), SemVer(1, 99, 99)) == 1
        assert compare(SemVer(1, 2, 3), SemVer(1, 2, 4)) == -1

    def test_prerelease_stripped_by_default(self):
        assert compare(parse_version("1.2.3-beta"), parse_version("1.2.3")) == 0

    def test_strict_orders_prerelease_below_release(self):
        beta = parse_version("1.2.3-beta")
        assert compare(beta, SemVer(1, 2, 3), strict=True) == -1
        assert compare(parse_version("1.2.3-beta.2"), parse_version("1.2.3-beta.10"), strict=True) == -1

    def test_rich_comparisons_use_strict_order(self):
        versions = [SemVer(1, 0, 0), parse_version("1.0.0-dev.1"), SemVer(0, 9, 0)]
        assert sorted(versions) == [SemVer(0, 9, 0), parse_version("1.0.0-dev.1"), SemVer(1, 0, 0)]
        assert max(versions) == SemVer(1, 0, 0)


class TestParseVersion:
    """Lenient version parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("1.2.3", SemVer(1, 2, 3)),
        ("v3.24.0", SemVer(3, 24, 0)),
        ("'2.10.5'", SemVer(2, 10, 5)),
        ("3.5", SemVer(3, 5, 0)),
        ("3", SemVer(3, 0, 0)),
        ("2.19.0+1", SemVer(2, 19, 0)),
        ("flutter 3.7.12 stable", SemVer(3, 7, 12)),
    ])
    def test_parses(self, text, expected):
        assert parse_version(text) == expected

    def test_keeps_prerelease(self):
        version = parse_version("5.0.0-alpha.1")
        assert version.prerelease == "alpha.1"
        assert version.is_prerelease
        assert str(version) == "5.0.0-alpha.1"
        assert version.release() == SemVer(5, 0, 0)

    @pytest.mark.parametrize("text", ["", "stable", "any", None])
    def test_rejects_text_without_numbers(self, text):
        with pytest.raises(MalformedConstraint):
            parse_version(text)
        assert try_parse_version(text) is None

    def test_semver_passes_through(self):
        version = SemVer(1, 2, 3)
        assert parse_version(version) is version

    def test_helpers(self):
        version = SemVer(3, 24, 1)
        assert version.major_minor == "3.24"
        assert version.next_major() == SemVer(4, 0, 0)
        assert str(version) == "3.24.1"

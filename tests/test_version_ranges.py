"""Tests for versions and the version range algebra."""

import pytest

from versioning.errors import VersionRangeParseError
from versioning.ranges import (
    BoundKind,
    RangeKind,
    VersionRange,
    contains,
    format_range,
    intersect,
    intersect_all,
    parse_nuget_range,
    parse_range,
)
from versioning.semver import SemVer


def V(text):
    return SemVer.parse(text)


class TestSemVer:
    """Test version parsing and ordering."""

    def test_missing_components_are_zero(self):
        assert V("0.23") == V("0.23.0")
        assert V("3") == V("3.0.0.0")

    def test_keeps_original_text(self):
        assert str(V("0.23")) == "0.23"
        assert str(V("1.2.3.4")) == "1.2.3.4"

    def test_revision_sorts_after_patch(self):
        assert V("1.2.3") < V("1.2.3.1") < V("1.2.4")

    def test_prerelease_sorts_before_release(self):
        assert V("2.0.0-beta1") < V("2.0.0")
        assert V("2.0.0-alpha") < V("2.0.0-beta")
        assert V("2.0.0-beta1").is_prerelease
        assert not V("2.0.0").is_prerelease

    def test_numeric_ordering(self):
        assert V("1.9") < V("1.10")
        assert sorted([V("3.3.0"), V("3.2.1"), V("0.23")]) == [V("0.23"), V("3.2.1"), V("3.3.0")]

    def test_hash_matches_equality(self):
        assert len({V("1.0"), V("1.0.0"), V("1.0.0.0")}) == 1

    def test_numeric_parts(self):
        assert V("0.23").numeric_parts() == (0, 23)
        assert V("1.9.3-beta").numeric_parts() == (1, 9, 3)

    @pytest.mark.parametrize("text", ["", "abc", "1.2.x", "1..2"])
    def test_invalid_versions_raise(self, text):
        with pytest.raises(VersionRangeParseError):
            SemVer.parse(text)


class TestVariants:
    """Test that every range value has exactly one variant."""

    def test_factories(self):
        assert VersionRange.no_restriction().kind == RangeKind.NO_RESTRICTION
        assert VersionRange.specific("1.0").kind == RangeKind.SPECIFIC
        assert VersionRange.minimum("1.0").kind == RangeKind.MINIMUM
        assert VersionRange.greater_than("1.0").kind == RangeKind.GREATER_THAN
        assert VersionRange.maximum("1.0").kind == RangeKind.MAXIMUM
        assert VersionRange.less_than("1.0").kind == RangeKind.LESS_THAN
        assert VersionRange.range(BoundKind.INCLUDING, "1.0", "2.0", BoundKind.EXCLUDING).kind == RangeKind.RANGE

    def test_closed_range_with_equal_bounds_is_specific(self):
        r = VersionRange.range(BoundKind.INCLUDING, "1.0", "1.0", BoundKind.INCLUDING)
        assert r == VersionRange.specific("1.0")

    def test_minimum_zero_is_no_restriction(self):
        assert VersionRange.minimum("0") == VersionRange.no_restriction()
        assert VersionRange.specific("0").kind == RangeKind.SPECIFIC

    def test_empty_range_is_rejected(self):
        with pytest.raises(ValueError):
            VersionRange.range(BoundKind.INCLUDING, "2.0", "1.0", BoundKind.INCLUDING)
        with pytest.raises(ValueError):
            VersionRange.range(BoundKind.EXCLUDING, "1.0", "1.0", BoundKind.INCLUDING)


class TestContains:
    """Test range evaluation."""

    def test_no_restriction_accepts_everything(self):
        assert contains(VersionRange.no_restriction(), "0.0.1-alpha")
        assert contains(VersionRange.no_restriction(), "99.0")

    def test_specific(self):
        r = VersionRange.specific("0.23")
        assert contains(r, "0.23.0")
        assert not contains(r, "0.23.1")

    def test_inclusive_and_exclusive_bounds(self):
        r = VersionRange.range(BoundKind.EXCLUDING, "1.0", "2.0", BoundKind.INCLUDING)
        assert not contains(r, "1.0")
        assert contains(r, "1.5")
        assert contains(r, "2.0")
        assert not contains(r, "2.0.1")

    def test_one_sided(self):
        assert contains(VersionRange.minimum("3.2.1"), "3.3.0")
        assert not contains(VersionRange.greater_than("3.2.1"), "3.2.1")
        assert contains(VersionRange.maximum("1.0"), "1.0")
        assert not contains(VersionRange.less_than("1.0"), "1.0")


class TestIntersect:
    """Test exact intersection."""

    RANGES = [
        VersionRange.no_restriction(),
        VersionRange.specific("1.5"),
        VersionRange.minimum("1.0"),
        VersionRange.greater_than("1.5"),
        VersionRange.maximum("2.0"),
        VersionRange.less_than("1.5"),
        VersionRange.range(BoundKind.INCLUDING, "1.0", "2.0", BoundKind.EXCLUDING),
        VersionRange.range(BoundKind.EXCLUDING, "0.5", "1.5", BoundKind.INCLUDING),
    ]

    def test_tightest_bounds(self):
        r = intersect(VersionRange.minimum("1.0"), VersionRange.less_than("2.0"))
        assert r == VersionRange.range(BoundKind.INCLUDING, "1.0", "2.0", BoundKind.EXCLUDING)
        assert format_range(r) == ">= 1.0, < 2.0"

    def test_exclusive_wins_on_ties(self):
        r = intersect(VersionRange.minimum("1.0"), VersionRange.greater_than("1.0"))
        assert r == VersionRange.greater_than("1.0")
        r = intersect(VersionRange.maximum("2.0"), VersionRange.less_than("2.0"))
        assert r == VersionRange.less_than("2.0")

    def test_touching_inclusive_bounds_yield_specific(self):
        r = intersect(VersionRange.minimum("1.0"), VersionRange.maximum("1.0"))
        assert r == VersionRange.specific("1.0")

    def test_disjoint_ranges_are_unsatisfiable(self):
        assert intersect(VersionRange.minimum("2.0"), VersionRange.maximum("1.0")) is None
        assert intersect(VersionRange.greater_than("1.0"), VersionRange.maximum("1.0")) is None
        assert intersect(VersionRange.specific("1.0"), VersionRange.specific("1.1")) is None

    @pytest.mark.parametrize("a", RANGES)
    def test_identity_and_idempotence(self, a):
        assert intersect(a, VersionRange.no_restriction()) == a
        assert intersect(a, a) == a

    def test_commutative_and_associative(self):
        for a in self.RANGES:
            for b in self.RANGES:
                assert intersect(a, b) == intersect(b, a)
                for c in self.RANGES:
                    left = intersect(a, b)
                    left = None if left is None else intersect(left, c)
                    right = intersect(b, c)
                    right = None if right is None else intersect(a, right)
                    assert left == right

    def test_intersect_all(self):
        r = intersect_all([VersionRange.minimum("1.0"), VersionRange.maximum("3.0"), VersionRange.less_than("2.0")])
        assert r == VersionRange.range(BoundKind.INCLUDING, "1.0", "2.0", BoundKind.EXCLUDING)
        assert intersect_all([]) == VersionRange.no_restriction()
        assert intersect_all([VersionRange.minimum("2.0"), VersionRange.maximum("1.0")]) is None


class TestLockNotation:
    """Test rendering and parsing of the lock file notation."""

    @pytest.mark.parametrize("value, text", [
        (VersionRange.no_restriction(), ">= 0"),
        (VersionRange.specific("0.23"), "0.23"),
        (VersionRange.minimum("3.2.1"), ">= 3.2.1"),
        (VersionRange.greater_than("3.2.1"), "> 3.2.1"),
        (VersionRange.maximum("1.0"), "<= 1.0"),
        (VersionRange.less_than("1.0"), "< 1.0"),
        (VersionRange.range(BoundKind.INCLUDING, "1.0", "2.0", BoundKind.EXCLUDING), ">= 1.0, < 2.0"),
        (VersionRange.range(BoundKind.EXCLUDING, "1.0", "2.0", BoundKind.INCLUDING), "> 1.0, <= 2.0"),
    ])
    def test_format_and_parse(self, value, text):
        assert format_range(value) == text
        assert str(value) == text
        assert parse_range(text) == value

    @pytest.mark.parametrize("text", ["", ">=", "< 2.0, >= 1.0", ">= 2.0, < 1.0", ">= 1, < 2, < 3", "~> 1.0"])
    def test_invalid(self, text):
        with pytest.raises(VersionRangeParseError):
            parse_range(text)


class TestNuGetNotation:
    """Test NuGet interval notation from registry metadata."""

    @pytest.mark.parametrize("text, expected", [
        ("", VersionRange.no_restriction()),
        (None, VersionRange.no_restriction()),
        ("1.0", VersionRange.minimum("1.0")),
        ("[1.0]", VersionRange.specific("1.0")),
        ("(,1.0]", VersionRange.maximum("1.0")),
        ("(,1.0)", VersionRange.less_than("1.0")),
        ("(1.0,)", VersionRange.greater_than("1.0")),
        ("[1.0,)", VersionRange.minimum("1.0")),
        ("[1.0,2.0)", VersionRange.range(BoundKind.INCLUDING, "1.0", "2.0", BoundKind.EXCLUDING)),
        ("(1.0, 2.0]", VersionRange.range(BoundKind.EXCLUDING, "1.0", "2.0", BoundKind.INCLUDING)),
    ])
    def test_parse(self, text, expected):
        assert parse_nuget_range(text) == expected

    @pytest.mark.parametrize("text", ["[1.0", "(1.0)", "[,]", "[2.0,1.0]", "[1.0,2.0,3.0]"])
    def test_invalid(self, text):
        with pytest.raises(VersionRangeParseError):
            parse_nuget_range(text)

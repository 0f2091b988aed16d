"""Version range algebra: evaluation, intersection, rendering and parsing.

A range is an optional lower and an optional upper bound, each inclusive or
exclusive. The familiar variants (Specific, Minimum, GreaterThan, Maximum,
LessThan, Range, NoRestriction) are derived from the bounds, so every range
value has exactly one variant and one rendering. Intersection is exact: it
returns another range or None when nothing can satisfy both inputs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

from .errors import VersionRangeParseError
from .semver import SemVer

VersionLike = Union[str, SemVer]


class BoundKind(Enum):
    """Whether a range bound includes its version."""
    INCLUDING = "including"
    EXCLUDING = "excluding"


class RangeKind(Enum):
    """The variant a range value belongs to."""
    NO_RESTRICTION = "no_restriction"
    SPECIFIC = "specific"
    MINIMUM = "minimum"
    GREATER_THAN = "greater_than"
    MAXIMUM = "maximum"
    LESS_THAN = "less_than"
    RANGE = "range"


@dataclass(frozen=True)
class Bound:
    """One side of a range."""
    version: SemVer
    inclusive: bool


def _as_version(version: VersionLike) -> SemVer:
    return version if isinstance(version, SemVer) else SemVer.parse(version)


def _is_empty(lower: Optional[Bound], upper: Optional[Bound]) -> bool:
    if lower is None or upper is None:
        return False
    if lower.version > upper.version:
        return True
    if lower.version == upper.version:
        return not (lower.inclusive and upper.inclusive)
    return False


def _tighter_lower(a: Optional[Bound], b: Optional[Bound]) -> Optional[Bound]:
    if a is None:
        return b
    if b is None:
        return a
    if a.version != b.version:
        return a if a.version > b.version else b
    # same version: exclusive is tighter
    return b if a.inclusive and not b.inclusive else a


def _tighter_upper(a: Optional[Bound], b: Optional[Bound]) -> Optional[Bound]:
    if a is None:
        return b
    if b is None:
        return a
    if a.version != b.version:
        return a if a.version < b.version else b
    return b if a.inclusive and not b.inclusive else a


@dataclass(frozen=True)
class VersionRange:
    """An interval of acceptable versions.

    Use the factory classmethods rather than the bounds directly. NuGet treats
    a missing version as ``>= 0``, so ``minimum("0")`` is normalized to the
    same value as ``no_restriction()``.
    """

    lower: Optional[Bound] = None
    upper: Optional[Bound] = None

    def __post_init__(self):
        if self.upper is None and self.lower is not None and self.lower.inclusive and self.lower.version.is_zero():
            object.__setattr__(self, "lower", None)
        if _is_empty(self.lower, self.upper):
            raise ValueError(f"empty version range {self.lower} .. {self.upper}")

    @classmethod
    def no_restriction(cls) -> "VersionRange":
        return cls()

    @classmethod
    def specific(cls, version: VersionLike) -> "VersionRange":
        v = _as_version(version)
        return cls(Bound(v, True), Bound(v, True))

    @classmethod
    def minimum(cls, version: VersionLike) -> "VersionRange":
        return cls(Bound(_as_version(version), True), None)

    @classmethod
    def greater_than(cls, version: VersionLike) -> "VersionRange":
        return cls(Bound(_as_version(version), False), None)

    @classmethod
    def maximum(cls, version: VersionLike) -> "VersionRange":
        return cls(None, Bound(_as_version(version), True))

    @classmethod
    def less_than(cls, version: VersionLike) -> "VersionRange":
        return cls(None, Bound(_as_version(version), False))

    @classmethod
    def range(cls, lower_kind: BoundKind, low: VersionLike, high: VersionLike, upper_kind: BoundKind) -> "VersionRange":
        """Two-sided range; raises ValueError when no version fits."""
        return cls(
            Bound(_as_version(low), lower_kind == BoundKind.INCLUDING),
            Bound(_as_version(high), upper_kind == BoundKind.INCLUDING),
        )

    @property
    def kind(self) -> RangeKind:
        lower, upper = self.lower, self.upper
        if lower is None and upper is None:
            return RangeKind.NO_RESTRICTION
        if lower is not None and upper is not None:
            if lower.version == upper.version:
                return RangeKind.SPECIFIC
            return RangeKind.RANGE
        if lower is not None:
            return RangeKind.MINIMUM if lower.inclusive else RangeKind.GREATER_THAN
        return RangeKind.MAXIMUM if upper.inclusive else RangeKind.LESS_THAN

    def contains(self, version: VersionLike) -> bool:
        v = _as_version(version)
        if self.lower is not None:
            if v < self.lower.version or (v == self.lower.version and not self.lower.inclusive):
                return False
        if self.upper is not None:
            if v > self.upper.version or (v == self.upper.version and not self.upper.inclusive):
                return False
        return True

    def intersect(self, other: "VersionRange") -> Optional["VersionRange"]:
        """Tightest range matching both inputs, or None when unsatisfiable."""
        lower = _tighter_lower(self.lower, other.lower)
        upper = _tighter_upper(self.upper, other.upper)
        if _is_empty(lower, upper):
            return None
        return VersionRange(lower, upper)

    def __str__(self) -> str:
        return format_range(self)


def contains(version_range: VersionRange, version: VersionLike) -> bool:
    """Return True when the version satisfies the range."""
    return version_range.contains(version)


def intersect(a: VersionRange, b: VersionRange) -> Optional[VersionRange]:
    """Intersect two ranges; None is the explicit unsatisfiable result."""
    return a.intersect(b)


def intersect_all(ranges: Iterable[VersionRange]) -> Optional[VersionRange]:
    """Fold intersect over ranges, starting from no restriction."""
    result: Optional[VersionRange] = VersionRange.no_restriction()
    for item in ranges:
        result = result.intersect(item)
        if result is None:
            return None
    return result


def format_range(version_range: VersionRange) -> str:
    """Render a range in lock file notation; exactly one string per value."""
    kind = version_range.kind
    lower, upper = version_range.lower, version_range.upper
    if kind == RangeKind.NO_RESTRICTION:
        return ">= 0"
    if kind == RangeKind.SPECIFIC:
        return str(lower.version)
    if kind == RangeKind.MINIMUM:
        return f">= {lower.version}"
    if kind == RangeKind.GREATER_THAN:
        return f"> {lower.version}"
    if kind == RangeKind.MAXIMUM:
        return f"<= {upper.version}"
    if kind == RangeKind.LESS_THAN:
        return f"< {upper.version}"
    lower_op = ">=" if lower.inclusive else ">"
    upper_op = "<=" if upper.inclusive else "<"
    return f"{lower_op} {lower.version}, {upper_op} {upper.version}"


_COMPARATOR_RE = re.compile(r"^(>=|<=|>|<|=)?\s*([^\s<>=,]+)$")


def _parse_comparator(text: str, original: str):
    m = _COMPARATOR_RE.match(text.strip())
    if not m:
        raise VersionRangeParseError(original)
    return m.group(1) or "=", _as_version(m.group(2))


def parse_range(text: str) -> VersionRange:
    """Parse the lock file notation produced by format_range."""
    if text is None or not text.strip():
        raise VersionRangeParseError(text or "", "empty range")
    parts = [part for part in text.split(",")]
    if len(parts) == 1:
        op, version = _parse_comparator(parts[0], text)
        if op == "=":
            return VersionRange.specific(version)
        if op == ">=":
            return VersionRange.minimum(version)
        if op == ">":
            return VersionRange.greater_than(version)
        if op == "<=":
            return VersionRange.maximum(version)
        return VersionRange.less_than(version)
    if len(parts) == 2:
        low_op, low = _parse_comparator(parts[0], text)
        high_op, high = _parse_comparator(parts[1], text)
        if low_op not in (">=", ">") or high_op not in ("<=", "<"):
            raise VersionRangeParseError(text, "expected a lower bound followed by an upper bound")
        try:
            return VersionRange(Bound(low, low_op == ">="), Bound(high, high_op == "<="))
        except ValueError as exc:
            raise VersionRangeParseError(text, str(exc)) from exc
    raise VersionRangeParseError(text, "too many bounds")


def parse_nuget_range(text: Optional[str]) -> VersionRange:
    """Parse NuGet interval notation as used in registry metadata and nuspec files.

    Examples: ``1.0`` (>= 1.0), ``[1.0]`` (exactly 1.0), ``(,1.0]`` (<= 1.0),
    ``(,1.0)`` (< 1.0), ``(1.0,)`` (> 1.0), ``[1.0,2.0)`` (>= 1.0, < 2.0).
    """
    if text is None:
        return VersionRange.no_restriction()
    s = text.strip()
    if s == "" or s == "null":
        return VersionRange.no_restriction()

    if "," not in s:
        if s.startswith("["):
            if not s.endswith("]"):
                raise VersionRangeParseError(text)
            return VersionRange.specific(s.strip("[]").strip())
        if s[0] in "()" or s[-1] in "()]":
            raise VersionRangeParseError(text)
        return VersionRange.minimum(s)

    if s[0] not in "[(" or s[-1] not in "])":
        raise VersionRangeParseError(text)
    lower_inclusive = s[0] == "["
    upper_inclusive = s[-1] == "]"
    pieces = [piece.strip() for piece in s[1:-1].split(",")]
    if len(pieces) != 2:
        raise VersionRangeParseError(text)
    low, high = pieces

    try:
        if low and high:
            return VersionRange(Bound(_as_version(low), lower_inclusive), Bound(_as_version(high), upper_inclusive))
    except ValueError as exc:
        if isinstance(exc, VersionRangeParseError):
            raise
        raise VersionRangeParseError(text, str(exc)) from exc
    if high:
        return VersionRange.maximum(high) if upper_inclusive else VersionRange.less_than(high)
    if low:
        return VersionRange.minimum(low) if lower_inclusive else VersionRange.greater_than(low)
    raise VersionRangeParseError(text)

"""Package versions with NuGet-flavoured semantic version precedence."""

from __future__ import annotations

import functools
import re
from typing import Tuple

import semantic_version

from .errors import VersionRangeParseError

_VERSION_RE = re.compile(
    r"^[vV]?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z\-.]+))?(?:\+([0-9A-Za-z\-.]+))?$"
)


@functools.total_ordering
class SemVer:
    """A parsed package version.

    Missing minor/patch components count as zero and an optional fourth
    numeric component (NuGet revision) sorts after patch. Pre-release ordering
    is delegated to ``semantic_version``. The original text is kept so that
    ``0.23`` is rendered back as ``0.23``; equality ignores the spelling.
    """

    __slots__ = ("text", "revision", "_version")

    def __init__(self, text: str):
        stripped = (text or "").strip()
        m = _VERSION_RE.match(stripped)
        if not m:
            raise VersionRangeParseError(text, "not a version")
        major, minor, patch, revision, prerelease, _build = m.groups()
        canonical = f"{int(major)}.{int(minor or 0)}.{int(patch or 0)}"
        if prerelease:
            canonical = f"{canonical}-{prerelease}"
        try:
            self._version = semantic_version.Version(canonical)
        except ValueError as exc:
            raise VersionRangeParseError(text, str(exc)) from exc
        self.text = stripped
        self.revision = int(revision or 0)

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        """Parse a version string, raising VersionRangeParseError when invalid."""
        return cls(text)

    @property
    def is_prerelease(self) -> bool:
        return bool(self._version.prerelease)

    def _key(self):
        return (self._version.major, self._version.minor, self._version.patch, self.revision, self._version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "SemVer") -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"SemVer('{self.text}')"

    def numeric_parts(self) -> Tuple[int, ...]:
        """Numeric components exactly as many as were written (e.g. (0, 23) for '0.23')."""
        core = re.split(r"[-+]", self.text.lstrip("vV"), maxsplit=1)[0]
        return tuple(int(part) for part in core.split("."))

    def is_zero(self) -> bool:
        """True for 0, 0.0, 0.0.0 and 0.0.0.0 without a pre-release tag."""
        return not self.is_prerelease and self._key()[:4] == (0, 0, 0, 0)

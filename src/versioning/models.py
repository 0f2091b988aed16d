"""Data models for package identity, requirements and resolution results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .ranges import VersionRange
from .semver import SemVer


def normalize_name(name: str) -> str:
    """Case-insensitive identity key of a package name."""
    return name.strip().lower()


@dataclass(frozen=True)
class PackageName:
    """A package identity: the display casing plus the normalized key.

    Equality and hashing only look at the key, so ``Castle.Windsor`` and
    ``castle.windsor`` are the same package.
    """
    display: str = field(compare=False)
    key: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "display", self.display.strip())
        object.__setattr__(self, "key", normalize_name(self.display))

    def __str__(self) -> str:
        return self.display


class SourceKind(Enum):
    """Kinds of package sources."""
    NUGET = "nuget"
    LOCAL = "local"


@dataclass(frozen=True)
class PackageSource:
    """A remote NuGet registry URL or a local directory of .nupkg files."""
    kind: SourceKind
    location: str

    @classmethod
    def parse(cls, text: str) -> "PackageSource":
        location = text.strip()
        if location.lower().startswith(("http://", "https://")):
            return cls(SourceKind.NUGET, location)
        return cls(SourceKind.LOCAL, location)

    @classmethod
    def nuget(cls, url: str) -> "PackageSource":
        return cls(SourceKind.NUGET, url)

    @classmethod
    def local(cls, path: str) -> "PackageSource":
        return cls(SourceKind.LOCAL, path)

    def __str__(self) -> str:
        return self.location


@dataclass(frozen=True)
class PackageRequirement:
    """A single version constraint on a package, direct or transitive."""
    name: PackageName
    range: VersionRange
    sources: Tuple[PackageSource, ...] = ()
    override: bool = False
    raw_spec: Optional[str] = field(default=None, compare=False)  # as written in the dependencies file


@dataclass(frozen=True)
class ResolvedPackage:
    """A concrete package version chosen by the resolver."""
    name: PackageName
    version: SemVer
    source: PackageSource
    dependencies: Tuple[Tuple[PackageName, VersionRange], ...] = ()

    @property
    def key(self) -> str:
        return self.name.key


# Normalized package key -> the single resolved package for it.
PackageResolution = Dict[str, ResolvedPackage]


@dataclass(frozen=True)
class SourceFile:
    """A single file pinned from a GitHub repository."""
    owner: str
    project: str
    name: str
    commit: Optional[str] = None
    commit_specified: bool = field(default=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "name", self.name.lstrip("/"))

    @property
    def sort_key(self) -> Tuple[str, str, str]:
        return (self.owner.lower(), self.project.lower(), self.name.lower())

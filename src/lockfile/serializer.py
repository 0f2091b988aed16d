"""Lock file writer.

Output is a pure function of the LockFile value::

    REFERENCES: STRICT
    NUGET
      remote: https://www.nuget.org/api/v2
      specs:
        Castle.Windsor (3.2.1)
        Nancy.Bootstrappers.Windsor (0.23)
          Castle.Windsor (>= 3.2.1)
    GITHUB
      remote: fsharp/FAKE
      specs:
        src/app/FAKE/Cli.fs (7699e40e335f3cc54ab382a8969253fecc1e08a9)
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from constants import Constants, RepositoryTypes
from versioning.models import PackageResolution, PackageSource, ResolvedPackage, SourceFile
from versioning.ranges import format_range

REMOTE_INDENT = "  "
ENTRY_INDENT = "    "
DEPENDENCY_INDENT = "      "


def serialize_packages(strict: bool, resolution: PackageResolution) -> List[str]:
    """Lines of the strict marker and the NUGET section.

    Groups follow the first appearance of each source in the resolution's
    iteration order; packages inside a group are sorted by normalized name.
    """
    lines: List[str] = []
    if strict:
        lines.append(Constants.STRICT_MARKER)

    groups: Dict[PackageSource, List[ResolvedPackage]] = {}
    for package in resolution.values():
        groups.setdefault(package.source, []).append(package)
    if not groups:
        return lines

    lines.append(RepositoryTypes.NUGET.value)
    for source, packages in groups.items():
        lines.append(f"{REMOTE_INDENT}remote: {source}")
        lines.append(f"{REMOTE_INDENT}specs:")
        for package in sorted(packages, key=lambda p: p.name.key):
            lines.append(f"{ENTRY_INDENT}{package.name} ({package.version})")
            for dep_name, dep_range in package.dependencies:
                lines.append(f"{DEPENDENCY_INDENT}{dep_name} ({format_range(dep_range)})")
    return lines


def serialize_source_files(files: Iterable[SourceFile]) -> List[str]:
    """Lines of the GITHUB section, sorted by owner/project/path case-insensitively."""
    ordered = sorted(files, key=lambda f: f.sort_key)
    if not ordered:
        return []

    groups: Dict[Tuple[str, str], List[SourceFile]] = {}
    for source_file in ordered:
        groups.setdefault((source_file.owner, source_file.project), []).append(source_file)

    lines = [RepositoryTypes.GITHUB.value]
    for (owner, project), group in groups.items():
        lines.append(f"{REMOTE_INDENT}remote: {owner}/{project}")
        lines.append(f"{REMOTE_INDENT}specs:")
        for source_file in group:
            lines.append(f"{ENTRY_INDENT}{source_file.name} ({source_file.commit})")
    return lines


def serialize(strict: bool, resolution: PackageResolution, files: Iterable[SourceFile]) -> str:
    """Full lock file text, lines joined with newlines, no trailing newline."""
    return "\n".join(serialize_packages(strict, resolution) + serialize_source_files(files))

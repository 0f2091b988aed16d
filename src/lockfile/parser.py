"""Lock file reader.

A line oriented state machine over the format written by ``serializer``.
Indentation decides what a line is: section headers sit at column 0,
``remote:``/``specs:`` lines are indented, package and file lines use four
spaces and dependency lines six.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from constants import Constants, RepositoryTypes
from versioning.errors import LockFileParseError, VersionRangeParseError
from versioning.models import PackageName, PackageResolution, PackageSource, ResolvedPackage, SourceFile
from versioning.ranges import VersionRange, parse_range
from versioning.semver import SemVer

logger = logging.getLogger(__name__)

_ENTRY_RE = re.compile(r"^(.+?)\s+\(([^()]*)\)$")

ENTRY_INDENT = 4
DEPENDENCY_INDENT = 6


@dataclass
class _PackageEntry:
    name: PackageName
    version: SemVer
    source: PackageSource
    dependencies: List[Tuple[PackageName, VersionRange]] = field(default_factory=list)


@dataclass
class _ParseState:
    strict: bool = False
    section: Optional[RepositoryTypes] = None
    remote: Optional[str] = None
    packages: Dict[str, _PackageEntry] = field(default_factory=dict)
    current: Optional[_PackageEntry] = None
    source_files: List[SourceFile] = field(default_factory=list)


def _split_entry(text: str, line_number: int) -> Tuple[str, str]:
    match = _ENTRY_RE.match(text)
    if not match:
        raise LockFileParseError(line_number, f"expected 'name (value)', got '{text}'")
    return match.group(1), match.group(2).strip()


def _package_line(state: _ParseState, text: str, line_number: int) -> None:
    name_text, version_text = _split_entry(text, line_number)
    try:
        version = SemVer.parse(version_text)
    except VersionRangeParseError as exc:
        raise LockFileParseError(line_number, str(exc)) from exc
    name = PackageName(name_text)
    if name.key in state.packages:
        raise LockFileParseError(line_number, f"duplicate package '{name}'")
    entry = _PackageEntry(name, version, PackageSource.parse(state.remote))
    state.packages[name.key] = entry
    state.current = entry


def _dependency_line(state: _ParseState, text: str, line_number: int) -> None:
    if state.section is not RepositoryTypes.NUGET or state.current is None:
        raise LockFileParseError(line_number, "dependency line without a package")
    name_text, range_text = _split_entry(text, line_number)
    try:
        version_range = parse_range(range_text)
    except VersionRangeParseError as exc:
        raise LockFileParseError(line_number, str(exc)) from exc
    state.current.dependencies.append((PackageName(name_text), version_range))


def _file_line(state: _ParseState, text: str, line_number: int) -> None:
    parts = state.remote.split("/")
    if len(parts) != 2 or not all(parts):
        raise LockFileParseError(line_number, f"GitHub remote '{state.remote}' is not of the form owner/project")
    path, commit = _split_entry(text, line_number)
    if not commit:
        raise LockFileParseError(line_number, f"missing commit for '{path}'")
    state.source_files.append(SourceFile(parts[0], parts[1], path, commit, commit_specified=True))


def _parse_line(state: _ParseState, line: str, line_number: int) -> None:
    text = line.strip()
    indent = len(line) - len(line.lstrip(" "))

    if text.startswith("REFERENCES:"):
        state.strict = line.strip() == Constants.STRICT_MARKER
        return
    if indent == 0 and text in (RepositoryTypes.NUGET.value, RepositoryTypes.GITHUB.value):
        state.section = RepositoryTypes(text)
        state.remote = None
        state.current = None
        return
    if text.startswith("remote:"):
        if state.section is None:
            raise LockFileParseError(line_number, "remote before any section header")
        remote = text[len("remote:"):].strip()
        if not remote:
            raise LockFileParseError(line_number, "empty remote")
        state.remote = remote
        state.current = None
        return
    if text == "specs:":
        return

    if indent == ENTRY_INDENT:
        if state.section is None or state.remote is None:
            raise LockFileParseError(line_number, "entry before any remote")
        if state.section is RepositoryTypes.NUGET:
            _package_line(state, text, line_number)
        else:
            _file_line(state, text, line_number)
        return
    if indent == DEPENDENCY_INDENT:
        _dependency_line(state, text, line_number)
        return
    raise LockFileParseError(line_number, f"unexpected line '{text}'")


def parse_lock(text: str) -> Tuple[bool, PackageResolution, List[SourceFile]]:
    """Parse lock file text.

    Returns:
        Tuple of (strict, resolution, source_files); the resolution keeps the
        order packages appear in the file.

    Raises:
        LockFileParseError: With the 1-based number of the offending line.
    """
    state = _ParseState()
    for line_number, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip()
        if not line.strip():
            continue
        _parse_line(state, line, line_number)

    resolution: PackageResolution = {
        key: ResolvedPackage(entry.name, entry.version, entry.source, tuple(entry.dependencies))
        for key, entry in state.packages.items()
    }
    logger.debug("Parsed %d packages and %d source files from lock file", len(resolution), len(state.source_files))
    return state.strict, resolution, state.source_files

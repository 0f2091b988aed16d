"""Token parsing utilities for the dependencies file.

The file is line oriented::

    references strict
    source https://www.nuget.org/api/v2
    nuget Castle.Windsor-log4net ~> 3.2
    github fsharp/FAKE:master src/app/FAKE/Cli.fs

Double quotes group a token; blank lines and ``//`` or ``#`` comments are
skipped.
"""

import re
from typing import List, Optional, Tuple

from constants import Constants
from .errors import DependenciesFileParseError, VersionRangeParseError
from .models import PackageName, PackageRequirement, PackageSource, SourceFile
from .ranges import BoundKind, Bound, RangeKind, VersionRange
from .semver import SemVer

_TOKEN_RE = re.compile(r'"([^"]*)"|([^\s"]+)')
_CLAUSE_RE = re.compile(r"\s*(>=|<=|>|<|=)?\s*([^\s<>=,]+)\s*,?")

ParsedDependencies = Tuple[bool, List[PackageSource], List[PackageRequirement], List[SourceFile]]


def tokenize_line(line: str) -> List[str]:
    """Split a line into tokens, honouring double quotes.

    Backslashes are kept literally so Windows paths survive.

    Raises:
        ValueError: On unbalanced quotes.
    """
    if line.count('"') % 2:
        raise ValueError("unbalanced quotes")
    return [quoted if quoted or not bare else bare for quoted, bare in _TOKEN_RE.findall(line)]


def _twiddle_upper(version: SemVer) -> str:
    """Exclusive upper bound of ``~> version``: bump the second-to-last given component."""
    parts = version.numeric_parts()
    if len(parts) == 1:
        return f"{parts[0] + 1}.0"
    bumped = list(parts[:len(parts) - 2]) + [parts[len(parts) - 2] + 1]
    if len(bumped) == 1:
        bumped.append(0)
    return ".".join(str(p) for p in bumped)


def parse_requirement_spec(text: Optional[str]) -> Tuple[VersionRange, bool]:
    """Parse a requirement's version text into (range, override).

    Supported forms: empty (any version), ``1.1`` (exactly), ``>= v``, ``> v``,
    ``<= v``, ``< v``, ``>= v1 < v2`` and ``~> v``. A leading ``!`` marks an
    override requirement.
    """
    s = (text or "").strip()
    override = s.startswith("!")
    if override:
        s = s[1:].strip()
    if not s:
        return VersionRange.no_restriction(), override

    if s.startswith("~>"):
        low = SemVer.parse(s[2:])
        return VersionRange.range(BoundKind.INCLUDING, low, _twiddle_upper(low), BoundKind.EXCLUDING), override

    clauses = []
    pos = 0
    while pos < len(s):
        m = _CLAUSE_RE.match(s, pos)
        if not m or m.end() == pos:
            raise VersionRangeParseError(text)
        clauses.append((m.group(1) or "=", SemVer.parse(m.group(2))))
        pos = m.end()

    if len(clauses) == 1:
        op, version = clauses[0]
        factory = {
            "=": VersionRange.specific,
            ">=": VersionRange.minimum,
            ">": VersionRange.greater_than,
            "<=": VersionRange.maximum,
            "<": VersionRange.less_than,
        }[op]
        return factory(version), override
    if len(clauses) == 2:
        (low_op, low), (high_op, high) = clauses
        if low_op not in (">=", ">") or high_op not in ("<=", "<"):
            raise VersionRangeParseError(text, "expected a lower bound followed by an upper bound")
        try:
            return VersionRange(Bound(low, low_op == ">="), Bound(high, high_op == "<=")), override
        except ValueError as exc:
            raise VersionRangeParseError(text, str(exc)) from exc
    raise VersionRangeParseError(text, "too many bounds")


def format_requirement_spec(version_range: VersionRange, override: bool = False) -> str:
    """Render a range in dependencies file notation (inverse of parse_requirement_spec)."""
    kind = version_range.kind
    lower, upper = version_range.lower, version_range.upper
    if kind == RangeKind.NO_RESTRICTION:
        text = ""
    elif kind == RangeKind.SPECIFIC:
        text = str(lower.version)
    elif kind in (RangeKind.MINIMUM, RangeKind.GREATER_THAN):
        text = f"{'>=' if lower.inclusive else '>'} {lower.version}"
    elif kind in (RangeKind.MAXIMUM, RangeKind.LESS_THAN):
        text = f"{'<=' if upper.inclusive else '<'} {upper.version}"
    else:
        text = (f"{'>=' if lower.inclusive else '>'} {lower.version} "
                f"{'<=' if upper.inclusive else '<'} {upper.version}")
    if override:
        text = f"!{text}" if text else "!"
    return text


def _parse_github(tokens: List[str], line_number: int) -> SourceFile:
    if len(tokens) != 3:
        raise DependenciesFileParseError(line_number, "expected 'github owner/project[:commit] path'")
    repo, path = tokens[1], tokens[2]
    repo, _, commit = repo.partition(":")
    parts = repo.split("/")
    if len(parts) != 2 or not all(parts):
        raise DependenciesFileParseError(line_number, f"'{repo}' is not of the form owner/project")
    return SourceFile(parts[0], parts[1], path, commit or None, commit_specified=bool(commit))


def parse_dependencies(text: str) -> ParsedDependencies:
    """Parse dependencies file text.

    Every requirement gets all sources declared in the file, or the default
    NuGet source when the file declares none.

    Returns:
        Tuple of (strict, sources, requirements, source_files)

    Raises:
        DependenciesFileParseError: On unknown keywords or malformed lines.
    """
    strict = False
    sources: List[PackageSource] = []
    pending: List[Tuple[PackageName, VersionRange, bool, Optional[str]]] = []
    source_files: List[SourceFile] = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("//") or stripped.startswith("#"):
            continue
        try:
            tokens = tokenize_line(stripped)
        except ValueError as exc:
            raise DependenciesFileParseError(line_number, str(exc)) from exc

        keyword = tokens[0].lower()
        if keyword == "references":
            if [t.lower() for t in tokens[1:]] != ["strict"]:
                raise DependenciesFileParseError(line_number, "expected 'references strict'")
            strict = True
        elif keyword == "source":
            if len(tokens) != 2:
                raise DependenciesFileParseError(line_number, "expected 'source <url-or-path>'")
            source = PackageSource.parse(tokens[1])
            if source not in sources:
                sources.append(source)
        elif keyword == "nuget":
            if len(tokens) < 2:
                raise DependenciesFileParseError(line_number, "missing package name")
            raw_spec = " ".join(tokens[2:]) or None
            try:
                version_range, override = parse_requirement_spec(raw_spec)
            except VersionRangeParseError as exc:
                raise DependenciesFileParseError(line_number, str(exc)) from exc
            pending.append((PackageName(tokens[1]), version_range, override, raw_spec))
        elif keyword == "github":
            source_files.append(_parse_github(tokens, line_number))
        else:
            raise DependenciesFileParseError(line_number, f"unknown keyword '{tokens[0]}'")

    effective = tuple(sources) or (PackageSource.parse(Constants.DEFAULT_NUGET_SOURCE),)
    requirements = [
        PackageRequirement(name, version_range, effective, override=override, raw_spec=raw_spec)
        for name, version_range, override, raw_spec in pending
    ]
    return strict, sources, requirements, source_files

"""Exception taxonomy for resolution, parsing and feed access."""

from typing import Sequence, Tuple


class ResolutionError(Exception):
    """Base class for errors that abort a resolution run."""


class UnsatisfiableConstraint(ResolutionError):
    """No version can satisfy every constraint collected for a package."""

    def __init__(self, key: str, contributions: Sequence[Tuple[str, str]]):
        self.key = key
        self.contributions = list(contributions)
        details = "; ".join(f"{origin} requires {rendered}" for origin, rendered in self.contributions)
        super().__init__(f"No version of '{key}' satisfies all constraints: {details}")


class UnknownPackage(ResolutionError):
    """The package could not be found on any of its sources."""

    def __init__(self, key: str, tried_sources: Sequence[str]):
        self.key = key
        self.tried_sources = list(tried_sources)
        tried = ", ".join(self.tried_sources) or "no sources"
        super().__init__(f"Package '{key}' was not found on {tried}")


class ResolutionDivergence(ResolutionError):
    """A package had to be re-resolved more often than it has versions."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Resolution of '{key}' did not settle after {attempts} attempts")


class VersionRangeParseError(ValueError):
    """A version or version range text could not be parsed."""

    def __init__(self, text: str, reason: str = ""):
        self.text = text
        message = f"Unable to parse version range '{text}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LockFileParseError(ValueError):
    """The lock file text is structurally invalid."""

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Lock file line {line_number}: {reason}")


class DependenciesFileParseError(ValueError):
    """The dependencies file text is invalid."""

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Dependencies file line {line_number}: {reason}")


class FeedError(Exception):
    """A single package source failed to answer a query."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")

"""Resolver engine: requirements plus an oracle in, one consistent version set out.

The engine keeps a requirement pool keyed by normalized package name. Each
entry holds the intersection of every range seen for that package, the
sources proposed for it and the tentative resolution. Rounds of lookups run
until no entry is pending:

* pending keys, those reachable from the direct requirements through current
  resolutions, are looked up concurrently (versions, then the details of the
  lowest matching version);
* results are applied on the calling thread in ascending key order, merging
  each chosen version's dependency ranges into the pool;
* a merge that excludes an already chosen version clears that choice and
  queues the key again, up to a per-key attempt cap.

Ranges only ever tighten, so an empty intersection is reported immediately
as UnsatisfiableConstraint.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from registry.oracle import PackageDetails, PackageOracle

from .errors import ResolutionDivergence, ResolutionError, UnsatisfiableConstraint
from .models import PackageName, PackageRequirement, PackageResolution, PackageSource, ResolvedPackage
from .ranges import VersionRange, format_range
from .semver import SemVer

logger = logging.getLogger(__name__)


@dataclass
class PoolEntry:
    """Working state of one package during a resolution run."""
    name: PackageName
    range: VersionRange
    sources: List[PackageSource]
    contributions: List[Tuple[str, VersionRange]] = field(default_factory=list)
    override: bool = False
    canonical: Optional[PackageName] = None
    resolved: Optional[ResolvedPackage] = None
    available: int = 0
    attempts: int = 0

    def describe(self) -> List[Tuple[str, str]]:
        return [(origin, format_range(r)) for origin, r in self.contributions]


class RequirementPool:
    """Per-run pool of intersected requirements.

    Only the resolver's calling thread mutates the pool. Iteration follows
    first-seen order of discovery.
    """

    def __init__(self, max_attempts: int = 0):
        self._entries: Dict[str, PoolEntry] = {}
        self._direct: List[str] = []
        self._max_attempts = max_attempts

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __getitem__(self, key: str) -> PoolEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def reachable(self) -> List[str]:
        """Keys reachable from the direct requirements through current resolutions.

        Entries only introduced by an abandoned version are not reachable;
        they keep their ranges but are not looked up.
        """
        seen: List[str] = []
        queue = list(self._direct)
        while queue:
            key = queue.pop(0)
            if key in seen:
                continue
            seen.append(key)
            resolved = self._entries[key].resolved
            if resolved is not None:
                queue.extend(dep_name.key for dep_name, _ in resolved.dependencies)
        return seen

    def pending(self) -> List[str]:
        """Reachable keys without a current resolution, in discovery order."""
        reachable = set(self.reachable())
        return [key for key, entry in self._entries.items() if key in reachable and entry.resolved is None]

    def add(self, requirement: PackageRequirement, origin: str, direct: bool = False) -> None:
        """Merge a requirement into the pool.

        Raises:
            UnsatisfiableConstraint: If the merged range becomes empty.
            ResolutionDivergence: If the key exceeds its re-resolution cap.
        """
        key = requirement.name.key
        if direct and key not in self._direct:
            self._direct.append(key)
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = PoolEntry(
                name=requirement.name,
                range=requirement.range,
                sources=list(requirement.sources),
                contributions=[(origin, requirement.range)],
                override=direct and requirement.override,
            )
            return

        entry.contributions.append((origin, requirement.range))
        for source in requirement.sources:
            if source not in entry.sources:
                entry.sources.append(source)

        if entry.override and not direct:
            logger.debug("Ignoring %s from %s: %s is overridden", format_range(requirement.range), origin, entry.name)
            return
        if direct and requirement.override:
            entry.override = True

        narrowed = entry.range.intersect(requirement.range)
        if narrowed is None:
            raise UnsatisfiableConstraint(key, entry.describe())
        entry.range = narrowed

        if entry.resolved is not None and not narrowed.contains(entry.resolved.version):
            logger.info(
                "Re-resolving %s: %s does not satisfy %s required by %s",
                entry.resolved.name, entry.resolved.version, format_range(narrowed), origin,
            )
            entry.resolved = None
            self.count_attempt(key)

    def count_attempt(self, key: str) -> None:
        """Record another resolution attempt for a key and enforce the cap."""
        entry = self._entries[key]
        entry.attempts += 1
        cap = max(entry.available, self._max_attempts, 1)
        if entry.attempts > cap:
            raise ResolutionDivergence(key, entry.attempts)

    def record(self, key: str, resolved: ResolvedPackage) -> None:
        self._entries[key].resolved = resolved


@dataclass(frozen=True)
class _Lookup:
    key: str
    available: int
    version: Optional[SemVer]
    details: Optional[PackageDetails]


def select_version(versions: Sequence[SemVer], version_range: VersionRange) -> Optional[SemVer]:
    """Lowest version in range; pre-releases only when no stable version fits."""
    matching = sorted(v for v in set(versions) if version_range.contains(v))
    stable = [v for v in matching if not v.is_prerelease]
    if stable:
        return stable[0]
    return matching[0] if matching else None


class Resolver:
    """Computes a PackageResolution from direct requirements and an oracle."""

    def __init__(self, oracle: PackageOracle, max_workers: Optional[int] = None, max_attempts: Optional[int] = None):
        self.oracle = oracle
        self.max_workers = max_workers or Constants.RESOLVER_MAX_WORKERS
        self.max_attempts = Constants.RESOLVER_MAX_ATTEMPTS if max_attempts is None else max_attempts

    def resolve(self, requirements: Sequence[PackageRequirement]) -> PackageResolution:
        """Resolve direct requirements and everything they depend on.

        Raises:
            UnsatisfiableConstraint: No version fits the collected constraints.
            UnknownPackage: A package is missing from every one of its sources.
            ResolutionDivergence: A package exceeded its re-resolution cap.
        """
        pool = RequirementPool(self.max_attempts)
        for requirement in requirements:
            pool.add(requirement, origin=f"{requirement.name} (direct)", direct=True)

        logger.info("Resolving %d direct requirements", len({r.name.key for r in requirements}))
        rounds = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            while True:
                pending = pool.pending()
                if not pending:
                    break
                rounds += 1
                lookups = self._lookup_all(executor, pool, pending)
                for key in sorted(lookups):
                    self._apply(pool, lookups[key])

        resolution = self._assemble(pool)
        logger.info("Resolved %d packages in %d rounds", len(resolution), rounds)
        return resolution

    def _lookup(self, key: str, name: PackageName, version_range: VersionRange,
                sources: Tuple[PackageSource, ...]) -> _Lookup:
        versions = self.oracle.list_versions(name, sources)
        available = len(set(versions))
        chosen = select_version(versions, version_range)
        if chosen is None:
            return _Lookup(key, available, None, None)
        details = self.oracle.get_dependencies(name, chosen, sources)
        return _Lookup(key, available, chosen, details)

    def _lookup_all(self, executor: ThreadPoolExecutor, pool: RequirementPool,
                    pending: List[str]) -> Dict[str, _Lookup]:
        futures: Dict[str, Future] = {}
        for key in pending:
            entry = pool[key]
            name = entry.canonical or entry.name
            futures[key] = executor.submit(self._lookup, key, name, entry.range, tuple(entry.sources))

        results: Dict[str, _Lookup] = {}
        failures: Dict[str, ResolutionError] = {}
        for key in sorted(futures):
            try:
                results[key] = futures[key].result()
            except ResolutionError as exc:
                failures[key] = exc
        if failures:
            raise failures[min(failures)]
        return results

    def _apply(self, pool: RequirementPool, lookup: _Lookup) -> None:
        entry = pool[lookup.key]
        entry.available = max(entry.available, lookup.available)
        if lookup.version is None or lookup.details is None:
            raise UnsatisfiableConstraint(lookup.key, entry.describe())
        if not entry.range.contains(lookup.version):
            # narrowed by a result applied earlier in this round
            pool.count_attempt(lookup.key)
            return

        details = lookup.details
        if entry.canonical is None:
            entry.canonical = details.canonical_name
        elif entry.canonical.display != details.canonical_name.display:
            logger.debug("Keeping casing %s over %s", entry.canonical, details.canonical_name)

        resolved = ResolvedPackage(
            name=entry.canonical,
            version=lookup.version,
            source=details.source,
            dependencies=details.dependencies,
        )
        pool.record(lookup.key, resolved)
        if is_debug_enabled(logger):
            logger.debug(
                "Selected version",
                extra=extra_context(
                    event="decision", component="resolver", action="select",
                    package=lookup.key, version=str(lookup.version),
                    range=format_range(entry.range), candidate_count=lookup.available,
                    attempt=entry.attempts + 1,
                ),
            )

        origin = f"{resolved.name} {resolved.version}"
        for dep_name, dep_range in details.dependencies:
            pool.add(PackageRequirement(dep_name, dep_range, tuple(entry.sources)), origin)

    @staticmethod
    def _assemble(pool: RequirementPool) -> PackageResolution:
        return {key: pool[key].resolved for key in sorted(pool.reachable())}


def resolve(requirements: Sequence[PackageRequirement], oracle: PackageOracle) -> PackageResolution:
    """Convenience wrapper around Resolver(oracle).resolve(requirements)."""
    return Resolver(oracle).resolve(requirements)

"""Package metadata oracle: the interface the resolver queries.

A ``PackageFeed`` answers for one source. ``FeedOracle`` walks the declared
sources in priority order, recovering from single-source failures, and only
reports ``UnknownPackage`` once every source has failed. ``CachingOracle``
memoizes answers by normalized key and version.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from versioning.cache import TTLCache
from versioning.errors import FeedError, UnknownPackage
from versioning.models import PackageName, PackageSource, SourceKind
from versioning.ranges import VersionRange
from versioning.semver import SemVer

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (name as the feed spells it, [(dependency name, range), ...])
FeedDetails = Tuple[str, List[Tuple[str, VersionRange]]]


@dataclass(frozen=True)
class PackageDetails:
    """Metadata of one package version as answered by a source."""
    canonical_name: PackageName
    source: PackageSource
    dependencies: Tuple[Tuple[PackageName, VersionRange], ...]


class PackageFeed(ABC):
    """A single package source. Failures raise FeedError."""

    @abstractmethod
    def list_versions(self, name: str) -> List[SemVer]:
        """Return every version the source offers (may be empty)."""

    @abstractmethod
    def get_details(self, name: str, version: SemVer) -> FeedDetails:
        """Return the canonical name and declared dependencies of a version."""


class PackageOracle(ABC):
    """Everything the resolver needs to know about available packages."""

    @abstractmethod
    def list_versions(self, name: PackageName, sources: Sequence[PackageSource]) -> List[SemVer]:
        """Available versions of a package from the first source that knows it."""

    @abstractmethod
    def get_dependencies(self, name: PackageName, version: SemVer, sources: Sequence[PackageSource]) -> PackageDetails:
        """Canonical name, serving source and dependencies of a package version."""


def default_feed_factory(source: PackageSource, force: bool = False) -> PackageFeed:
    """Build the feed implementation matching the source kind.

    Remote feeds keep package details under Constants.NUGET_CACHE_DIR; with
    force set they fetch again instead of reading it.
    """
    # pylint: disable=import-outside-toplevel
    if source.kind == SourceKind.NUGET:
        from registry.nuget.client import NuGetFeed
        return NuGetFeed(source.location, cache_dir=Constants.NUGET_CACHE_DIR or None, force=force)
    from registry.nuget.local import LocalFeed
    return LocalFeed(source.location)


class FeedOracle(PackageOracle):
    """Oracle that tries sources in declared order and falls back on failure."""

    def __init__(self, feed_factory: Optional[Callable[[PackageSource], PackageFeed]] = None):
        self._feed_factory = feed_factory or default_feed_factory
        self._feeds: Dict[PackageSource, PackageFeed] = {}
        self._lock = threading.Lock()

    def feed_for(self, source: PackageSource) -> PackageFeed:
        with self._lock:
            feed = self._feeds.get(source)
            if feed is None:
                feed = self._feed_factory(source)
                self._feeds[source] = feed
            return feed

    def _first_success(
        self,
        name: PackageName,
        sources: Sequence[PackageSource],
        action: str,
        call: Callable[[PackageFeed], Optional[T]],
    ) -> Tuple[PackageSource, T]:
        tried: List[str] = []
        for source in sources:
            tried.append(str(source))
            try:
                result = call(self.feed_for(source))
            except FeedError as exc:
                logger.warning("Could not %s for %s on %s: %s", action, name, source, exc.reason)
                continue
            if result is None:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Package not on source",
                        extra=extra_context(
                            event="lookup", component="oracle", action=action,
                            outcome="not_found", package=name.key, target=str(source),
                        ),
                    )
                continue
            return source, result
        raise UnknownPackage(name.key, tried)

    def list_versions(self, name: PackageName, sources: Sequence[PackageSource]) -> List[SemVer]:
        def call(feed: PackageFeed) -> Optional[List[SemVer]]:
            return feed.list_versions(name.display) or None

        _, versions = self._first_success(name, sources, "list versions", call)
        return versions

    def get_dependencies(self, name: PackageName, version: SemVer, sources: Sequence[PackageSource]) -> PackageDetails:
        source, (canonical, dependencies) = self._first_success(
            name, sources, f"get details of {version}",
            lambda feed: feed.get_details(name.display, version),
        )
        return PackageDetails(
            canonical_name=PackageName(canonical),
            source=source,
            dependencies=tuple((PackageName(dep), dep_range) for dep, dep_range in dependencies),
        )


class CachingOracle(PackageOracle):
    """Memoizes another oracle by normalized key (and version)."""

    def __init__(self, inner: PackageOracle, cache: Optional[TTLCache] = None):
        self._inner = inner
        self._cache = cache if cache is not None else TTLCache(default_ttl=Constants.ORACLE_CACHE_TTL_SEC)

    def list_versions(self, name: PackageName, sources: Sequence[PackageSource]) -> List[SemVer]:
        cache_key = ("versions", name.key, tuple(sources))
        cached = self._cache.get(cache_key)
        if cached is not None:
            return list(cached)
        versions = self._inner.list_versions(name, sources)
        self._cache.set(cache_key, tuple(versions))
        return versions

    def get_dependencies(self, name: PackageName, version: SemVer, sources: Sequence[PackageSource]) -> PackageDetails:
        cache_key = ("details", name.key, version, tuple(sources))
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached
        details = self._inner.get_dependencies(name, version, sources)
        self._cache.set(cache_key, details)
        return details

"""Tests for the source-fallback oracle and its cache."""

from unittest.mock import MagicMock

import pytest

from conftest import GraphFeed

from constants import Constants
from registry.oracle import CachingOracle, FeedOracle, PackageDetails, default_feed_factory
from registry.nuget import LocalFeed, NuGetFeed
from versioning.cache import TTLCache
from versioning.errors import FeedError, UnknownPackage
from versioning.models import PackageName, PackageSource
from versioning.ranges import VersionRange
from versioning.semver import SemVer

FIRST = PackageSource.nuget("http://first.example/api/v2")
SECOND = PackageSource.nuget("http://second.example/api/v2")
GRAPH = [("FAKE", "3.5.0", [("FSharp.Core", VersionRange.minimum("4.0"))])]


class TestFeedOracle:
    """Test source fallback."""

    def test_failing_source_falls_through(self):
        broken = MagicMock()
        broken.list_versions.side_effect = FeedError(str(FIRST), "HTTP 500")
        broken.get_details.side_effect = FeedError(str(FIRST), "HTTP 500")
        feeds = {FIRST: broken, SECOND: GraphFeed(GRAPH)}
        oracle = FeedOracle(feed_factory=lambda source: feeds[source])

        assert oracle.list_versions(PackageName("fake"), [FIRST, SECOND]) == [SemVer.parse("3.5.0")]
        details = oracle.get_dependencies(PackageName("fake"), SemVer.parse("3.5.0"), [FIRST, SECOND])
        assert details == PackageDetails(
            PackageName("FAKE"), SECOND, ((PackageName("FSharp.Core"), VersionRange.minimum("4.0")),)
        )
        assert details.canonical_name.display == "FAKE"
        assert details.source == SECOND

    def test_source_without_versions_is_skipped(self):
        feeds = {FIRST: GraphFeed([]), SECOND: GraphFeed(GRAPH)}
        oracle = FeedOracle(feed_factory=lambda source: feeds[source])
        assert oracle.list_versions(PackageName("FAKE"), [FIRST, SECOND]) == [SemVer.parse("3.5.0")]

    def test_unknown_package_lists_every_source(self):
        broken = MagicMock()
        broken.list_versions.side_effect = FeedError(str(FIRST), "timeout")
        feeds = {FIRST: broken, SECOND: GraphFeed([])}
        oracle = FeedOracle(feed_factory=lambda source: feeds[source])
        with pytest.raises(UnknownPackage) as exc_info:
            oracle.list_versions(PackageName("Missing"), [FIRST, SECOND])
        assert exc_info.value.key == "missing"
        assert exc_info.value.tried_sources == [str(FIRST), str(SECOND)]

    def test_feed_instances_are_reused(self):
        factory = MagicMock(return_value=GraphFeed(GRAPH))
        oracle = FeedOracle(feed_factory=factory)
        oracle.list_versions(PackageName("FAKE"), [FIRST])
        oracle.list_versions(PackageName("FAKE"), [FIRST])
        factory.assert_called_once_with(FIRST)

    def test_default_factory_picks_feed_by_kind(self):
        assert isinstance(default_feed_factory(FIRST), NuGetFeed)
        assert isinstance(default_feed_factory(PackageSource.local("./packages")), LocalFeed)

    def test_default_factory_configures_details_cache(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Constants, "NUGET_CACHE_DIR", str(tmp_path))
        feed = default_feed_factory(FIRST, force=True)
        assert feed.cache_dir == str(tmp_path)
        assert feed.force is True

        monkeypatch.setattr(Constants, "NUGET_CACHE_DIR", "")
        assert default_feed_factory(FIRST).cache_dir is None


class TestCachingOracle:
    """Test memoization by normalized key."""

    def test_caches_by_normalized_key(self):
        feed = GraphFeed(GRAPH)
        oracle = CachingOracle(FeedOracle(feed_factory=lambda source: feed))
        oracle.list_versions(PackageName("FAKE"), [FIRST])
        oracle.list_versions(PackageName("fake"), [FIRST])
        oracle.get_dependencies(PackageName("FAKE"), SemVer.parse("3.5.0"), [FIRST])
        oracle.get_dependencies(PackageName("fake"), SemVer.parse("3.5.0.0"), [FIRST])
        assert [call[0] for call in feed.calls] == ["list_versions", "get_details"]

    def test_failures_are_not_cached(self):
        inner = MagicMock()
        inner.list_versions.side_effect = [UnknownPackage("fake", [str(FIRST)]), [SemVer.parse("1.0")]]
        oracle = CachingOracle(inner, TTLCache(default_ttl=60))
        with pytest.raises(UnknownPackage):
            oracle.list_versions(PackageName("FAKE"), [FIRST])
        assert oracle.list_versions(PackageName("FAKE"), [FIRST]) == [SemVer.parse("1.0")]


class TestTTLCache:
    """Test cache expiry and eviction."""

    def test_expired_entries_are_dropped(self):
        cache = TTLCache(default_ttl=60)
        cache.set("a", 1, ttl=-1)
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_evicts_oldest_when_full(self):
        cache = TTLCache(default_ttl=60, max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert len(cache) == 2
        assert cache.get("c") == 3

    def test_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.clear()
        assert cache.get("a") is None

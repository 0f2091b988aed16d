"""Shared fixtures: an in-memory package graph that plays the registry."""

import threading

import pytest

from registry.oracle import FeedOracle, PackageFeed
from versioning.errors import FeedError
from versioning.models import PackageName, PackageRequirement, PackageSource, normalize_name
from versioning.parser import parse_requirement_spec
from versioning.ranges import VersionRange
from versioning.semver import SemVer

DEFAULT_SOURCE = PackageSource.nuget("http://nuget.org/api/v2")


class GraphFeed(PackageFeed):
    """Feed answering from a list of (name, version, [(dep, range), ...]) tuples.

    Names are matched case-insensitively; details are returned with the casing
    of the graph entry, the way a registry answers with its official name.
    """

    def __init__(self, graph):
        self.graph = graph
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def list_versions(self, name):
        self._record("list_versions", name)
        key = normalize_name(name)
        return [SemVer.parse(version) for entry_name, version, _ in self.graph if normalize_name(entry_name) == key]

    def get_details(self, name, version):
        self._record("get_details", name, str(version))
        key = normalize_name(name)
        for entry_name, entry_version, deps in self.graph:
            if normalize_name(entry_name) == key and SemVer.parse(entry_version) == version:
                return entry_name, list(deps)
        raise FeedError("graph", f"{name} {version} not found")


def graph_oracle(graph):
    """FeedOracle whose every source is served by one GraphFeed."""
    feed = GraphFeed(graph)
    return FeedOracle(feed_factory=lambda source: feed), feed


def requirement(name, spec="", sources=(DEFAULT_SOURCE,)):
    """Build a direct requirement from dependencies file notation."""
    version_range, override = parse_requirement_spec(spec)
    return PackageRequirement(PackageName(name), version_range, tuple(sources), override=override)


@pytest.fixture
def casing_graph():
    return [
        ("Nancy.Bootstrappers.Windsor", "0.23", [("Castle.Windsor", VersionRange.minimum("3.2.1"))]),
        ("Castle.Windsor", "3.2.1", []),
        ("Castle.Windsor", "3.3.0", []),
    ]


@pytest.fixture
def default_source():
    return DEFAULT_SOURCE

"""NuGet registry feed: versions and dependency metadata via the V2 API.

Versions come from the ``package-versions`` JSON endpoint with the OData
``Packages`` query as fallback; per-version details come from the OData
``Packages(Id,Version)`` entry (Atom XML). Details are also kept on disk as
``{cache_dir}/{id}.{version}.json`` and reused by later runs unless forced.
"""
from __future__ import annotations

import json
import logging
import os
import urllib.parse
from typing import Any, List, Optional, Tuple
from xml.etree import ElementTree as ET

import requests

from common.logging_utils import extra_context, is_debug_enabled, safe_url
from registry.oracle import FeedDetails, PackageFeed
from versioning.errors import FeedError, VersionRangeParseError
from versioning.models import normalize_name
from versioning.ranges import VersionRange, format_range, parse_nuget_range, parse_range
from versioning.semver import SemVer

import registry.nuget as nuget_pkg

logger = logging.getLogger(__name__)

HEADERS_JSON = {"Accept": "application/json"}
HEADERS_ATOM = {"Accept": "application/atom+xml,application/xml"}

ATOM_NS = "http://www.w3.org/2005/Atom"
DATA_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices"
META_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"
NS = {"atom": ATOM_NS, "d": DATA_NS, "m": META_NS}


def _log_http_pre(url: str) -> None:
    """Debug-log outbound HTTP request for the NuGet feed."""
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP request",
            extra=extra_context(
                event="http_request",
                component="client",
                action="GET",
                target=safe_url(url),
                package_manager="nuget",
            ),
        )


def _get_text(url: str, source: str, headers: dict) -> Optional[str]:
    """GET a URL; None on 404, FeedError on transport errors and other statuses."""
    _log_http_pre(url)
    try:
        res = nuget_pkg.safe_get(url, context="nuget", fatal=False, headers=headers)
    except requests.RequestException as exc:
        raise FeedError(source, f"request failed: {exc}") from exc
    if res.status_code == 404:
        return None
    if res.status_code != 200:
        raise FeedError(source, f"HTTP {res.status_code} from {safe_url(url)}")
    return res.text


def _parse_versions(raw: List[Any]) -> List[SemVer]:
    versions: List[SemVer] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        try:
            versions.append(SemVer.parse(item))
        except VersionRangeParseError:
            logger.debug("Skipping unparsable version %r", item)
    return versions


def _parse_atom(text: str, source: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        raise FeedError(source, f"invalid OData response: {exc}") from exc


def _entries(root: ET.Element) -> List[ET.Element]:
    if root.tag == f"{{{ATOM_NS}}}entry":
        return [root]
    return root.findall("atom:entry", NS)


def parse_dependency_string(raw: Optional[str]) -> List[Tuple[str, VersionRange]]:
    """Parse the OData ``Dependencies`` property: ``id:range:framework|...``.

    A package listed for several target frameworks is kept once, with the
    range of its first occurrence.
    """
    dependencies: List[Tuple[str, VersionRange]] = []
    seen = set()
    for chunk in (raw or "").split("|"):
        parts = chunk.split(":")
        name = parts[0].strip()
        if not name:
            continue
        key = normalize_name(name)
        if key in seen:
            continue
        seen.add(key)
        range_text = parts[1] if len(parts) > 1 else ""
        dependencies.append((name, parse_nuget_range(range_text)))
    return dependencies


class NuGetFeed(PackageFeed):
    """Feed over a remote NuGet V2 registry.

    Args:
        url: Base URL of the V2 feed.
        cache_dir: Directory for per-version details files; None disables it.
        force: Ignore existing details files and fetch again (files are still rewritten).
    """

    def __init__(self, url: str, cache_dir: Optional[str] = None, force: bool = False):
        self.url = url.rstrip("/")
        self.cache_dir = cache_dir
        self.force = force

    def _package_versions(self, name: str) -> Optional[List[SemVer]]:
        quoted = urllib.parse.quote(name, safe="")
        url = f"{self.url}/package-versions/{quoted}?includePrerelease=true"
        try:
            text = _get_text(url, self.url, HEADERS_JSON)
        except FeedError as exc:
            logger.debug("package-versions endpoint unavailable: %s", exc)
            return None
        if text is None:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, list):
            return None
        return _parse_versions(data)

    def _odata_versions(self, name: str) -> List[SemVer]:
        query = urllib.parse.quote(f"Id eq '{name}'", safe="' ")
        url = f"{self.url}/Packages?$filter={query}"
        text = _get_text(url, self.url, HEADERS_ATOM)
        if text is None:
            return []
        root = _parse_atom(text, self.url)
        raw = []
        for entry in _entries(root):
            node = entry.find("m:properties/d:Version", NS)
            if node is not None and node.text:
                raw.append(node.text.strip())
        return _parse_versions(raw)

    def list_versions(self, name: str) -> List[SemVer]:
        versions = self._package_versions(name)
        if versions is None:
            versions = self._odata_versions(name)
        return versions

    def _cache_path(self, name: str, version: SemVer) -> Optional[str]:
        if not self.cache_dir:
            return None
        return os.path.join(self.cache_dir, f"{normalize_name(name)}.{version}.json")

    def _read_cache(self, path: str) -> Optional[FeedDetails]:
        """Details from a cache file, or None when it is absent, bypassed or invalid."""
        if self.force or not os.path.isfile(path):
            return None
        try:
            with open(path, encoding="utf-8") as handle:
                data = json.load(handle)
            official_name = data["name"]
            if not isinstance(official_name, str) or not official_name:
                raise ValueError("missing package name")
            dependencies = [(dep_name, parse_range(text)) for dep_name, text in data["dependencies"]]
        except (OSError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid cache file %s: %s", path, exc)
            return None
        logger.debug("Using cached details from %s", path)
        return official_name, dependencies

    def _write_cache(self, path: str, details: FeedDetails) -> None:
        official_name, dependencies = details
        data = {
            "name": official_name,
            "dependencies": [[dep_name, format_range(dep_range)] for dep_name, dep_range in dependencies],
        }
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
        except OSError as exc:
            logger.warning("Cache file couldn't be written to disk: %s", exc)

    def get_details(self, name: str, version: SemVer) -> FeedDetails:
        path = self._cache_path(name, version)
        if path:
            cached = self._read_cache(path)
            if cached is not None:
                return cached
        details = self._odata_details(name, version)
        if path:
            self._write_cache(path, details)
        return details

    def _odata_details(self, name: str, version: SemVer) -> FeedDetails:
        url = f"{self.url}/Packages(Id='{urllib.parse.quote(name, safe='')}',Version='{version}')"
        text = _get_text(url, self.url, HEADERS_ATOM)
        if text is None:
            raise FeedError(self.url, f"{name} {version} not found")
        entries = _entries(_parse_atom(text, self.url))
        if not entries:
            raise FeedError(self.url, f"{name} {version} not found")
        entry = entries[0]

        title = entry.find("atom:title", NS)
        official_name = title.text.strip() if title is not None and title.text else name
        deps_node = entry.find("m:properties/d:Dependencies", NS)
        try:
            dependencies = parse_dependency_string(deps_node.text if deps_node is not None else None)
        except VersionRangeParseError as exc:
            raise FeedError(self.url, f"invalid dependency metadata for {name} {version}: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "Fetched package details",
                extra=extra_context(
                    event="function_exit", component="client", action="get_details",
                    outcome="success", package=official_name, count=len(dependencies),
                    package_manager="nuget",
                ),
            )
        return official_name, dependencies

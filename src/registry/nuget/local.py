"""Local NuGet feed: a directory tree of ``{id}.{version}.nupkg`` archives."""
from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
import zipfile
from typing import List, Optional, Tuple

from registry.oracle import FeedDetails, PackageFeed
from versioning.errors import FeedError, VersionRangeParseError
from versioning.models import normalize_name
from versioning.ranges import VersionRange, parse_nuget_range
from versioning.semver import SemVer

logger = logging.getLogger(__name__)


def _strip_namespaces(root: ET.Element) -> None:
    # Remove namespace for easier parsing; nuspec schemas changed namespace over time
    for elem in root.iter():
        if '}' in elem.tag:
            elem.tag = elem.tag.split('}')[1]


def read_nuspec(archive_path: str) -> Tuple[str, List[Tuple[str, VersionRange]]]:
    """Read the package id and dependencies from the nuspec inside a .nupkg.

    Args:
        archive_path: Path to the .nupkg file

    Returns:
        Tuple of (official package id, [(dependency id, range), ...])

    Raises:
        FeedError: If the archive or its nuspec cannot be read.
    """
    try:
        with zipfile.ZipFile(archive_path) as archive:
            nuspecs = [n for n in archive.namelist() if n.lower().endswith(".nuspec") and "/" not in n]
            if not nuspecs:
                raise FeedError(archive_path, "archive contains no nuspec")
            root = ET.fromstring(archive.read(nuspecs[0]))
    except (zipfile.BadZipFile, OSError, ET.ParseError) as exc:
        raise FeedError(archive_path, f"cannot read nuspec: {exc}") from exc

    _strip_namespaces(root)
    id_node = root.find("./metadata/id")
    if id_node is None or not (id_node.text or "").strip():
        raise FeedError(archive_path, "nuspec has no package id")

    dependencies: List[Tuple[str, VersionRange]] = []
    seen = set()
    for dep in root.findall("./metadata/dependencies//dependency"):
        dep_id = (dep.get("id") or "").strip()
        if not dep_id or normalize_name(dep_id) in seen:
            continue
        seen.add(normalize_name(dep_id))
        try:
            dependencies.append((dep_id, parse_nuget_range(dep.get("version"))))
        except VersionRangeParseError as exc:
            raise FeedError(archive_path, f"invalid dependency version for {dep_id}: {exc}") from exc
    return id_node.text.strip(), dependencies


class LocalFeed(PackageFeed):
    """Feed over a local directory; archives are read, never extracted."""

    def __init__(self, path: str):
        self.path = path

    def _archives(self, name: str) -> List[Tuple[SemVer, str]]:
        if not os.path.isdir(self.path):
            raise FeedError(self.path, "local source directory does not exist")
        pattern = re.compile(rf"^{re.escape(name)}\.(\d.*)\.nupkg$", re.IGNORECASE)
        found: List[Tuple[SemVer, str]] = []
        for dirpath, _dirs, files in os.walk(self.path):
            for file_name in files:
                m = pattern.match(file_name)
                if not m:
                    continue
                try:
                    found.append((SemVer.parse(m.group(1)), os.path.join(dirpath, file_name)))
                except VersionRangeParseError:
                    logger.debug("Ignoring %s: version not recognised", file_name)
        return found

    def _archive_for(self, name: str, version: SemVer) -> Optional[str]:
        for candidate, path in self._archives(name):
            if candidate == version:
                return path
        return None

    def list_versions(self, name: str) -> List[SemVer]:
        return [version for version, _ in self._archives(name)]

    def get_details(self, name: str, version: SemVer) -> FeedDetails:
        path = self._archive_for(name, version)
        if path is None:
            raise FeedError(self.path, f"{name} {version} not found")
        return read_nuspec(path)

"""Resolution service: reuse a lock file when it still fits, otherwise resolve."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from constants import Constants
from lockfile import LockFile
from registry.oracle import PackageOracle

from .dependencies_file import DependenciesFile
from .models import SourceFile
from .resolver import Resolver

logger = logging.getLogger(__name__)

# (owner, project, ref) -> commit sha
CommitLookup = Callable[[str, str, str], str]


def _default_commit_lookup() -> CommitLookup:
    from registry.github import resolve_commit  # pylint: disable=import-outside-toplevel
    return resolve_commit


def lock_is_current(dependencies: DependenciesFile, lock: LockFile) -> bool:
    """Whether the lock file still satisfies the dependencies file."""
    if dependencies.strict != lock.strict:
        logger.debug("Strict mode changed")
        return False

    resolution = lock.resolution
    for requirement in dependencies.requirements:
        locked = resolution.get(requirement.name.key)
        if locked is None or not requirement.range.contains(locked.version):
            logger.debug("Lock file does not satisfy %s", requirement.name)
            return False

    for package in resolution.values():
        for dep_name, dep_range in package.dependencies:
            locked = resolution.get(dep_name.key)
            if locked is None or not dep_range.contains(locked.version):
                logger.debug("Lock file does not satisfy %s required by %s", dep_name, package.name)
                return False

    locked_files = {f.sort_key: f for f in lock.source_files}
    for source_file in dependencies.source_files:
        locked_file = locked_files.get(source_file.sort_key)
        if locked_file is None:
            logger.debug("Source file %s is not locked", source_file.name)
            return False
        if source_file.commit_specified and locked_file.commit != source_file.commit:
            logger.debug("Source file %s is locked at a different commit", source_file.name)
            return False
    return True


def pin_source_files(files: List[SourceFile], commit_lookup: Optional[CommitLookup] = None) -> List[SourceFile]:
    """Give every source file a commit; explicit commits are kept as written.

    Raises:
        FeedError: If a commit lookup fails.
    """
    lookup = commit_lookup or _default_commit_lookup()
    pinned = []
    for source_file in files:
        if source_file.commit_specified and source_file.commit:
            pinned.append(source_file)
            continue
        commit = lookup(source_file.owner, source_file.project, Constants.DEFAULT_GITHUB_REF)
        logger.info("Pinned %s/%s/%s to %s", source_file.owner, source_file.project, source_file.name, commit)
        pinned.append(SourceFile(source_file.owner, source_file.project, source_file.name, commit))
    return pinned


def resolve(dependencies: DependenciesFile, oracle: PackageOracle,
            commit_lookup: Optional[CommitLookup] = None) -> LockFile:
    """Run the resolver and pin source files into a fresh LockFile."""
    resolution = Resolver(oracle).resolve(dependencies.requirements)
    files = pin_source_files(dependencies.source_files, commit_lookup)
    return LockFile(dependencies.strict, resolution, files)


def install(dependencies: DependenciesFile, lock: Optional[LockFile], oracle: PackageOracle,
            commit_lookup: Optional[CommitLookup] = None, force: bool = False) -> LockFile:
    """Return the existing lock file when current and not forced, otherwise resolve."""
    if lock is not None and not force and lock_is_current(dependencies, lock):
        logger.info("Lock file is up to date")
        return lock
    if force:
        logger.info("Forced resolution requested")
    return resolve(dependencies, oracle, commit_lookup)

"""Lock file model: the persisted outcome of a resolution."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from versioning.models import PackageResolution, SourceFile

from .parser import parse_lock
from .serializer import serialize

logger = logging.getLogger(__name__)


@dataclass
class LockFile:
    """Strict flag, resolved packages and pinned source files.

    Source files are kept sorted by owner, project and path so that a parsed
    lock file compares equal to the value it was written from. Every source
    file must be pinned to a commit.
    """
    strict: bool = False
    resolution: PackageResolution = field(default_factory=dict)
    source_files: List[SourceFile] = field(default_factory=list)

    def __post_init__(self):
        for source_file in self.source_files:
            if not source_file.commit:
                raise ValueError(
                    f"source file {source_file.owner}/{source_file.project}/{source_file.name} is not pinned to a commit"
                )
        self.source_files = sorted(self.source_files, key=lambda f: f.sort_key)

    @classmethod
    def parse(cls, text: str) -> "LockFile":
        strict, resolution, source_files = parse_lock(text)
        return cls(strict, resolution, source_files)

    @classmethod
    def load(cls, path: str) -> "LockFile":
        with open(path, encoding="utf-8") as handle:
            return cls.parse(handle.read())

    def to_string(self) -> str:
        return serialize(self.strict, self.resolution, self.source_files)

    def save(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(self.to_string())
        logger.info("Locked version resolutions written to %s", path)


__all__ = ["LockFile", "parse_lock", "serialize"]

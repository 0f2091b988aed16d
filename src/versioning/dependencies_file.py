"""The dependencies file: direct requirements, sources and pinned source files."""

import logging
from dataclasses import dataclass, field
from typing import List

from .models import PackageRequirement, PackageSource, SourceFile
from .parser import format_requirement_spec, parse_dependencies

logger = logging.getLogger(__name__)


@dataclass
class DependenciesFile:
    """Parsed dependencies file; ``to_string`` writes the canonical form."""
    strict: bool = False
    sources: List[PackageSource] = field(default_factory=list)
    requirements: List[PackageRequirement] = field(default_factory=list)
    source_files: List[SourceFile] = field(default_factory=list)

    @classmethod
    def from_code(cls, text: str) -> "DependenciesFile":
        strict, sources, requirements, source_files = parse_dependencies(text)
        return cls(strict, sources, requirements, source_files)

    @classmethod
    def load(cls, path: str) -> "DependenciesFile":
        with open(path, encoding="utf-8") as handle:
            parsed = cls.from_code(handle.read())
        logger.debug("Read %d requirements from %s", len(parsed.requirements), path)
        return parsed

    def to_string(self) -> str:
        header = ["references strict"] if self.strict else []
        header.extend(f"source {source}" for source in self.sources)

        packages = []
        for requirement in self.requirements:
            spec = requirement.raw_spec
            if spec is None:
                spec = format_requirement_spec(requirement.range, requirement.override)
            packages.append(f"nuget {requirement.name} {spec}".rstrip())

        files = []
        for source_file in self.source_files:
            repo = f"{source_file.owner}/{source_file.project}"
            if source_file.commit_specified and source_file.commit:
                repo = f"{repo}:{source_file.commit}"
            files.append(f"github {repo} {source_file.name}")

        return "\n\n".join("\n".join(block) for block in (header, packages, files) if block)

    def save(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(self.to_string())
        logger.info("Dependencies written to %s", path)

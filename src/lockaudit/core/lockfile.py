"""Cargo.lock loading and dependency tree construction.

Provides:
- Lockfile: Parsed ``[[package]]`` entries with dependency_tree()
"""

import tomllib
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lockaudit.core.errors import LockfileError
from lockaudit.core.models import Dependency, Package
from lockaudit.core.tree import DependencyTree

logger = structlog.get_logger()


class Lockfile(BaseModel):
    """Resolved packages of one Cargo.lock."""

    version: int | None = None
    packages: list[Package] = Field(default_factory=list, alias="package")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def loads(cls, text: str) -> "Lockfile":
        """Parse Cargo.lock contents.

        Raises:
            LockfileError: If the text is not valid TOML or has malformed packages
        """
        try:
            data = tomllib.loads(text)
            return cls.model_validate(data)
        except (tomllib.TOMLDecodeError, ValidationError) as e:
            raise LockfileError(f"invalid Cargo.lock: {e}") from e

    @classmethod
    def load(cls, path: str | Path) -> "Lockfile":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise LockfileError(f"cannot read {path}: {e}") from e
        lockfile = cls.loads(text)
        logger.debug("lockfile_loaded", path=str(path), packages=len(lockfile.packages))
        return lockfile

    def dependency_tree(self) -> DependencyTree:
        """Build the dependency graph of all packages.

        Dependency entries are ``"name"``, ``"name version"`` or
        ``"name version (source)"``; a bare name must be unambiguous.

        Raises:
            LockfileError: If an entry names a package that is missing or ambiguous
        """
        by_name: dict[str, list[Dependency]] = {}
        for package in self.packages:
            by_name.setdefault(package.name, []).append(package.key)
        known = {package.key for package in self.packages}

        edges: dict[Dependency, list[Dependency]] = {}
        for package in self.packages:
            deps = []
            for entry in package.dependencies:
                deps.append(self._resolve(entry, by_name, known, package))
            edges[package.key] = deps

        return DependencyTree(edges)

    @staticmethod
    def _resolve(
        entry: str | dict,
        by_name: dict[str, list[Dependency]],
        known: set[Dependency],
        parent: Package,
    ) -> Dependency:
        if isinstance(entry, dict):
            name, version = entry.get("name"), entry.get("version")
        else:
            parts = entry.split()
            name = parts[0] if parts else None
            version = parts[1] if len(parts) > 1 else None

        if not name:
            raise LockfileError(f"empty dependency entry in {parent.key}")

        if version is not None:
            dependency = Dependency(name, version)
            if dependency not in known:
                raise LockfileError(f"{parent.key} depends on unknown package {dependency}")
            return dependency

        candidates = by_name.get(name, [])
        if len(candidates) != 1:
            problem = "unknown" if not candidates else "ambiguous"
            raise LockfileError(f"{parent.key} depends on {problem} package {name}")
        return candidates[0]

"""
Loading crates.io-index checkouts into snapshots.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .models import Dependency, PackageVersion


logger = logging.getLogger(__name__)


class IndexSnapshot:
    """All crate versions visible at one commit of the index."""

    def __init__(self, crates: Optional[Dict[str, List[PackageVersion]]] = None) -> None:
        self.crates: Dict[str, List[PackageVersion]] = crates if crates is not None else {}

    @classmethod
    def from_versions(cls, versions: Iterable[PackageVersion]) -> "IndexSnapshot":
        """Group versions by crate name, keeping their order."""
        crates: Dict[str, List[PackageVersion]] = {}
        for version in versions:
            crates.setdefault(version.name, []).append(version)
        return cls(crates)

    def packages(self) -> Iterator[Tuple[str, List[PackageVersion]]]:
        return iter(self.crates.items())

    def get(self, name: str) -> Optional[List[PackageVersion]]:
        return self.crates.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.crates

    def __len__(self) -> int:
        return len(self.crates)


def parse_dependency(data: Dict) -> Dependency:
    return Dependency(
        name=data["name"],
        requirement=data.get("req") or "*",
        features=tuple(data.get("features") or ()),
        optional=bool(data.get("optional", False)),
        default_features=bool(data.get("default_features", True)),
        target=data.get("target"),
        kind=data.get("kind") or "normal",
        package=data.get("package"),
    )


def parse_version_line(line: str) -> PackageVersion:
    """Parse one JSON line of an index file.

    Raises:
        ValueError: If the line is not valid JSON or lacks name/vers
    """
    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError("index line is not an object")

    features = {key: tuple(value) for key, value in (data.get("features") or {}).items()}
    for key, value in (data.get("features2") or {}).items():
        features[key] = tuple(value)

    return PackageVersion(
        name=data["name"],
        version=data["vers"],
        dependencies=tuple(parse_dependency(dep) for dep in data.get("deps") or ()),
        features=features,
        yanked=bool(data.get("yanked", False)),
    )


class CratesIndexLoader:
    """Load a crates.io-index working tree."""

    SKIPPED_FILES = {"config.json"}

    def load_snapshot(self, path: Union[str, Path]) -> IndexSnapshot:
        root = Path(path)
        crates: Dict[str, List[PackageVersion]] = {}

        for directory, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            if Path(directory) == root:
                filenames = [f for f in filenames if f not in self.SKIPPED_FILES]
            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                versions = self._read_crate_file(Path(directory) / filename)
                if versions:
                    crates.setdefault(versions[0].name, []).extend(versions)

        logger.info("Loaded %d crates from %s", len(crates), root)
        return IndexSnapshot(crates)

    def _read_crate_file(self, path: Path) -> List[PackageVersion]:
        versions = []
        with open(path, "rb") as f:
            for lineno, raw in enumerate(f, 1):
                if not raw.strip():
                    continue
                try:
                    versions.append(parse_version_line(raw.decode("utf-8").strip()))
                except (ValueError, KeyError, TypeError) as e:
                    logger.warning("Skipping malformed index line %s:%d: %s", path, lineno, e)
        return versions


def load_snapshot(path: Union[str, Path]) -> IndexSnapshot:
    """Load the index checkout at `path`."""
    return CratesIndexLoader().load_snapshot(path)

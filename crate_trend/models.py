"""
Core data models for crate dependency trends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Dependency:
    """Dependency edge as declared by a published crate version."""

    name: str
    requirement: str
    features: Tuple[str, ...] = ()
    optional: bool = False
    default_features: bool = True
    target: Optional[str] = None
    kind: str = "normal"
    package: Optional[str] = None

    @property
    def crate_name(self) -> str:
        """Name of the crate the edge points at (renamed dependencies use `package`)."""
        return self.package or self.name


@dataclass(frozen=True)
class PackageVersion:
    """One published version of a crate with its dependencies and feature table."""

    name: str
    version: str
    dependencies: Tuple[Dependency, ...] = ()
    features: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    yanked: bool = False


@dataclass(frozen=True)
class ActivationContext:
    """Requirement and enabled features under which a dependency edge is followed."""

    name: str
    requirement: str
    features: Tuple[str, ...]


@dataclass(frozen=True)
class Entry:
    """One historical data point for a crate."""

    time: datetime
    direct_dependents: int
    transitive_dependents: int
    total_crates: int

    @property
    def counts(self) -> Tuple[int, int]:
        return self.direct_dependents, self.transitive_dependents

    def fraction(self, transitive: bool = False) -> float:
        """Dependents as a fraction of all crates in the index at that time."""
        dependents = self.transitive_dependents if transitive else self.direct_dependents
        if self.total_crates == 0:
            return 0.0
        return dependents / self.total_crates


@dataclass(frozen=True)
class Commit:
    """A commit of the index repository."""

    time: datetime
    id: str


@dataclass
class DependentCount:
    """Running dependent counters for one crate within a snapshot."""

    direct: int = 0
    transitive: int = 0

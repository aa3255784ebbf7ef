"""
Transitive dependency closures over one index snapshot.

Closures are memoized by crate name only: the first activation context that
reaches a crate decides its cached closure for the rest of the snapshot.
Cycles are cut at the current traversal path and repaired afterwards by
`TransitiveClosureBuilder.reconcile`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

from .features import DEFAULT_FEATURES
from .index import IndexSnapshot
from .models import Dependency
from .resolvers import edge_context, gather_dependencies
from .versioning import ANY_REQUIREMENT, VersionRequirement, parse_requirement


logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    name: str
    pending: Iterator[Dependency]
    transitive: Set[str] = field(default_factory=set)
    looped: Set[str] = field(default_factory=set)


class TransitiveClosureBuilder:
    """Compute transitive closures with a shared per-snapshot cache."""

    def __init__(
        self,
        snapshot: IndexSnapshot,
        cache: Optional[Dict[str, Set[str]]] = None,
    ) -> None:
        self.snapshot = snapshot
        self.cache: Dict[str, Set[str]] = cache if cache is not None else {}

    def _frame(
        self, name: str, requirement: VersionRequirement, enabled_features: Iterable[str]
    ) -> _Frame:
        deps = gather_dependencies(self.snapshot.get(name), requirement, enabled_features)
        return _Frame(name=name, pending=iter(deps))

    def gather_transitive(
        self,
        name: str,
        requirement: VersionRequirement,
        enabled_features: Iterable[str],
        trace: Iterable[str],
    ) -> Tuple[Set[str], Set[str]]:
        """Collect everything reachable from `name`.

        The traversal is a depth-first search over an explicit stack. Every
        crate finished by the search is cached before returning.

        Args:
            name: Crate to start from
            requirement: Requirement applied when selecting its version
            enabled_features: Features enabled on it
            trace: Crates already on the current path, normally just `name`

        Returns:
            Tuple of (transitive, looped): reachable crate names, and the
            names where the search stopped because they were already on the
            path
        """
        cached = self.cache.get(name)
        if cached is not None:
            return set(cached), set()

        path = set(trace)
        root = self._frame(name, requirement, enabled_features)
        stack = [root]

        while stack:
            frame = stack[-1]
            dep = next(frame.pending, None)

            if dep is None:
                stack.pop()
                path.discard(frame.name)
                self.cache[frame.name] = set(frame.transitive)
                if stack:
                    parent = stack[-1]
                    parent.transitive |= frame.transitive
                    parent.looped |= frame.looped
                continue

            target = dep.crate_name
            frame.transitive.add(target)

            if target in path:
                frame.looped.add(target)
                continue

            cached = self.cache.get(target)
            if cached is not None:
                logger.debug("Cache hit: closure %s", target)
                frame.transitive |= cached
                continue

            # gather_dependencies only returns edges with parsable requirements
            context = edge_context(dep)
            path.add(target)
            stack.append(
                self._frame(target, parse_requirement(context.requirement), context.features)
            )

        return root.transitive, root.looped

    def reconcile(self, transitive: Iterable[str], looped: Iterable[str]) -> None:
        """Propagate the closure of every loop target into cached closures that reach it."""
        transitive = list(transitive)
        for loop_target in looped:
            reach = self.cache.get(loop_target)
            if reach is None:
                continue
            reach = set(reach)
            for name in transitive:
                cached = self.cache.get(name)
                if cached is not None and loop_target in cached:
                    cached |= reach

    def closure(
        self,
        name: str,
        enabled_features: Iterable[str] = DEFAULT_FEATURES,
        requirement: VersionRequirement = ANY_REQUIREMENT,
    ) -> Set[str]:
        """Transitive closure of a top-level crate, with loops reconciled."""
        transitive, looped = self.gather_transitive(name, requirement, enabled_features, {name})
        self.reconcile(transitive, looped)
        return transitive

"""
Dependent counts for one index snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable

from .closure import TransitiveClosureBuilder
from .features import DEFAULT_FEATURES
from .index import IndexSnapshot
from .models import DependentCount, Entry
from .resolvers import gather_dependencies
from .store import Db
from .time_utils import ensure_utc
from .versioning import ANY_REQUIREMENT


logger = logging.getLogger(__name__)


class SnapshotAnalyzer:
    """Count direct and transitive dependents and record them in a store."""

    def __init__(self, db: Db, enabled_features: Iterable[str] = DEFAULT_FEATURES):
        """Initialize snapshot analyzer.

        Args:
            db: Store receiving one entry per crate whose counts changed
            enabled_features: Features enabled on every crate at the top level
        """
        self.db = db
        self.enabled_features = tuple(enabled_features)

    def count_dependents(self, snapshot: IndexSnapshot) -> Dict[str, DependentCount]:
        """Count dependents of every crate referenced in a snapshot.

        A crate counts once per dependent, and never as its own dependent.

        Returns:
            Mapping of crate name to its counters, for crates with at least
            one dependent
        """
        counts: Dict[str, DependentCount] = {}
        builder = TransitiveClosureBuilder(snapshot)

        for name, versions in snapshot.packages():
            direct = {
                dep.crate_name
                for dep in gather_dependencies(versions, ANY_REQUIREMENT, self.enabled_features)
            }
            for target in direct:
                if target != name:
                    counts.setdefault(target, DependentCount()).direct += 1

            for target in builder.closure(name, self.enabled_features):
                if target != name:
                    counts.setdefault(target, DependentCount()).transitive += 1

        return counts

    def analyze(self, snapshot: IndexSnapshot, time: datetime) -> int:
        """Record the snapshot's dependent counts at `time`.

        An entry is appended only when a crate has no history yet or its last
        (direct, transitive) pair differs. Crates that lost all dependents get
        a zero entry.

        Returns:
            Number of entries appended
        """
        time = ensure_utc(time)
        counts = self.count_dependents(snapshot)
        total_crates = len(snapshot)

        appended = 0
        for name in sorted(set(counts) | set(self.db.map)):
            count = counts.get(name, DependentCount())
            entry = Entry(
                time=time,
                direct_dependents=count.direct,
                transitive_dependents=count.transitive,
                total_crates=total_crates,
            )
            if self.db.append(name, entry):
                appended += 1

        logger.info(
            "Snapshot %s: %d crates, %d with dependents, %d entries appended",
            time.isoformat(), total_crates, len(counts), appended,
        )
        return appended

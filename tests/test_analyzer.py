"""Tests for snapshot analysis."""

from datetime import datetime, timedelta, timezone

import pytest

from crate_trend.analyzer import SnapshotAnalyzer
from crate_trend.index import IndexSnapshot
from crate_trend.models import Dependency, PackageVersion
from crate_trend.store import Db


T1 = datetime(2020, 1, 1, tzinfo=timezone.utc)
T2 = T1 + timedelta(days=1)
T3 = T1 + timedelta(days=2)


def crate(name, *deps, features=None):
    dependencies = tuple(d if isinstance(d, Dependency) else Dependency(d, "*") for d in deps)
    return PackageVersion(name=name, version="1.0.0", dependencies=dependencies, features=features or {})


def chain():
    return IndexSnapshot.from_versions([crate("a"), crate("b", "a"), crate("c", "b")])


def test_counts_for_chain():
    db = Db.new()

    appended = SnapshotAnalyzer(db).analyze(chain(), T1)

    assert appended == 2
    assert set(db.map) == {"a", "b"}
    a = db.last_entry("a")
    b = db.last_entry("b")
    assert (a.direct_dependents, a.transitive_dependents, a.total_crates) == (1, 2, 3)
    assert (b.direct_dependents, b.transitive_dependents, b.total_crates) == (1, 1, 3)
    assert a.time == T1


def test_unchanged_snapshot_appends_nothing():
    db = Db.new()
    analyzer = SnapshotAnalyzer(db)
    analyzer.analyze(chain(), T1)

    assert analyzer.analyze(chain(), T2) == 0
    assert len(db.map["a"]) == 1


def test_only_changed_counts_are_appended():
    db = Db.new()
    analyzer = SnapshotAnalyzer(db)
    analyzer.analyze(chain(), T1)

    grown = IndexSnapshot.from_versions([crate("a"), crate("b", "a"), crate("c", "b"), crate("d", "a")])

    assert analyzer.analyze(grown, T2) == 1
    assert db.last_entry("a").counts == (2, 3)
    assert db.last_entry("a").total_crates == 4
    assert len(db.map["b"]) == 1


def test_crate_losing_dependents_gets_zero_entry():
    db = Db.new()
    analyzer = SnapshotAnalyzer(db)
    analyzer.analyze(chain(), T1)

    flat = IndexSnapshot.from_versions([crate("a"), crate("b"), crate("c")])

    assert analyzer.analyze(flat, T2) == 2
    assert db.last_entry("a").counts == (0, 0)
    assert db.last_entry("b").counts == (0, 0)


def test_history_stays_monotonic():
    db = Db.new()
    analyzer = SnapshotAnalyzer(db)
    analyzer.analyze(chain(), T1)
    analyzer.analyze(IndexSnapshot.from_versions([crate("a"), crate("b")]), T2)
    analyzer.analyze(chain(), T3)

    for entries in db.map.values():
        times = [entry.time for entry in entries]
        assert times == sorted(times)
        for previous, current in zip(entries, entries[1:]):
            assert previous.counts != current.counts


def test_changed_counts_in_the_past_are_rejected():
    db = Db.new()
    analyzer = SnapshotAnalyzer(db)
    analyzer.analyze(chain(), T2)

    with pytest.raises(ValueError):
        analyzer.analyze(IndexSnapshot.from_versions([crate("a")]), T1)


def test_cycle_counts():
    snapshot = IndexSnapshot.from_versions(
        [crate("A", "B"), crate("B", "C"), crate("C", "A"), crate("D", "A")]
    )

    counts = SnapshotAnalyzer(Db.new()).count_dependents(snapshot)

    assert (counts["A"].direct, counts["A"].transitive) == (2, 3)
    assert (counts["B"].direct, counts["B"].transitive) == (1, 3)
    assert (counts["C"].direct, counts["C"].transitive) == (1, 3)
    assert "D" not in counts


def test_direct_dependents_counted_once_per_crate():
    snapshot = IndexSnapshot.from_versions([
        crate("q"),
        crate("p", Dependency("q", "*"), Dependency("q", "*", kind="dev")),
        crate("s", "s"),
    ])

    counts = SnapshotAnalyzer(Db.new()).count_dependents(snapshot)

    assert counts["q"].direct == 1
    assert counts["q"].transitive == 1
    assert "s" not in counts


def test_optional_dependency_behind_disabled_feature_not_counted():
    x = crate("x", Dependency("y", "^1", optional=True), features={"extra": ("y",)})
    snapshot = IndexSnapshot.from_versions([x, crate("y"), crate("z", Dependency("x", "^1"))])

    counts = SnapshotAnalyzer(Db.new()).count_dependents(snapshot)

    assert "y" not in counts
    assert counts["x"].transitive == 1

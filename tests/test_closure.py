"""Tests for transitive closures."""

from crate_trend.closure import TransitiveClosureBuilder
from crate_trend.index import IndexSnapshot
from crate_trend.models import Dependency, PackageVersion
from crate_trend.versioning import ANY_REQUIREMENT


def crate(name, *deps, vers="1.0.0", features=None):
    dependencies = tuple(d if isinstance(d, Dependency) else Dependency(d, "*") for d in deps)
    return PackageVersion(name=name, version=vers, dependencies=dependencies, features=features or {})


def test_chain_closure():
    snapshot = IndexSnapshot.from_versions([crate("a"), crate("b", "a"), crate("c", "b")])
    builder = TransitiveClosureBuilder(snapshot)

    assert builder.closure("c") == {"a", "b"}
    assert builder.closure("b") == {"a"}
    assert builder.closure("a") == set()


def test_cycle_closure_is_complete_in_either_order():
    versions = [crate("A", "B"), crate("B", "C"), crate("C", "A"), crate("D", "A")]

    builder = TransitiveClosureBuilder(IndexSnapshot.from_versions(versions))
    assert builder.closure("A") == {"A", "B", "C"}
    assert builder.closure("D") == {"A", "B", "C"}

    builder = TransitiveClosureBuilder(IndexSnapshot.from_versions(versions))
    assert builder.closure("D") == {"A", "B", "C"}
    assert builder.cache["B"] == {"A", "B", "C"}
    assert builder.cache["C"] == {"A", "B", "C"}


def test_gather_transitive_reports_loop_targets():
    snapshot = IndexSnapshot.from_versions([crate("A", "B"), crate("B", "A")])
    builder = TransitiveClosureBuilder(snapshot)

    transitive, looped = builder.gather_transitive("A", ANY_REQUIREMENT, ["default"], {"A"})

    assert transitive == {"A", "B"}
    assert looped == {"A"}


def test_missing_dependency_is_a_leaf():
    snapshot = IndexSnapshot.from_versions([crate("p", "ghost")])

    assert TransitiveClosureBuilder(snapshot).closure("p") == {"ghost"}


def test_unknown_crate_has_empty_closure():
    assert TransitiveClosureBuilder(IndexSnapshot()).closure("nothing") == set()


def test_features_flow_down_edges():
    x = crate("x", Dependency("y", "^1", optional=True), features={"extra": ("y",)})
    y = crate("y")

    default_only = IndexSnapshot.from_versions([x, y, crate("z", Dependency("x", "^1"))])
    assert TransitiveClosureBuilder(default_only).closure("z") == {"x"}

    with_extra = IndexSnapshot.from_versions(
        [x, y, crate("z", Dependency("x", "^1", features=("extra",)))]
    )
    assert TransitiveClosureBuilder(with_extra).closure("z") == {"x", "y"}


def test_edge_requirement_selects_version():
    versions = [
        crate("a", "c", vers="1.0.0"),
        crate("a", "d", vers="2.0.0"),
        crate("b", Dependency("a", "^1")),
        crate("c"),
        crate("d"),
    ]
    builder = TransitiveClosureBuilder(IndexSnapshot.from_versions(versions))

    assert builder.closure("b") == {"a", "c"}


def test_cache_keeps_first_context():
    x = crate("x", Dependency("y", "^1", optional=True), features={"extra": ("y",)})
    versions = [
        x,
        crate("y"),
        crate("p", Dependency("x", "^1")),
        crate("q", Dependency("x", "^1", features=("extra",))),
    ]
    builder = TransitiveClosureBuilder(IndexSnapshot.from_versions(versions))

    assert builder.closure("p") == {"x"}
    assert builder.closure("q") == {"x"}


def test_deep_chain_does_not_recurse():
    depth = 3000
    versions = [crate(f"c{i}", f"c{i + 1}") for i in range(depth - 1)] + [crate(f"c{depth - 1}")]
    builder = TransitiveClosureBuilder(IndexSnapshot.from_versions(versions))

    assert len(builder.closure("c0")) == depth - 1


def test_edge_with_invalid_requirement_is_not_followed():
    versions = [crate("p", Dependency("q", "not a version"), "r"), crate("q", "s"), crate("r")]

    assert TransitiveClosureBuilder(IndexSnapshot.from_versions(versions)).closure("p") == {"r"}

#!/usr/bin/env python3
"""
Example script showing how to use the crate-trend library.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from crate_trend.analyzer import SnapshotAnalyzer
from crate_trend.fetch import DbFetcher
from crate_trend.index import IndexSnapshot
from crate_trend.models import Dependency, PackageVersion
from crate_trend.plotter import Plotter
from crate_trend.reporting import top_crates
from crate_trend.store import Db


def example_synthetic_snapshots():
    """Example: Analyze two hand-built snapshots and plot the result."""
    print("="*60)
    print("Example 1: Synthetic Snapshots")
    print("="*60)

    day1 = datetime(2023, 1, 1, tzinfo=timezone.utc)
    serde = PackageVersion("serde", "1.0.0")
    derive = Dependency("serde_derive", "^1", optional=True)
    serde_with_derive = PackageVersion(
        "serde", "1.0.1", dependencies=(derive,), features={"derive": ("serde_derive",)}
    )
    app = PackageVersion("app", "0.1.0", dependencies=(Dependency("serde", "^1", features=("derive",)),))
    tool = PackageVersion("tool", "0.1.0", dependencies=(Dependency("app", "^0.1"),))

    db = Db.new()
    analyzer = SnapshotAnalyzer(db)
    analyzer.analyze(IndexSnapshot.from_versions([serde, app]), day1)
    analyzer.analyze(
        IndexSnapshot.from_versions([serde, serde_with_derive, PackageVersion("serde_derive", "1.0.1"), app, tool]),
        day1 + timedelta(days=1),
    )

    for name, entries in sorted(db.map.items()):
        for entry in entries:
            print(f"{name:15} {entry.time.date()} direct={entry.direct_dependents} "
                  f"transitive={entry.transitive_dependents} total={entry.total_crates}")

    output = Plotter(size=(800, 600)).plot(Path("./output/synthetic.svg"), ["serde", "app"], db, transitive=True)
    print(f"\nChart written to {output}")


def example_published_store():
    """Example: Download the published store and rank the most depended-on crates."""
    print("\n" + "="*60)
    print("Example 2: Published Store")
    print("="*60)

    db_dir = Path("./output/db")
    DbFetcher(db_dir).fetch()
    db = Db.load(db_dir, verify=True)

    print(f"\nLast update: {db.update.isoformat()}")
    print(top_crates(db, count=10, transitive=True).to_string(index=False))

    output = Plotter().plot(Path("./output/trend.png"), ["serde", "rand", "log"], db, relative=True)
    print(f"\nChart written to {output}")


if __name__ == "__main__":
    print("Crate Trend - Example Usage")
    print("="*60)
    print("\nNOTE: The second example requires network access.")

    Path("./output").mkdir(exist_ok=True)

    try:
        example_synthetic_snapshots()
        example_published_store()

        print("\n" + "="*60)
        print("Examples completed successfully!")
        print("Check the ./output directory for the charts.")
        print("="*60)

    except Exception as e:
        print(f"\nError running examples: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)

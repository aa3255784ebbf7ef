"""
Reporting and export utilities.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from .store import Db


logger = logging.getLogger(__name__)

HISTORY_COLUMNS = [
    "name",
    "time",
    "direct_dependents",
    "transitive_dependents",
    "total_crates",
    "direct_fraction",
    "transitive_fraction",
]


def history_frame(db: Db, names: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """One row per recorded entry, for all crates or the given ones."""
    names = list(db.map) if names is None else list(names)
    rows = []
    for name in names:
        for entry in db.map.get(name, []):
            rows.append({
                "name": name,
                "time": entry.time,
                "direct_dependents": entry.direct_dependents,
                "transitive_dependents": entry.transitive_dependents,
                "total_crates": entry.total_crates,
                "direct_fraction": entry.fraction(),
                "transitive_fraction": entry.fraction(transitive=True),
            })
    return pd.DataFrame(rows, columns=HISTORY_COLUMNS)


def top_crates(
    db: Db,
    count: int = 10,
    transitive: bool = False,
    relative: bool = False,
) -> pd.DataFrame:
    """Rank crates by the dependents recorded in their latest entry."""
    rows = []
    for name, entries in db.map.items():
        if not entries:
            continue
        last = entries[-1]
        rows.append({
            "name": name,
            "time": last.time,
            "direct_dependents": last.direct_dependents,
            "transitive_dependents": last.transitive_dependents,
            "total_crates": last.total_crates,
            "direct_fraction": last.fraction(),
            "transitive_fraction": last.fraction(transitive=True),
        })

    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    metric = "transitive" if transitive else "direct"
    column = f"{metric}_fraction" if relative else f"{metric}_dependents"
    df = df.sort_values([column, "name"], ascending=[False, True], kind="mergesort")
    df = df.head(count).reset_index(drop=True)
    df.insert(0, "rank", range(1, len(df) + 1))
    return df


def print_summary(db: Db, ranking: pd.DataFrame) -> None:
    logger.info("=" * 60)
    logger.info("CRATE DEPENDENTS")
    logger.info("=" * 60)
    logger.info("Last update: %s", db.update.isoformat())
    logger.info("Crates tracked: %d", len(db.map))
    logger.info("-" * 60)
    for row in ranking.itertuples(index=False):
        logger.info(
            "%3d. %-30s direct %8d  transitive %8d",
            row.rank, row.name, row.direct_dependents, row.transitive_dependents,
        )
    logger.info("=" * 60)


def export_history_csv(db: Db, output_file: Path, names: Optional[Iterable[str]] = None) -> Path:
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    df = history_frame(db, names)
    df["time"] = pd.to_datetime(df["time"], utc=True).dt.tz_localize(None)
    df.to_csv(output_file, index=False)
    return output_file


def export_worksheets(db: Db, output_file: Path, names: Iterable[str]) -> Optional[Path]:
    """Write one worksheet per crate; nothing is written for an empty selection."""
    names = [name for name in names if db.map.get(name)]
    if not names:
        return None
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_file, engine="openpyxl") as writer:
        for name in names:
            df = history_frame(db, [name])
            # Excel has no timezone-aware datetimes
            df["time"] = pd.to_datetime(df["time"], utc=True).dt.tz_localize(None)
            df.to_excel(writer, sheet_name=name[:31], index=False)
    return output_file

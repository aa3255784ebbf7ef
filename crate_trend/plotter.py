"""
Chart rendering of dependent-count histories.
"""

from __future__ import annotations

import colorsys
import logging
from datetime import date
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import pandas as pd
from matplotlib.figure import Figure

from .reporting import history_frame
from .store import Db


logger = logging.getLogger(__name__)


class Plotter:
    """Plot dependents over time for a set of crates."""

    DPI = 100

    def __init__(self, size: Tuple[int, int] = (1200, 800)) -> None:
        self.size = size

    def plot(
        self,
        path: Union[str, Path],
        targets: Sequence[str],
        db: Db,
        relative: bool = False,
        transitive: bool = False,
        start_date: Optional[date] = None,
    ) -> Path:
        """Render one line per target crate.

        The output format is SVG when `path` ends in `.svg`, PNG otherwise.

        Args:
            path: Output image path
            targets: Crate names to plot
            db: Store to read histories from
            relative: Plot the fraction of all crates instead of the count
            transitive: Plot transitive instead of direct dependents
            start_date: Drop entries before this date

        Returns:
            The path written
        """
        path = Path(path)
        df = history_frame(db, targets)
        if start_date is not None and len(df) > 0:
            df = df[df["time"].map(lambda t: t.date() >= start_date)]

        metric = "transitive" if transitive else "direct"
        column = f"{metric}_fraction" if relative else f"{metric}_dependents"

        width, height = self.size
        fig = Figure(figsize=(width / self.DPI, height / self.DPI), dpi=self.DPI)
        ax = fig.add_subplot()

        hue_step = 1.0 / len(targets) if targets else 1.0
        for i, target in enumerate(sorted(targets)):
            series = df[df["name"] == target]
            color = colorsys.hls_to_rgb(i * hue_step, 0.5, 0.8)
            ax.plot(
                pd.to_datetime(series["time"], utc=True).dt.date.tolist(),
                series[column].astype(float).tolist(),
                label=target,
                color=color,
                linewidth=2,
            )

        if len(df) > 0:
            values = df[column].astype(float)
            low, high = values.min() * 0.9, values.max() * 1.1
            if high > low:
                ax.set_ylim(low, high)

        ax.set_ylabel("Fraction of dependent crates" if relative else "Number of dependent crates")
        ax.grid(axis="y")
        if targets:
            ax.legend(loc="center left", frameon=True, edgecolor="black")

        fig.savefig(path, format="svg" if path.suffix.lower() == ".svg" else "png")
        logger.info("Wrote chart of %d crates to %s", len(targets), path)
        return path

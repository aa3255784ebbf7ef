"""
Command-line interface for crate dependency trends.
"""

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .fetch import DbFetcher
from .manifest import workspace_dependencies
from .plotter import Plotter
from .reporting import export_history_csv, print_summary, top_crates
from .sampler import update_db
from .store import HEADER_FILE, Db


logger = logging.getLogger(__name__)


def default_data_dir() -> Path:
    """Local store location under the XDG data directory."""
    base = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / "cargo-trend"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-trend",
        description="Plot how many crates depend on the given crates over time"
    )

    parser.add_argument(
        "crates",
        nargs="*",
        help="Crates to plot. Default: dependencies of the current workspace"
    )

    parser.add_argument(
        "--xsize",
        type=int,
        default=1200,
        help="X size of output image. Default: 1200"
    )

    parser.add_argument(
        "--ysize",
        type=int,
        default=800,
        help="Y size of output image. Default: 800"
    )

    parser.add_argument(
        "-o", "--output",
        default="trend.svg",
        help="File path of output image. Default: trend.svg"
    )

    parser.add_argument(
        "--manifest-path",
        default=None,
        help="File path of Cargo.toml"
    )

    parser.add_argument(
        "-u", "--update",
        default=None,
        metavar="PATH",
        help="Update the store at PATH from the crates.io index history and exit"
    )

    parser.add_argument(
        "-b", "--branch",
        default=None,
        help="Branch of crates.io-index to walk"
    )

    parser.add_argument(
        "-r", "--relative",
        action="store_true",
        help="Plot fraction of crates.io"
    )

    parser.add_argument(
        "-t", "--transitive",
        action="store_true",
        help="Plot transitive dependents"
    )

    parser.add_argument(
        "--start-date",
        default=None,
        help="Only plot entries from this date on (YYYY-MM-DD)"
    )

    parser.add_argument(
        "--db-dir",
        default=None,
        help="Directory of the local store. Default: $XDG_DATA_HOME/cargo-trend"
    )

    parser.add_argument(
        "--top",
        type=int,
        default=None,
        metavar="N",
        help="Log the N crates with the most dependents"
    )

    parser.add_argument(
        "--export-csv",
        default=None,
        metavar="PATH",
        help="Export the history of the plotted crates to a CSV file"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    return parser


def format_error(error: BaseException) -> str:
    """Outermost message first, then every cause on its own line."""
    lines = [str(error) or type(error).__name__]
    cause = error.__cause__ or error.__context__
    while cause is not None:
        lines.append(f"  Caused by: {str(cause) or type(cause).__name__}")
        cause = cause.__cause__ or cause.__context__
    return "\n".join(lines)


def run(args: argparse.Namespace) -> int:
    if args.update:
        path = Path(args.update)
        db = Db.load(path) if (path / HEADER_FILE).exists() else Db.new()
        update_db(db, branch=args.branch)
        db.save(path)
        logger.info("Store at %s updated to %s", path, db.update.isoformat())
        return 0

    start_date = None
    if args.start_date:
        try:
            start_date = datetime.strptime(args.start_date, "%Y-%m-%d").date()
        except ValueError as exc:
            raise ValueError("Invalid start-date format. Use YYYY-MM-DD") from exc

    db_dir = Path(args.db_dir) if args.db_dir else default_data_dir()
    DbFetcher(db_dir).fetch()
    db = Db.load(db_dir)

    if args.top:
        print_summary(db, top_crates(db, args.top, transitive=args.transitive, relative=args.relative))

    targets = args.crates or workspace_dependencies(args.manifest_path)

    if args.export_csv:
        csv_file = export_history_csv(db, Path(args.export_csv), targets)
        logger.info("History saved to: %s", csv_file)

    plotter = Plotter(size=(args.xsize, args.ysize))
    plotter.plot(
        args.output,
        targets,
        db,
        relative=args.relative,
        transitive=args.transitive,
        start_date=start_date,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    argv = list(sys.argv[1:] if argv is None else argv)
    # invoked as `cargo trend ...`
    if argv and argv[0] == "trend":
        argv = argv[1:]

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return run(args)
    except Exception as e:
        print(format_error(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

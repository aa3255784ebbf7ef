"""
Sampling of index history into the store.
"""

from __future__ import annotations

import logging
import tempfile
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from tqdm import tqdm

from .analyzer import SnapshotAnalyzer
from .index import CratesIndexLoader
from .interfaces import IndexLoader, RepositoryWalker
from .models import Commit
from .repository import GitRepository
from .store import Db
from .time_utils import ensure_utc, utc_date


logger = logging.getLogger(__name__)

CRATES_IO_INDEX_URL = "https://github.com/rust-lang/crates.io-index.git"


class SamplerState(Enum):
    IDLE = "idle"
    WALKING = "walking"
    ANALYZING = "analyzing"
    DONE = "done"


def select_commits(commits: Iterable[Commit], since: datetime) -> List[Commit]:
    """Keep the first commit of every new UTC day that is newer than `since`.

    A commit is only kept when it is newer than the previously kept one, so
    the selection advances monotonically.

    Args:
        commits: Commits oldest first
        since: High-water mark of the store

    Returns:
        Selected commits, oldest first
    """
    since = ensure_utc(since)
    last = since
    selected = []
    for commit in commits:
        # committer clocks can run backwards along the history
        if commit.time <= last:
            continue
        if utc_date(commit.time) != utc_date(last):
            selected.append(commit)
            last = commit.time
    return selected


class HistorySampler:
    """Walk index history and feed one snapshot per day to the analyzer."""

    def __init__(
        self,
        db: Db,
        repository: RepositoryWalker,
        loader: Optional[IndexLoader] = None,
        analyzer: Optional[SnapshotAnalyzer] = None,
        progress: bool = True,
    ) -> None:
        self.db = db
        self.repository = repository
        self.loader = loader or CratesIndexLoader()
        self.analyzer = analyzer or SnapshotAnalyzer(db)
        self.progress = progress
        self.state = SamplerState.IDLE

    def run(self, branch: Optional[str] = None) -> List[Commit]:
        """Analyze every commit newer than the store's high-water mark.

        The high-water mark advances after each analyzed commit.

        Returns:
            The commits that were analyzed
        """
        self.state = SamplerState.WALKING
        history = list(reversed(self.repository.commits_in_history(branch)))
        selected = select_commits(history, self.db.update)
        logger.info("%d of %d commits selected after %s", len(selected), len(history), self.db.update)

        total = len(selected)
        for i, commit in enumerate(tqdm(selected, desc="Update DB", disable=not self.progress), 1):
            self.state = SamplerState.ANALYZING
            logger.info("Update DB: %s %s ( %d / %d )", commit.time, commit.id, i, total)
            self.repository.reset_to(commit.id)
            snapshot = self.loader.load_snapshot(self.repository.path)
            self.analyzer.analyze(snapshot, commit.time)
            self.db.update = commit.time
            self.state = SamplerState.WALKING

        self.state = SamplerState.DONE
        return selected


def update_db(
    db: Db,
    branch: Optional[str] = None,
    url: str = CRATES_IO_INDEX_URL,
    loader: Optional[IndexLoader] = None,
    progress: bool = True,
) -> List[Commit]:
    """Clone the index into a temporary directory and bring `db` up to date.

    The clone is removed when the update finishes, whether it succeeds or not.
    """
    with tempfile.TemporaryDirectory(prefix="crate-trend-") as tmpdir:
        repository = GitRepository.clone(url, Path(tmpdir))
        sampler = HistorySampler(db, repository, loader=loader, progress=progress)
        return sampler.run(branch)

"""
Interfaces for the index repository and index loader.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, Sequence, Union

from .index import IndexSnapshot
from .models import Commit


class RepositoryWalker(Protocol):
    """A checkout of the index repository that can be moved between commits.

    The checkout is a single shared working tree; callers must not reset it
    concurrently.
    """

    path: Path

    def commits_in_history(self, branch: Optional[str] = None) -> Sequence[Commit]:
        """Commits reachable from the branch head, newest first."""
        ...

    def reset_to(self, commit_id: str) -> None:
        ...


class IndexLoader(Protocol):
    """Read an index working tree into a snapshot."""

    def load_snapshot(self, path: Union[str, Path]) -> IndexSnapshot:
        ...

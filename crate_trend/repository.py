"""
Git access to the crates.io index repository.

All interaction with the ``git`` binary goes through :func:`subprocess.run`
and failures surface as :class:`RepositoryError`.
"""

from __future__ import annotations

import logging
import re
import subprocess
import threading
from pathlib import Path
from typing import List, Optional, Union

from .errors import RepositoryError
from .models import Commit
from .time_utils import from_epoch_seconds


logger = logging.getLogger(__name__)

_GIT_SHA_RE = re.compile(r"^[0-9a-fA-F]{4,40}$")
_GIT_REF_RE = re.compile(r"^[a-zA-Z0-9_./@~^{}\-]+$")


def _validate_git_ref(ref: str) -> None:
    """Reject refs that could be read as options or contain shell metacharacters."""
    if not ref or ref.startswith("-"):
        raise RepositoryError(f"Invalid git ref: {ref!r}")
    if not (_GIT_SHA_RE.match(ref) or _GIT_REF_RE.match(ref)):
        raise RepositoryError(f"Invalid git ref: {ref!r}")


def _run_git(args: List[str], cwd: Optional[Path], timeout: Optional[float]) -> str:
    cmd = ["git", *args]
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise RepositoryError(
            f"git command failed: {' '.join(cmd)}\nExit code {exc.returncode}: {stderr}"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise RepositoryError(f"git command timed out after {timeout}s: {' '.join(cmd)}") from exc
    except FileNotFoundError as exc:
        raise RepositoryError("git executable not found. Ensure git is installed and on PATH.") from exc
    return result.stdout


class GitRepository:
    """A working tree of the index repository."""

    def __init__(self, path: Union[str, Path], timeout: Optional[float] = 600) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self._lock = threading.Lock()

    @classmethod
    def clone(
        cls, url: str, path: Union[str, Path], timeout: Optional[float] = None
    ) -> "GitRepository":
        """Clone `url` into `path` (which must be missing or empty)."""
        logger.info("Cloning %s into %s", url, path)
        _run_git(["clone", "--quiet", url, str(path)], cwd=None, timeout=timeout)
        return cls(path)

    def commits_in_history(self, branch: Optional[str] = None) -> List[Commit]:
        """Commits reachable from `origin/<branch>` (or HEAD), newest first."""
        ref = f"origin/{branch}" if branch else "HEAD"
        _validate_git_ref(ref)
        output = _run_git(["log", "--format=%H %ct", ref], cwd=self.path, timeout=self.timeout)

        commits = []
        for line in output.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                commit_id, seconds = line.split()
                commits.append(Commit(time=from_epoch_seconds(int(seconds)), id=commit_id))
            except ValueError as exc:
                raise RepositoryError(f"Unexpected git log output: {line!r}") from exc
        return commits

    def reset_to(self, commit_id: str) -> None:
        """Hard-reset the working tree to `commit_id`."""
        _validate_git_ref(commit_id)
        with self._lock:
            _run_git(["reset", "--quiet", "--hard", commit_id], cwd=self.path, timeout=self.timeout)

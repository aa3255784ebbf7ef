import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest

from crate_trend.errors import RepositoryError
from crate_trend.repository import GitRepository, _validate_git_ref


pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(path: Path, *args, date=None):
    env = dict(os.environ)
    if date:
        env["GIT_AUTHOR_DATE"] = date
        env["GIT_COMMITTER_DATE"] = date
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.invalid", *args],
        cwd=path,
        env=env,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def index_repo(tmp_path: Path) -> Path:
    path = tmp_path / "index"
    path.mkdir()
    git(path, "init", "-q")
    (path / "a").write_text("first\n")
    git(path, "add", "a")
    git(path, "commit", "-q", "-m", "first", date="2020-01-01T10:00:00+00:00")
    (path / "a").write_text("second\n")
    git(path, "commit", "-q", "-am", "second", date="2020-01-02T09:00:00+00:00")
    return path


def test_commits_newest_first(index_repo: Path):
    commits = GitRepository(index_repo).commits_in_history()

    assert len(commits) == 2
    assert commits[0].time == datetime(2020, 1, 2, 9, tzinfo=timezone.utc)
    assert commits[1].time == datetime(2020, 1, 1, 10, tzinfo=timezone.utc)


def test_reset_to_older_commit(index_repo: Path):
    repository = GitRepository(index_repo)
    oldest = repository.commits_in_history()[-1]

    repository.reset_to(oldest.id)

    assert (index_repo / "a").read_text() == "first\n"


def test_clone_and_walk(index_repo: Path, tmp_path: Path):
    clone = GitRepository.clone(str(index_repo), tmp_path / "clone")

    assert len(clone.commits_in_history()) == 2


def test_unknown_branch_raises(index_repo: Path):
    with pytest.raises(RepositoryError):
        GitRepository(index_repo).commits_in_history("no-such-branch")


@pytest.mark.parametrize("ref", ["", "--hard", "HEAD; rm -rf /", "a b"])
def test_invalid_refs_rejected(ref):
    with pytest.raises(RepositoryError):
        _validate_git_ref(ref)

"""Tests for git/multi.py."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from rfleet.git.multi import (
    PullResult,
    RepoStatus,
    SyncState,
    get_summary,
    pull_all,
    repo_status,
    status_all,
)
from rfleet.git.repository import GitError, Repository

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"git {' '.join(args)} failed (code {result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.strip()


def _init_local(path: Path) -> Path:
    path.mkdir(parents=True)
    _git(path, "init", "-b", "main")
    _git(path, "config", "user.email", "test@example.com")
    _git(path, "config", "user.name", "Test")
    (path / "hello.txt").write_text("v1\n", encoding="utf-8")
    _git(path, "add", "hello.txt")
    _git(path, "commit", "-m", "init")
    return path


def _init_remote(tmp_path: Path) -> tuple[str, Path]:
    """Bare remote seeded from a local repo; returns (url, seed_dir)."""
    remote = tmp_path / "remote.git"
    _git(tmp_path, "init", "--bare", "-b", "main", str(remote))
    seed = _init_local(tmp_path / "seed")
    url = remote.as_uri()
    _git(seed, "remote", "add", "origin", url)
    _git(seed, "push", "-u", "origin", "main")
    return url, seed


def _clone_into(ws: Path, url: str, name: str) -> Path:
    dest = ws / name
    _git(ws, "clone", "-q", url, name)
    _git(dest, "config", "user.email", "test@example.com")
    _git(dest, "config", "user.name", "Test")
    return dest


# =============================================================================
# Data types
# =============================================================================


class TestRepoStatus:
    """Tests for RepoStatus flags."""

    def test_clean(self) -> None:
        status = RepoStatus(path="svc", branch="main", state=SyncState.CLEAN)
        assert status.is_clean is True
        assert status.is_dirty is False

    def test_dirty_states(self) -> None:
        for state in (SyncState.DIRTY_UNSTAGED, SyncState.DIRTY_STAGED, SyncState.DIRTY_UNTRACKED):
            status = RepoStatus(path="svc", branch="main", state=state)
            assert status.is_dirty is True

    def test_state_display(self) -> None:
        assert str(SyncState.NOT_IN_SYNC) == "not in sync"


class TestPullResult:
    def test_ok(self) -> None:
        assert PullResult(path="svc", output="").ok is True

    def test_error(self) -> None:
        error = GitError(command="pull --rebase", message="conflict")
        assert PullResult(path="svc", error=error).ok is False


class TestGetSummary:
    """Tests for get_summary()."""

    def test_counts(self) -> None:
        statuses = [
            RepoStatus(path="a", branch="main", state=SyncState.CLEAN),
            RepoStatus(path="b", branch="main", state=SyncState.DIRTY_STAGED),
            RepoStatus(path="c", branch="main", state=SyncState.NOT_IN_SYNC),
            RepoStatus(path="d", branch="dev", state=SyncState.NO_REMOTE_BRANCH),
        ]
        assert get_summary(statuses) == {"total": 4, "clean": 1, "dirty": 1, "unsynced": 2}

    def test_empty(self) -> None:
        assert get_summary([]) == {"total": 0, "clean": 0, "dirty": 0, "unsynced": 0}


# =============================================================================
# Classification (real git)
# =============================================================================


@requires_git
class TestRepoStatusClassification:
    """Tests for repo_status() against real working copies."""

    def test_local_only_clean(self, tmp_path: Path) -> None:
        path = _init_local(tmp_path / "svc")

        status = repo_status("svc", Repository(path))

        assert status.state is SyncState.CLEAN
        assert status.local_only is True
        assert status.branch == "main"

    def test_unstaged_wins_over_untracked(self, tmp_path: Path) -> None:
        path = _init_local(tmp_path / "svc")
        (path / "hello.txt").write_text("edited\n", encoding="utf-8")
        (path / "new.txt").write_text("x\n", encoding="utf-8")

        assert repo_status("svc", Repository(path)).state is SyncState.DIRTY_UNSTAGED

    def test_staged(self, tmp_path: Path) -> None:
        path = _init_local(tmp_path / "svc")
        (path / "new.txt").write_text("x\n", encoding="utf-8")
        _git(path, "add", "new.txt")

        assert repo_status("svc", Repository(path)).state is SyncState.DIRTY_STAGED

    def test_untracked(self, tmp_path: Path) -> None:
        path = _init_local(tmp_path / "svc")
        (path / "new.txt").write_text("x\n", encoding="utf-8")

        assert repo_status("svc", Repository(path)).state is SyncState.DIRTY_UNTRACKED

    def test_in_sync_with_origin(self, tmp_path: Path) -> None:
        url, _seed = _init_remote(tmp_path)
        path = _clone_into(tmp_path, url, "svc")

        status = repo_status("svc", Repository(path))

        assert status.state is SyncState.CLEAN
        assert status.local_only is False

    def test_local_commit_is_not_in_sync(self, tmp_path: Path) -> None:
        url, _seed = _init_remote(tmp_path)
        path = _clone_into(tmp_path, url, "svc")
        (path / "hello.txt").write_text("v2\n", encoding="utf-8")
        _git(path, "commit", "-am", "v2")

        assert repo_status("svc", Repository(path)).state is SyncState.NOT_IN_SYNC

    def test_remote_commit_is_not_in_sync(self, tmp_path: Path) -> None:
        url, seed = _init_remote(tmp_path)
        path = _clone_into(tmp_path, url, "svc")
        (seed / "hello.txt").write_text("v2\n", encoding="utf-8")
        _git(seed, "commit", "-am", "v2")
        _git(seed, "push")

        assert repo_status("svc", Repository(path)).state is SyncState.NOT_IN_SYNC

    def test_unpushed_branch(self, tmp_path: Path) -> None:
        url, _seed = _init_remote(tmp_path)
        path = _clone_into(tmp_path, url, "svc")
        _git(path, "checkout", "-q", "-b", "feature/local")

        status = repo_status("svc", Repository(path))

        assert status.state is SyncState.NO_REMOTE_BRANCH
        assert status.branch == "feature/local"

    def test_long_branch_is_truncated(self, tmp_path: Path) -> None:
        path = _init_local(tmp_path / "svc")
        _git(path, "checkout", "-q", "-b", "feature/a-very-long-branch-name-indeed")

        assert repo_status("svc", Repository(path)).branch == "feature/a-very-long-branc"

    def test_long_pushed_branch_is_in_sync(self, tmp_path: Path) -> None:
        url, _seed = _init_remote(tmp_path)
        path = _clone_into(tmp_path, url, "svc")
        _git(path, "checkout", "-q", "-b", "feature/a-very-long-branch-name-indeed")
        _git(path, "push", "-q", "-u", "origin", "feature/a-very-long-branch-name-indeed")

        status = repo_status("svc", Repository(path))

        assert status.state is SyncState.CLEAN
        assert status.branch == "feature/a-very-long-branc"


@requires_git
class TestBulkOperations:
    """Tests for status_all() and pull_all()."""

    def test_status_all_keeps_order(self, tmp_path: Path) -> None:
        ws = tmp_path / "ws"
        _init_local(ws / "b")
        _init_local(ws / "a")

        statuses = status_all(ws, ["b", "a"])

        assert [s.path for s in statuses] == ["b", "a"]

    def test_pull_all(self, tmp_path: Path) -> None:
        url, seed = _init_remote(tmp_path)
        ws = tmp_path / "ws"
        ws.mkdir()
        path = _clone_into(ws, url, "svc")
        _init_local(ws / "local")

        (seed / "hello.txt").write_text("v2\n", encoding="utf-8")
        _git(seed, "commit", "-am", "v2")
        _git(seed, "push")

        results = pull_all(ws, ["svc", "local"])

        assert results[0].ok is True
        assert (path / "hello.txt").read_text(encoding="utf-8") == "v2\n"
        assert results[1].ok is False
        assert results[1].error is not None
        assert results[1].error.command == "pull --rebase"

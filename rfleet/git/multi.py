"""Multi-repository operations.

Status classification and bulk pull for the working copies of a workspace.

Usage:
    from rfleet.git.multi import status_all

    for status in status_all(workspace.root, find_repos(workspace.root)):
        print(f"{status.path}: {status.state}")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rfleet.core.result import Err, Ok
from rfleet.git.repository import GitError, Repository

__all__ = [
    "PullResult",
    "RepoStatus",
    "SyncState",
    "get_summary",
    "pull_all",
    "repo_status",
    "status_all",
]

_BRANCH_DISPLAY_WIDTH = 25


class SyncState(Enum):
    """Classification of a working copy, first match wins."""

    DIRTY_UNSTAGED = "dirty (unstaged changes)"
    DIRTY_STAGED = "dirty (uncommitted changes)"
    DIRTY_UNTRACKED = "dirty (untracked files)"
    CLEAN = "clean"
    NO_REMOTE_BRANCH = "no remote branch"
    NOT_IN_SYNC = "not in sync"
    INTERNAL_ERROR = "internal error"

    def __str__(self) -> str:
        return self.value

    @property
    def is_dirty(self) -> bool:
        return self in (SyncState.DIRTY_UNSTAGED, SyncState.DIRTY_STAGED, SyncState.DIRTY_UNTRACKED)


@dataclass(frozen=True, slots=True)
class RepoStatus:
    """Status of one working copy.

    Attributes:
        path: Workspace-relative path
        branch: Current branch (truncated for display, "" if detached)
        state: Classification
        local_only: True if the working copy has no `origin` remote
    """

    path: str
    branch: str
    state: SyncState
    local_only: bool = False

    @property
    def is_clean(self) -> bool:
        return self.state == SyncState.CLEAN

    @property
    def is_dirty(self) -> bool:
        return self.state.is_dirty


@dataclass(frozen=True, slots=True)
class PullResult:
    """Result of pulling a working copy.

    Attributes:
        path: Workspace-relative path
        output: Pull output if successful, None on error
        error: Error if pull failed, None on success
    """

    path: str
    output: str | None = None
    error: GitError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def repo_status(path: str, repo: Repository) -> RepoStatus:
    """Classify a working copy.

    Dirty states are checked locally. Clean repositories with an `origin`
    are fetched and their branch compared with `origin/<branch>`.
    """
    branch = repo.current_branch() or ""
    local_only = repo.remote_url() is None

    def status(state: SyncState) -> RepoStatus:
        return RepoStatus(path=path, branch=branch[:_BRANCH_DISPLAY_WIDTH], state=state, local_only=local_only)

    if not repo.has_no_unstaged_diff():
        return status(SyncState.DIRTY_UNSTAGED)
    if not repo.has_no_staged_diff():
        return status(SyncState.DIRTY_STAGED)
    if not repo.has_no_untracked():
        return status(SyncState.DIRTY_UNTRACKED)
    if local_only:
        return status(SyncState.CLEAN)

    # A failed fetch still lets us compare with the last known remote state.
    repo.fetch()

    remote = repo.revision_of(f"origin/{branch}") if branch else None
    local = repo.revision_of(branch) if branch else None

    if remote is None:
        return status(SyncState.NO_REMOTE_BRANCH)
    if local is None:
        return status(SyncState.INTERNAL_ERROR)
    if local != remote:
        return status(SyncState.NOT_IN_SYNC)
    return status(SyncState.CLEAN)


def status_all(
    root: Path,
    paths: list[str],
    *,
    auth_args: tuple[str, ...] = (),
) -> list[RepoStatus]:
    """Status of every working copy, in the given order."""
    return [repo_status(p, Repository(root / p, auth_args=auth_args)) for p in paths]


def pull_all(
    root: Path,
    paths: list[str],
    *,
    autostash: bool = False,
    auth_args: tuple[str, ...] = (),
) -> list[PullResult]:
    """Pull with rebase every working copy, in the given order."""
    results: list[PullResult] = []

    for path in paths:
        repo = Repository(root / path, auth_args=auth_args)
        match repo.pull_rebase(autostash=autostash):
            case Ok(output):
                results.append(PullResult(path=path, output=output))
            case Err(error):
                results.append(PullResult(path=path, error=error))

    return results


def get_summary(statuses: list[RepoStatus]) -> dict[str, int]:
    """Summary counts: total, clean, dirty, unsynced."""
    return {
        "total": len(statuses),
        "clean": sum(1 for s in statuses if s.is_clean),
        "dirty": sum(1 for s in statuses if s.is_dirty),
        "unsynced": sum(1 for s in statuses if not s.is_clean and not s.is_dirty),
    }

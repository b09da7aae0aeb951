"""Git operations module.

- Repository: single working copy adapter
- RepoSelector: glob-based selection of repository paths
- find_repos: bounded-depth discovery of working copies
- status_all / pull_all: multi-repository operations

Usage:
    from rfleet.git import RepoSelector, Repository, find_repos

    for rel_path in find_repos(root, RepoSelector("svc-*")):
        print(rel_path, Repository(root / rel_path).current_branch())
"""

from rfleet.git.discovery import MAX_DEPTH, find_repos
from rfleet.git.multi import (
    PullResult,
    RepoStatus,
    SyncState,
    get_summary,
    pull_all,
    repo_status,
    status_all,
)
from rfleet.git.repository import (
    GitError,
    Repository,
    StatusEntry,
    auth_args_for,
    clone,
    is_empty_clone,
)
from rfleet.git.selector import RepoSelector

__all__ = [
    # Repository
    "GitError",
    "Repository",
    "StatusEntry",
    "auth_args_for",
    "clone",
    "is_empty_clone",
    # Selection / discovery
    "MAX_DEPTH",
    "RepoSelector",
    "find_repos",
    # Multi
    "PullResult",
    "RepoStatus",
    "SyncState",
    "get_summary",
    "pull_all",
    "repo_status",
    "status_all",
]

"""Local repository discovery.

Finds working copies under a workspace root by looking for `.git`
directories, at most MAX_DEPTH levels below the root so dependency and
vendor trees are never scanned.

Usage:
    for rel_path in find_repos(workspace.root, RepoSelector("svc-*")):
        print(rel_path)
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath

from rfleet.core.workspace import STATE_DIR_NAME
from rfleet.git.selector import RepoSelector

__all__ = ["GIT_DIR_NAME", "MAX_DEPTH", "find_repos"]

MAX_DEPTH = 2
GIT_DIR_NAME = ".git"


def _depth(rel: PurePosixPath) -> int:
    # Number of separators in the relative path ("a" -> 0, "a/b" -> 1)
    return len(rel.parts) - 1


def find_repos(
    root: Path,
    selector: RepoSelector | None = None,
    *,
    max_depth: int = MAX_DEPTH,
) -> list[str]:
    """Find working copies below root.

    Args:
        root: Workspace root to walk
        selector: Optional filter applied to each relative path
        max_depth: Directories whose relative path has this many separators
            are pruned, whether or not they are repositories

    Returns:
        Workspace-relative POSIX paths, deduplicated and sorted ascending
    """
    if not root.is_dir():
        return []

    found: set[str] = set()

    for dirpath, dirnames, _filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root)
        is_root = rel_dir == Path(".")

        if not is_root and GIT_DIR_NAME in dirnames:
            found.add(rel_dir.as_posix())

        keep: list[str] = []
        for name in sorted(dirnames):
            if name == GIT_DIR_NAME:
                continue
            if is_root and name == STATE_DIR_NAME:
                continue
            child = PurePosixPath(name) if is_root else PurePosixPath(rel_dir.as_posix(), name)
            if _depth(child) >= max_depth:
                continue
            keep.append(name)
        dirnames[:] = keep

    paths = sorted(found)
    if selector is not None:
        paths = selector.select(paths)
    return paths

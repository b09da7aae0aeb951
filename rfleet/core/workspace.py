"""Workspace detection and paths.

A workspace is a directory holding the working copies of a fleet. It is
identified by a `.rfleet/` state directory, which also holds `config.toml`
and the `actions/` scripts run by `rfleet exec`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result

__all__ = [
    "STATE_DIR_NAME",
    "WORKSPACE_ENV_VAR",
    "Workspace",
    "WorkspaceError",
    "detect_workspace",
    "find_workspace_upward",
    "is_workspace_root",
]

STATE_DIR_NAME = ".rfleet"
WORKSPACE_ENV_VAR = "RFLEET_WORKSPACE"


@dataclass(frozen=True)
class WorkspaceError:
    """Error when workspace cannot be detected."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Workspace:
    """A detected workspace.

    The root contains:
    - .rfleet/config.toml (provider settings)
    - .rfleet/actions/ (executable action scripts)
    - one working copy per repository, at most two levels deep
    """

    root: Path

    @property
    def state_dir(self) -> Path:
        return self.root / STATE_DIR_NAME

    @property
    def config_path(self) -> Path:
        return self.state_dir / "config.toml"

    @property
    def actions_dir(self) -> Path:
        return self.state_dir / "actions"

    def action_path(self, name: str) -> Path:
        """Path of the action script called `name`."""
        return self.actions_dir / name

    def repo_dir(self, rel_path: str) -> Path:
        """Absolute directory of a working copy given its workspace-relative path."""
        return self.root / rel_path

    def __str__(self) -> str:
        return str(self.root)


def is_workspace_root(path: Path) -> bool:
    return (path / STATE_DIR_NAME).is_dir()


def find_workspace_upward(start: Path) -> Path | None:
    """Search upward from start for a workspace root."""
    for parent in (start, *start.parents):
        if is_workspace_root(parent):
            return parent
    return None


def detect_workspace(
    *,
    start_dir: Path | None = None,
    env_var: str = WORKSPACE_ENV_VAR,
) -> Result[Workspace, WorkspaceError]:
    """Detect the workspace root directory.

    Detection order:
    1. Environment variable (if set, it must point at a workspace)
    2. Search upward from start_dir (or cwd) for a `.rfleet/` directory
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir() and is_workspace_root(env_path):
            return Ok(Workspace(root=env_path))
        return Err(
            WorkspaceError(
                message=f"${env_var} is set to '{env_value}' but it is not a valid workspace",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_workspace_upward(search_start)
    if found is not None:
        return Ok(Workspace(root=found))

    return Err(
        WorkspaceError(
            message=f"Could not find workspace ({STATE_DIR_NAME}/ not found)",
            searched_from=search_start,
        )
    )

"""Git working copy adapter.

Each method maps to one `git -C <dir> ...` invocation. Fallible operations
return Result types; predicates return plain booleans.

Usage:
    repo = Repository(workspace.repo_dir("svc-auth"), auth_args=auth)

    match repo.push("feature/bump"):
        case Ok(_):
            console.success("pushed")
        case Err(e):
            console.error(f"push failed: {e.message}")
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path

from rfleet.core.config import GitConfig
from rfleet.core.result import Err, Ok, Result
from rfleet.platform.process import ProcessError
from rfleet.platform.process import run as run_process
from rfleet.platform.process import run_combined

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "clone"})

AUTO_STASH_LABEL = "Auto-stash by rfleet"
EMPTY_CLONE_WARNING = "warning: You appear to have cloned an empty repository."

__all__ = [
    "AUTO_STASH_LABEL",
    "GitError",
    "Repository",
    "StatusEntry",
    "auth_args_for",
    "clone",
    "is_empty_clone",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single `git status --porcelain` entry.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"


def auth_args_for(git: GitConfig) -> tuple[str, ...]:
    """Extra git arguments injecting the token into https operations.

    Empty unless the clone protocol is https and token-based operation is on.
    """
    if git.clone_protocol != "https" or not git.use_token_for_operation:
        return ()
    pat = base64.b64encode(f":{git.token}".encode()).decode("ascii")
    return ("-c", f"http.extraHeader=Authorization: Basic {pat}")


def is_empty_clone(output: str) -> bool:
    """True if clone output reports an empty remote repository."""
    return EMPTY_CLONE_WARNING in output


def _to_git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    return GitError(
        command=command,
        message=error.details or fallback,
        returncode=error.returncode,
    )


def clone(
    url: str,
    dest: Path,
    *,
    cwd: Path,
    auth_args: tuple[str, ...] = (),
) -> Result[str, GitError]:
    """Clone url into dest.

    Returns:
        Ok(combined output) on success, so callers can detect empty clones
        Err(GitError) on failure
    """
    result = run_combined(
        ["git", *auth_args, "clone", "-q", url, str(dest)],
        cwd=cwd,
        timeout=_GIT_NETWORK_TIMEOUT_SECONDS,
    )
    if not result.ok:
        message = " ".join(result.output.strip().splitlines()) or "clone failed"
        return Err(GitError(command="clone", message=message, returncode=result.returncode))
    return Ok(result.output)


class Repository:
    """A git working copy.

    Attributes:
        path: Path to the working copy root
        auth_args: Extra arguments for network commands (see auth_args_for)
    """

    def __init__(self, path: Path, *, auth_args: tuple[str, ...] = ()) -> None:
        self.path = path
        self.auth_args = auth_args

    # -- queries --------------------------------------------------------------

    def current_branch(self) -> str | None:
        """Current branch name, None if detached HEAD or error."""
        match self._run(["rev-parse", "--abbrev-ref", "HEAD"]):
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch in ("", "HEAD") else branch
            case Err(_):
                return None

    def remote_url(self) -> str | None:
        """URL of the `origin` remote, None for local-only repositories."""
        match self._run(["remote", "get-url", "origin"]):
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def revision_of(self, ref: str) -> str | None:
        """Commit id a ref resolves to, None if it does not exist."""
        match self._run(["rev-parse", "--verify", "--quiet", ref]):
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def entries(self) -> list[StatusEntry]:
        """Parsed `git status --porcelain` entries (empty on error)."""
        match self._run(["status", "--porcelain"]):
            case Ok(stdout):
                return [e for e in (self._parse_entry(ln) for ln in stdout.splitlines()) if e]
            case Err(_):
                return []

    # `git diff --exit-code` exits 0 when there is no difference: success
    # means clean, so these predicates are phrased as "has no".

    def has_no_unstaged_diff(self) -> bool:
        return isinstance(self._run(["diff", "--exit-code", "--quiet"]), Ok)

    def has_no_staged_diff(self) -> bool:
        return isinstance(self._run(["diff", "--cached", "--exit-code", "--quiet"]), Ok)

    def has_no_untracked(self) -> bool:
        return not any(e.is_untracked for e in self.entries())

    def diff(self) -> Result[str, GitError]:
        """Raw unstaged diff."""
        match self._run(["diff"]):
            case Ok(stdout):
                return Ok(stdout)
            case Err(e):
                return Err(_to_git_error("diff", e, "diff failed"))

    # -- mutations ------------------------------------------------------------

    def fetch(self) -> Result[str, GitError]:
        match self._run(["fetch"]):
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(e):
                return Err(_to_git_error("fetch", e, "fetch failed"))

    def checkout(self, branch: str) -> Result[None, GitError]:
        match self._run(["checkout", "-q", branch]):
            case Ok(_):
                return Ok(None)
            case Err(e):
                return Err(_to_git_error(f"checkout {branch}", e, "checkout failed"))

    def create_branch(self, branch: str) -> Result[None, GitError]:
        """Create or reset `branch` at HEAD and switch to it."""
        match self._run(["checkout", "-q", "-B", branch]):
            case Ok(_):
                return Ok(None)
            case Err(e):
                return Err(_to_git_error(f"checkout -B {branch}", e, "branch creation failed"))

    def stash(self, label: str = AUTO_STASH_LABEL) -> Result[None, GitError]:
        match self._run(["stash", "push", "-m", label]):
            case Ok(_):
                return Ok(None)
            case Err(e):
                return Err(_to_git_error("stash", e, "stash failed"))

    def pull_rebase(self, *, autostash: bool = False) -> Result[str, GitError]:
        args = ["pull", "-q", "--rebase"]
        if autostash:
            args.append("--autostash")
        match self._run(args):
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(e):
                return Err(_to_git_error("pull --rebase", e, "pull failed"))

    def stash_and_rebase(self, branch: str, *, autostash: bool = False) -> list[GitError]:
        """Bring the working copy back onto an up-to-date `branch`.

        Stashes local changes, checks out `branch` and pulls with rebase.
        Every step is attempted; failures are returned, not raised, so the
        caller can report them as warnings.
        """
        failures: list[GitError] = []
        for step in (
            lambda: self.stash(),
            lambda: self.checkout(branch),
            lambda: self.pull_rebase(autostash=autostash),
        ):
            result = step()
            if isinstance(result, Err):
                failures.append(result.error)
        return failures

    def add_and_commit(self, message: str, *, only_tracked: bool = True) -> Result[str, GitError]:
        """Stage changes and commit.

        With only_tracked, new untracked files are never staged.
        """
        add_args = ["add", "-u", "."] if only_tracked else ["add", "."]
        added = self._run(add_args)
        if isinstance(added, Err):
            return Err(_to_git_error("add", added.error, "add failed"))

        match self._run(["commit", "-q", "-m", message]):
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(e):
                return Err(_to_git_error("commit", e, "commit failed"))

    def push(self, track_branch: str = "") -> Result[str, GitError]:
        """Push the current branch.

        When track_branch is given, push it to origin and set it as upstream.
        """
        args = ["push", "-q"]
        if track_branch:
            args.extend(["-u", "origin", track_branch])
        match self._run(args):
            case Ok(stdout):
                return Ok(stdout.strip())
            case Err(e):
                return Err(_to_git_error("push", e, "push failed"))

    # -- internals ------------------------------------------------------------

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this working copy."""
        command = args[0] if args else ""
        if command in _NETWORK_COMMANDS:
            prefix = [*self.auth_args]
            timeout = _GIT_NETWORK_TIMEOUT_SECONDS
        else:
            prefix = []
            timeout = _GIT_TIMEOUT_SECONDS
        return run_process(
            ["git", *prefix, "-C", str(self.path), *args],
            cwd=self.path,
            timeout=timeout,
        )

    @staticmethod
    def _parse_entry(line: str) -> StatusEntry | None:
        if len(line) < 4:
            return None
        if line.startswith("?? "):
            return StatusEntry(xy="??", path=line[3:])
        return StatusEntry(xy=line[:2], path=line[3:])

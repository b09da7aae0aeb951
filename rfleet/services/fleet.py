"""Fleet automation pipeline.

Runs an action script across every selected working copy, then optionally
commits, pushes and proposes the change for review. Each repository goes
through a small state machine:

    discover -> sync -> branch -> gate_init -> execute -> detect_changes
        -> gate_commit -> commit -> gate_push -> push -> gate_review -> review
        -> restore

Repositories are processed one at a time in sorted path order. A failure in
one repository is recorded in the summary and never stops the run; only a
`q` answer at a gate does.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from rfleet.core.result import Err, Ok, Result
from rfleet.core.workspace import Workspace
from rfleet.git.discovery import find_repos
from rfleet.git.repository import GitError
from rfleet.git.selector import RepoSelector
from rfleet.output.console import ConsoleProtocol
from rfleet.platform.process import run_combined
from rfleet.remote.base import Provider
from rfleet.remote.errors import RemoteError
from rfleet.remote.model import RemoteRepository
from rfleet.services.gate import GateAnswer, GateController, ShowDiff

__all__ = [
    "ActionError",
    "ActionRunner",
    "Completed",
    "ExecOptions",
    "Failed",
    "FleetPipeline",
    "FleetSession",
    "FleetSummary",
    "GitAdapter",
    "PipelineContext",
    "RepoOutcome",
    "RepoResult",
    "Skipped",
    "diff_printer",
    "run_action_script",
]


# -----------------------------------------------------------------------------
# Collaborators
# -----------------------------------------------------------------------------


class GitAdapter(Protocol):
    """The working copy operations the pipeline relies on."""

    def current_branch(self) -> str | None: ...

    def stash_and_rebase(self, branch: str, *, autostash: bool = False) -> list[GitError]: ...

    def create_branch(self, branch: str) -> Result[None, GitError]: ...

    def checkout(self, branch: str) -> Result[None, GitError]: ...

    def has_no_unstaged_diff(self) -> bool: ...

    def has_no_staged_diff(self) -> bool: ...

    def has_no_untracked(self) -> bool: ...

    def add_and_commit(self, message: str, *, only_tracked: bool = True) -> Result[str, GitError]: ...

    def push(self, track_branch: str = "") -> Result[str, GitError]: ...

    def diff(self) -> Result[str, GitError]: ...


@dataclass(frozen=True, slots=True)
class ActionError:
    """An action script that could not run or exited non-zero."""

    action: str
    returncode: int
    output: str

    @property
    def message(self) -> str:
        return f"action '{self.action}' failed (exit {self.returncode})"


GitFactory = Callable[[Path], GitAdapter]
ActionRunner = Callable[[Path, str, Sequence[str]], Result[str, ActionError]]
CloneMissing = Callable[[RepoSelector], Result[list[RemoteRepository], RemoteError]]


def run_action_script(workspace: Workspace) -> ActionRunner:
    """Runner for `<workspace>/.rfleet/actions/<action>`, executed in the repo dir."""

    def run(repo_dir: Path, action: str, params: Sequence[str]) -> Result[str, ActionError]:
        script = workspace.action_path(action)
        if not script.is_file():
            return Err(ActionError(action=action, returncode=127, output=f"action not found: {script}"))
        result = run_combined([str(script), *params], cwd=repo_dir)
        if not result.ok:
            return Err(ActionError(action=action, returncode=result.returncode, output=result.output))
        return Ok(result.output)

    return run


def diff_printer(workspace: Workspace, git_factory: GitFactory, console: ConsoleProtocol) -> ShowDiff:
    """Diff viewer for the commit gate."""

    def show(path: str) -> None:
        match git_factory(workspace.repo_dir(path)).diff():
            case Ok(text):
                console.raw(text)
            case Err(e):
                console.error(f"cannot show diff for '{path}': {e.message}")

    return show


# -----------------------------------------------------------------------------
# Data Types
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExecOptions:
    pattern: str = ""
    excludes: tuple[str, ...] = ()
    action: str = ""
    params: tuple[str, ...] = ()
    interactive: bool = False
    branch: str = ""
    commit_message: str = ""
    review: bool = False
    review_title: str = ""
    review_message: str = ""
    review_draft: bool = False

    @property
    def effective_review_title(self) -> str:
        return self.review_title or self.commit_message


@dataclass(slots=True)
class FleetSession:
    """State shared across repositories of one run."""

    accept_all: bool = False


@dataclass(frozen=True, slots=True)
class Completed:
    committed: bool = False
    review_url: str = ""


@dataclass(frozen=True, slots=True)
class Skipped:
    reason: str


@dataclass(frozen=True, slots=True)
class Failed:
    error: str


RepoOutcome = Completed | Skipped | Failed


@dataclass(frozen=True, slots=True)
class RepoResult:
    path: str
    outcome: RepoOutcome


@dataclass(slots=True)
class FleetSummary:
    results: list[RepoResult] = field(default_factory=list)
    aborted: bool = False

    def _paths(self, kind: type) -> list[str]:
        return [r.path for r in self.results if isinstance(r.outcome, kind)]

    @property
    def completed(self) -> list[str]:
        return self._paths(Completed)

    @property
    def skipped(self) -> list[str]:
        return self._paths(Skipped)

    @property
    def failed(self) -> list[str]:
        return self._paths(Failed)

    def outcome_of(self, path: str) -> RepoOutcome | None:
        return next((r.outcome for r in self.results if r.path == path), None)


@dataclass(slots=True)
class PipelineContext:
    """Per-repository state, created fresh for every iteration."""

    path: str
    git: GitAdapter
    repository: RemoteRepository | None = None
    default_branch: str = ""
    current_branch: str = ""
    outcome: RepoOutcome = field(default_factory=Completed)


# -----------------------------------------------------------------------------
# Pipeline
# -----------------------------------------------------------------------------

DONE = "done"
ABORT = "abort"

_PROMPT_INIT = "Initialization done, continue to execute?"
_PROMPT_COMMIT = "Execution done, continue to commit?"
_PROMPT_PUSH = "Commit done, continue to push?"

StepHandler = Callable[[PipelineContext], str]


class FleetPipeline:
    """Runs ExecOptions over the selected repositories of a workspace."""

    def __init__(
        self,
        *,
        workspace: Workspace,
        git_factory: GitFactory,
        provider: Provider,
        console: ConsoleProtocol,
        gate: GateController | None = None,
        run_action: ActionRunner | None = None,
        clone_missing: CloneMissing | None = None,
    ) -> None:
        self._workspace = workspace
        self._git_factory = git_factory
        self._provider = provider
        self._console = console
        self._gate = gate
        self._run_action = run_action or run_action_script(workspace)
        self._clone_missing = clone_missing
        self._options = ExecOptions()
        self._session = FleetSession()
        self._handlers: Mapping[str, StepHandler] = {
            "discover": self._discover,
            "sync": self._sync,
            "branch": self._branch,
            "gate_init": self._gate_init,
            "execute": self._execute,
            "detect_changes": self._detect_changes,
            "gate_commit": self._gate_commit,
            "commit": self._commit,
            "gate_push": self._gate_push,
            "push": self._push,
            "gate_review": self._gate_review,
            "review": self._review,
            "restore": self._restore,
        }

    def run(self, options: ExecOptions) -> FleetSummary:
        if options.interactive and self._gate is None:
            raise ValueError("interactive runs need a GateController")

        self._options = options
        self._session = FleetSession()
        summary = FleetSummary()
        selector = RepoSelector(options.pattern, options.excludes)

        remote = self._remote_by_path(selector)
        paths = find_repos(self._workspace.root, selector)
        if not paths:
            self._console.warning("no repository matches the selection")
            return summary

        for path in paths:
            ctx = PipelineContext(
                path=path,
                git=self._git_factory(self._workspace.repo_dir(path)),
                repository=remote.get(path),
            )
            self._console.header(path)
            if not self._run_steps(ctx):
                summary.aborted = True
                self._console.warning("run aborted")
                break
            summary.results.append(RepoResult(path=path, outcome=ctx.outcome))
            self._report(ctx)

        return summary

    def _remote_by_path(self, selector: RepoSelector) -> dict[str, RemoteRepository]:
        if self._clone_missing is None:
            return {}
        match self._clone_missing(selector):
            case Ok(repos):
                return {r.path: r for r in repos}
            case Err(e):
                self._console.warning(
                    f"cannot list remote repositories, continuing with local ones only: {e.pretty()}"
                )
                return {}

    def _run_steps(self, ctx: PipelineContext) -> bool:
        """Drive the state machine; False when the operator quit."""
        step = "discover"
        while step != DONE:
            if step == ABORT:
                return False
            handler = self._handlers.get(step)
            if handler is None:
                raise KeyError(f"unknown pipeline step: {step}")
            step = handler(ctx)
        return True

    def _report(self, ctx: PipelineContext) -> None:
        match ctx.outcome:
            case Completed():
                self._console.success(f"'{ctx.path}' done")
            case Skipped(reason):
                self._console.info(f"'{ctx.path}' skipped ({reason})")
            case Failed(error):
                self._console.error(f"'{ctx.path}' failed: {error}")

    def _confirm(self, ctx: PipelineContext, prompt: str, proceed: str, *, with_diff: bool = False) -> str:
        """Gate between two steps; returns the next step name."""
        if not self._options.interactive or self._session.accept_all or self._gate is None:
            return proceed

        match self._gate.decide(prompt, ctx.path, with_diff=with_diff):
            case GateAnswer.QUIT:
                return ABORT
            case GateAnswer.NO:
                ctx.outcome = Skipped(reason="declined")
                return "restore"
            case GateAnswer.ALL:
                self._session.accept_all = True
                return proceed
            case GateAnswer.YES:
                return proceed

    def _progress(self, ctx: PipelineContext, what: str) -> None:
        self._console.info(f"'{ctx.path}': {what}")

    # -- steps ----------------------------------------------------------------

    def _discover(self, ctx: PipelineContext) -> str:
        ctx.current_branch = ctx.git.current_branch() or ""
        if ctx.repository is not None and ctx.repository.default_branch:
            ctx.default_branch = ctx.repository.default_branch
        else:
            ctx.default_branch = ctx.current_branch
        return "sync"

    def _sync(self, ctx: PipelineContext) -> str:
        self._progress(ctx, "initializing")
        if not ctx.default_branch:
            self._console.warning(f"'{ctx.path}': cannot determine the default branch, not updating")
            return "branch"
        for failure in ctx.git.stash_and_rebase(ctx.default_branch):
            self._console.warning(f"'{ctx.path}': {failure.command}: {failure.message}")
        return "branch"

    def _branch(self, ctx: PipelineContext) -> str:
        branch = self._options.branch
        if branch:
            created = ctx.git.create_branch(branch)
            if isinstance(created, Err):
                self._console.warning(f"'{ctx.path}': cannot switch to '{branch}': {created.error.message}")
        return "gate_init"

    def _gate_init(self, ctx: PipelineContext) -> str:
        return self._confirm(ctx, _PROMPT_INIT, "execute")

    def _execute(self, ctx: PipelineContext) -> str:
        self._progress(ctx, "executing")
        result = self._run_action(
            self._workspace.repo_dir(ctx.path),
            self._options.action,
            self._options.params,
        )
        if isinstance(result, Err):
            error = result.error
            ctx.outcome = Failed(error=error.message)
            if error.output.strip():
                self._console.raw(error.output)
            return "restore"
        return "detect_changes"

    def _detect_changes(self, ctx: PipelineContext) -> str:
        git = ctx.git
        clean = git.has_no_unstaged_diff() and git.has_no_staged_diff() and git.has_no_untracked()
        if clean:
            self._progress(ctx, "nothing to commit")
            return "restore"
        if not self._options.commit_message:
            self._progress(ctx, "changes left uncommitted (no commit message)")
            return "restore"
        return "gate_commit"

    def _gate_commit(self, ctx: PipelineContext) -> str:
        return self._confirm(ctx, _PROMPT_COMMIT, "commit", with_diff=True)

    def _commit(self, ctx: PipelineContext) -> str:
        self._progress(ctx, "committing")
        committed = ctx.git.add_and_commit(self._options.commit_message)
        if isinstance(committed, Err):
            ctx.outcome = Failed(error=f"commit failed: {committed.error.message}")
            return "restore"
        ctx.outcome = Completed(committed=True)
        return "gate_push"

    def _gate_push(self, ctx: PipelineContext) -> str:
        return self._confirm(ctx, _PROMPT_PUSH, "push")

    def _push(self, ctx: PipelineContext) -> str:
        self._progress(ctx, "pushing")
        pushed = ctx.git.push(self._options.branch)
        if isinstance(pushed, Err):
            ctx.outcome = Failed(error=f"push failed: {pushed.error.message}")
            return "restore"
        return "gate_review" if self._review_eligible(ctx) else "restore"

    def _review_eligible(self, ctx: PipelineContext) -> bool:
        options = self._options
        return (
            ctx.repository is not None
            and bool(options.branch)
            and options.branch != ctx.default_branch
            and options.review
            and bool(options.effective_review_title)
        )

    def _gate_review(self, ctx: PipelineContext) -> str:
        noun = self._provider.labels.review_request
        return self._confirm(ctx, f"Push done, continue to create {noun}?", "review")

    def _review(self, ctx: PipelineContext) -> str:
        noun = self._provider.labels.review_request
        repository = ctx.repository
        if repository is None:
            return "restore"

        self._progress(ctx, f"creating {noun}")
        options = self._options
        result = self._provider.create_review_request(
            repository,
            options.branch,
            ctx.default_branch,
            options.effective_review_title,
            options.review_message,
            options.review_draft,
        )
        match result:
            case Ok(review):
                ctx.outcome = Completed(committed=True, review_url=review.url)
                self._console.info(f"'{ctx.path}': {noun} created: {review.url}")
            case Err(e):
                self._console.error(f"cannot create {noun} for '{ctx.path}': {e.pretty()}")
        return "restore"

    def _restore(self, ctx: PipelineContext) -> str:
        if self._options.branch and ctx.default_branch:
            restored = ctx.git.checkout(ctx.default_branch)
            if isinstance(restored, Err):
                self._console.warning(
                    f"'{ctx.path}': cannot return to '{ctx.default_branch}': {restored.error.message}"
                )
        return DONE

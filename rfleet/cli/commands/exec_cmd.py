"""`rfleet exec`: run an action across the fleet."""

from __future__ import annotations

from pathlib import Path

import typer

from rfleet.cli.commands._helpers import ask_missing, exit_with_code
from rfleet.cli.context import CLIContext, build_context, options_of, prompt_line
from rfleet.core.errors import ErrorCode
from rfleet.core.result import Result
from rfleet.git.repository import Repository, auth_args_for
from rfleet.git.selector import RepoSelector
from rfleet.output.console import Style
from rfleet.remote.errors import RemoteError
from rfleet.remote.model import RemoteRepository
from rfleet.services.fleet import (
    ExecOptions,
    FleetPipeline,
    FleetSummary,
    diff_printer,
    run_action_script,
)
from rfleet.services.gate import GateController
from rfleet.services.repos import RepoService


def _print_summary(cli: CLIContext, summary: FleetSummary) -> None:
    cli.console.newline()
    cli.console.print(
        f"{len(summary.completed)} completed, {len(summary.skipped)} skipped, "
        f"{len(summary.failed)} failed",
        Style.BOLD,
    )
    for path in summary.failed:
        cli.console.print(f"  failed: {path}", Style.ERROR)


def exec_(
    ctx: typer.Context,
    pattern: str | None = typer.Argument(None, help="Glob over repository folder names."),
    action: str | None = typer.Argument(None, help="Script name under .rfleet/actions/."),
    params: list[str] | None = typer.Argument(None, help="Parameters passed to the action."),
    exclude: list[str] | None = typer.Option(None, "--exclude", "-e", help="Exclude folders (repeatable)."),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Confirm each step."),
    branch: str = typer.Option("", "--branch", "-b", help="Work on this branch (created or reset)."),
    commit_message: str = typer.Option("", "--commit-message", "-m", help="Commit and push changes."),
    review: bool = typer.Option(False, "--review", "-r", help="Open a review request after pushing."),
    review_title: str = typer.Option("", "--review-title", help="Defaults to the commit message."),
    review_message: str = typer.Option("", "--review-message", help="Review request description."),
    review_draft: bool = typer.Option(False, "--review-draft", help="Open the review as a draft."),
) -> None:
    """Run an action in every selected repository, then commit, push and propose a review."""
    cli = build_context(options_of(ctx))
    provider = cli.require_provider()

    pattern = ask_missing(cli, pattern, "Enter your repository filter:")
    action_given = bool(action)
    action = ask_missing(cli, action, "Enter your action name:")
    if not action_given and not params:
        params = ask_missing(cli, None, "Enter your action parameters:").split()
    if not action:
        cli.console.error("action name is required")
        exit_with_code(int(ErrorCode.USER_ERROR))
    if not cli.workspace.action_path(action).is_file():
        cli.console.error(f"action '{action}' not found in {cli.workspace.actions_dir}")
        exit_with_code(int(ErrorCode.USER_ERROR))

    if interactive and not cli.interactive:
        cli.console.warning("--non-interactive given, running without confirmations")
        interactive = False

    auth_args = auth_args_for(cli.config.git)

    def git_factory(path: Path) -> Repository:
        return Repository(path, auth_args=auth_args)

    service = RepoService(
        workspace=cli.workspace,
        git=cli.config.git,
        console=cli.console,
        provider=provider,
    )

    def clone_missing(selector: RepoSelector) -> Result[list[RemoteRepository], RemoteError]:
        return service.clone_missing(selector, verbose=False)

    gate = GateController(
        read_line=prompt_line,
        console=cli.console,
        show_diff=diff_printer(cli.workspace, git_factory, cli.console),
    )
    pipeline = FleetPipeline(
        workspace=cli.workspace,
        git_factory=git_factory,
        provider=provider,
        console=cli.console,
        gate=gate,
        run_action=run_action_script(cli.workspace),
        clone_missing=clone_missing,
    )

    summary = pipeline.run(
        ExecOptions(
            pattern=pattern,
            excludes=tuple(exclude or ()),
            action=action,
            params=tuple(params or ()),
            interactive=interactive,
            branch=branch,
            commit_message=commit_message,
            review=review,
            review_title=review_title,
            review_message=review_message,
            review_draft=review_draft,
        )
    )

    _print_summary(cli, summary)
    if summary.aborted:
        exit_with_code(int(ErrorCode.ABORTED))
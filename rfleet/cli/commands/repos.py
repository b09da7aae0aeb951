"""Workspace repository commands: list, glist, clone, up, st."""

from __future__ import annotations

import typer

from rfleet.cli.commands._helpers import exit_on_error, exit_with_code, selector_of
from rfleet.cli.context import CLIContext, build_context, options_of
from rfleet.core.errors import ErrorCode
from rfleet.git.multi import get_summary
from rfleet.services.repos import RepoService

_GLOB_HELP = "Glob over repository folder names, e.g. 'svc-*' or '{api,web}-*'."
_EXCLUDE_HELP = "Exclude folders matching this glob (repeatable)."


def _service(ctx: CLIContext) -> RepoService:
    return RepoService(
        workspace=ctx.workspace,
        git=ctx.config.git,
        console=ctx.console,
        provider=ctx.provider,
    )


def list_local(
    ctx: typer.Context,
    pattern: str | None = typer.Argument(None, help=_GLOB_HELP),
    exclude: list[str] | None = typer.Option(None, "--exclude", "-e", help=_EXCLUDE_HELP),
) -> None:
    """List local repositories."""
    cli = build_context(options_of(ctx), with_provider=False)
    paths = _service(cli).list_local(selector_of(pattern, exclude))
    if not paths:
        cli.console.warning("no local repository found")
        return
    for path in paths:
        cli.console.item(path)


def list_remote(
    ctx: typer.Context,
    pattern: str | None = typer.Argument(None, help=_GLOB_HELP),
    exclude: list[str] | None = typer.Option(None, "--exclude", "-e", help=_EXCLUDE_HELP),
) -> None:
    """List remote repositories of the configured groups."""
    cli = build_context(options_of(ctx))
    result = _service(cli).list_remote(selector_of(pattern, exclude))
    exit_on_error(result, cli)
    repos = result.unwrap()

    if not repos:
        cli.console.warning(f"no {cli.require_provider().labels.repositories} found")
        return
    for repo in repos:
        line = repo.name_with_namespace
        if description := repo.one_line_description():
            line = f"{line} ({description})"
        cli.console.item(line)


def clone(
    ctx: typer.Context,
    pattern: str | None = typer.Argument(None, help=_GLOB_HELP),
    exclude: list[str] | None = typer.Option(None, "--exclude", "-e", help=_EXCLUDE_HELP),
) -> None:
    """Clone selected remote repositories missing from the workspace."""
    cli = build_context(options_of(ctx))
    result = _service(cli).clone_missing(selector_of(pattern, exclude))
    exit_on_error(result, cli)


def up(
    ctx: typer.Context,
    pattern: str | None = typer.Argument(None, help=_GLOB_HELP),
    exclude: list[str] | None = typer.Option(None, "--exclude", "-e", help=_EXCLUDE_HELP),
    stash: bool = typer.Option(False, "--stash", "-s", help="Pass --autostash to git pull."),
) -> None:
    """Pull with rebase every selected local repository."""
    cli = build_context(options_of(ctx), with_provider=False)
    results = _service(cli).update(selector_of(pattern, exclude), autostash=stash)

    failed = [r for r in results if not r.ok]
    if failed:
        cli.console.error(f"{len(failed)} of {len(results)} repositories could not be updated")
        exit_with_code(int(ErrorCode.ACTION_ERROR))


def status(
    ctx: typer.Context,
    pattern: str | None = typer.Argument(None, help=_GLOB_HELP),
    exclude: list[str] | None = typer.Option(None, "--exclude", "-e", help=_EXCLUDE_HELP),
) -> None:
    """Show the status of every selected local repository."""
    cli = build_context(options_of(ctx), with_provider=False)
    statuses = _service(cli).status(selector_of(pattern, exclude))

    summary = get_summary(statuses)
    cli.console.info(
        f"{summary['total']} repositories: {summary['clean']} clean, "
        f"{summary['dirty']} dirty, {summary['unsynced']} not in sync"
    )

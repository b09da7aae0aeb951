"""Remote administration commands: groups, group-add, add, init."""

from __future__ import annotations

import typer

from rfleet.cli.commands._helpers import ask_missing, exit_on_error, exit_with_code
from rfleet.cli.context import CLIContext, build_context, options_of
from rfleet.core.errors import ErrorCode
from rfleet.services.initializr import EMPTY_PROJECT_TYPE, Initializr, StarterRequest
from rfleet.services.repos import RepoService


def _service(cli: CLIContext) -> RepoService:
    return RepoService(
        workspace=cli.workspace,
        git=cli.config.git,
        console=cli.console,
        provider=cli.provider,
    )


def _initializr(cli: CLIContext) -> Initializr:
    return Initializr(cli.http, cli.config.initializr.url, cli.console)


def groups(ctx: typer.Context) -> None:
    """List the remote groups visible with the configured credentials."""
    cli = build_context(options_of(ctx))
    provider = cli.require_provider()
    result = provider.list_groups()
    exit_on_error(result, cli)

    found = result.unwrap()
    if not found:
        cli.console.warning(f"no {provider.labels.groups} found")
        return
    configured = set(cli.config.git.group_ids)
    for group in found:
        marker = " [configured]" if group.id in configured else ""
        cli.console.item(f"{group.id}  {group.name}{marker}")


def group_add(
    ctx: typer.Context,
    args: list[str] | None = typer.Argument(None, help="Positional values; missing ones are prompted for."),
) -> None:
    """Create a group (organization, group or project)."""
    cli = build_context(options_of(ctx))
    provider = cli.require_provider()
    result = provider.create_group(args or [])
    exit_on_error(result, cli)
    cli.console.success(f"{provider.labels.group} created ({result.unwrap()})")


def add(
    ctx: typer.Context,
    args: list[str] | None = typer.Argument(None, help="Positional values; missing ones are prompted for."),
    init: bool = typer.Option(False, "--init", "-i", help="Seed the new repository with a project starter."),
    project_type: str | None = typer.Option(None, "--type", "-t", help="Starter project type."),
    name: str | None = typer.Option(None, "--name", "-n", help="Starter project name."),
    dependencies: str | None = typer.Option(
        None, "--dependencies", "-d", help="Starter dependencies (comma separated)."
    ),
) -> None:
    """Create a repository in one of the configured groups, optionally seeded with a starter."""
    cli = build_context(options_of(ctx))
    provider = cli.require_provider()
    result = provider.create_repository(args or [])
    exit_on_error(result, cli)
    repo_id = result.unwrap()
    cli.console.success(f"{provider.labels.repository} created ({repo_id})")

    if not init and not project_type:
        return
    project_type = ask_missing(cli, project_type, "Enter your project starter type (empty|maven-project|...):")
    if not project_type or project_type == EMPTY_PROJECT_TYPE:
        return
    name = ask_missing(cli, name, "Enter your project starter name:")
    if not name:
        cli.console.error("name is required to initialize a repository")
        exit_with_code(int(ErrorCode.USER_ERROR))
    dependencies = ask_missing(cli, dependencies, "Enter your project dependencies (comma separated):")

    request = StarterRequest.parse(project_type, name, dependencies)
    initialized = _service(cli).init_created_repository(repo_id, request, _initializr(cli))
    exit_on_error(initialized, cli)


def init(
    ctx: typer.Context,
    path: str | None = typer.Argument(None, help="Local repository folder."),
    project_type: str | None = typer.Argument(None, help="Starter project type."),
    name: str | None = typer.Argument(None, help="Starter project name."),
    dependencies: str | None = typer.Argument(None, help="Starter dependencies (comma separated)."),
) -> None:
    """Seed an existing local repository with a project starter, commit and push it."""
    cli = build_context(options_of(ctx), with_provider=False)

    path = ask_missing(cli, path, "Enter your repository folder:")
    project_type = ask_missing(cli, project_type, "Enter your project starter type:")
    name = ask_missing(cli, name, "Enter your project starter name:")
    dependencies = ask_missing(cli, dependencies, "Enter your project dependencies (comma separated):")
    if not path or not project_type or not name:
        cli.console.error("repository folder, starter type and name are required")
        exit_with_code(int(ErrorCode.USER_ERROR))

    request = StarterRequest.parse(project_type, name, dependencies)
    result = _service(cli).init_repository(path, request, _initializr(cli))
    exit_on_error(result, cli)

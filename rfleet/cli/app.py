from __future__ import annotations

import os
import sys
from pathlib import Path

import click
import typer

from rfleet import __version__
from rfleet.cli.commands.exec_cmd import exec_
from rfleet.cli.commands.remote import add, group_add, groups, init
from rfleet.cli.commands.repos import clone, list_local, list_remote, status, up
from rfleet.cli.context import GlobalOptions
from rfleet.core.errors import ErrorCode
from rfleet.core.workspace import STATE_DIR_NAME, WORKSPACE_ENV_VAR, is_workspace_root

# Shell convention for a process stopped by SIGINT.
INTERRUPTED_EXIT_CODE = 130


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Administer a fleet of git repositories across a hosting provider.",
)


# Local repositories
app.command("list")(list_local)
app.command("up")(up)
app.command("st")(status)

# Remote repositories
app.command("glist")(list_remote)
app.command("clone")(clone)
app.command("groups")(groups)
app.command("group-add")(group_add)
app.command("add")(add)
app.command("init")(init)

# Fleet automation
app.command("exec")(exec_)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    workspace: Path | None = typer.Option(
        None,
        "--workspace",
        help="Workspace root (overrides auto detection)",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results, warnings and errors."),
    non_interactive: bool = typer.Option(
        False,
        "--non-interactive",
        help="Never prompt; missing values are treated as empty.",
    ),
) -> None:
    if workspace is not None:
        try:
            root = workspace.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --workspace: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir() or not is_workspace_root(root):
            typer.echo(
                f"error: --workspace '{root}' is not a valid workspace (missing {STATE_DIR_NAME}/)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[WORKSPACE_ENV_VAR] = str(root)

    ctx.obj = GlobalOptions(quiet=quiet, non_interactive=non_interactive)


def main() -> None:
    try:
        code = app(standalone_mode=False)
    except click.exceptions.Abort:
        typer.echo("interrupted", err=True)
        sys.exit(INTERRUPTED_EXIT_CODE)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    sys.exit(code if isinstance(code, int) else 0)

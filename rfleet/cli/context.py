from __future__ import annotations

from dataclasses import dataclass

import typer

from rfleet.core.config import Config, load_config
from rfleet.core.errors import ErrorCode
from rfleet.core.result import Err
from rfleet.core.workspace import Workspace, detect_workspace
from rfleet.output.console import ConsoleProtocol, RichConsole, Style
from rfleet.remote.base import Ask, Provider
from rfleet.remote.http import HttpClient, RealHttpClient
from rfleet.remote.registry import resolve_provider


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    quiet: bool = False
    non_interactive: bool = False


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace: Workspace
    config: Config
    console: ConsoleProtocol
    interactive: bool
    http: HttpClient
    provider: Provider | None = None

    def require_provider(self) -> Provider:
        if self.provider is None:
            raise RuntimeError("command built its context without a provider")
        return self.provider


def prompt_line(prompt: str) -> str:
    """Read one line from the operator; end of input raises EOFError."""
    try:
        return typer.prompt(prompt, default="", show_default=False, prompt_suffix=" ")
    except typer.Abort as e:
        raise EOFError from e


def _no_prompt(prompt: str) -> str:
    return ""


def _prompt_or_empty(prompt: str) -> str:
    try:
        return prompt_line(prompt)
    except EOFError:
        return ""


def options_of(ctx: typer.Context) -> GlobalOptions:
    obj = ctx.find_root().obj
    return obj if isinstance(obj, GlobalOptions) else GlobalOptions()


def build_context(options: GlobalOptions | None = None, *, with_provider: bool = True) -> CLIContext:
    options = options or GlobalOptions()
    console = RichConsole(quiet=options.quiet)

    workspace_result = detect_workspace()
    if isinstance(workspace_result, Err):
        console.error(workspace_result.error.message)
        console.print("hint: run from a directory containing .rfleet/ or pass --workspace", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    workspace = workspace_result.value

    config = Config()
    if workspace.config_path.exists():
        config_result = load_config(workspace.config_path)
        if isinstance(config_result, Err):
            console.error(config_result.error.message)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        config = config_result.value
    config = config.with_env_token()

    # Piped input still answers prompts; only --non-interactive disables them.
    interactive = not options.non_interactive
    ask: Ask = _prompt_or_empty if interactive else _no_prompt

    http = RealHttpClient()
    provider: Provider | None = None
    if with_provider:
        provider_result = resolve_provider(config.git, http, ask, console=console)
        if isinstance(provider_result, Err):
            error = provider_result.error
            console.error(error.message)
            if error.hint:
                console.print(f"hint: {error.hint}", Style.DIM)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        provider = provider_result.value

    return CLIContext(
        workspace=workspace,
        config=config,
        console=console,
        interactive=interactive,
        http=http,
        provider=provider,
    )

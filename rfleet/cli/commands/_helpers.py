"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from rfleet.cli.context import CLIContext, prompt_line
from rfleet.core.errors import ErrorCode
from rfleet.core.result import Err, Result
from rfleet.git.selector import RepoSelector
from rfleet.output.console import Style
from rfleet.remote.errors import RemoteError

_REMOTE_ERROR_CODES: dict[str, ErrorCode] = {
    "network": ErrorCode.NETWORK_ERROR,
    "invalid_response": ErrorCode.NETWORK_ERROR,
    "auth_failure": ErrorCode.ENV_ERROR,
    "invalid_provider": ErrorCode.ENV_ERROR,
    "missing_parameter": ErrorCode.USER_ERROR,
    "unsupported": ErrorCode.USER_ERROR,
}


def remote_error_code(error: RemoteError) -> ErrorCode:
    return _REMOTE_ERROR_CODES.get(error.kind, ErrorCode.ENV_ERROR)


def exit_on_error[T, E](
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.ACTION_ERROR,
) -> None:
    """Exit with error if result is Err, otherwise return.

    RemoteError values pick their own exit code. Other errors are expected
    to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        if isinstance(error, RemoteError):
            error_code = remote_error_code(error)
        raise typer.Exit(code=int(error_code))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)


def selector_of(pattern: str | None, exclude: list[str] | None) -> RepoSelector:
    return RepoSelector(pattern or "", tuple(exclude or ()))


def ask_missing(ctx: CLIContext, value: str | None, prompt: str) -> str:
    """Value if given, else prompted for; empty when not interactive or at end of input."""
    if value:
        return value
    if not ctx.interactive:
        return ""
    try:
        return prompt_line(prompt).strip()
    except EOFError:
        return ""

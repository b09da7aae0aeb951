"""Error types for provider operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rfleet.remote.http import HttpError

__all__ = ["RemoteError", "RemoteErrorKind", "from_http_error"]

RemoteErrorKind = Literal[
    "network",
    "auth_failure",
    "invalid_response",
    "missing_parameter",
    "unsupported",
    "invalid_provider",
]

_AUTH_STATUSES = frozenset({401, 403})


@dataclass(frozen=True, slots=True)
class RemoteError:
    """Error from a provider call.

    Attributes:
        kind: Category, drives exit codes and retry decisions
        message: One-line description
        hint: Optional follow-up for the operator
    """

    kind: RemoteErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def from_http_error(error: HttpError, context: str) -> RemoteError:
    """Map a transport error to a RemoteError."""
    if error.status in _AUTH_STATUSES:
        return RemoteError(
            kind="auth_failure",
            message=f"{context}: {error}",
            hint="Check the token (RFLEET_TOKEN or [git].token)",
        )
    return RemoteError(kind="network", message=f"{context}: {error}")

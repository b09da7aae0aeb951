"""Authorization decorators for provider requests.

An Authorizer adds credentials to the headers of each request. Providers
receive one at construction time and never read tokens themselves.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from rfleet.core.config import GitConfig
from rfleet.core.result import Err, Ok, Result
from rfleet.platform.process import run as run_process
from rfleet.remote.errors import RemoteError

__all__ = [
    "AZURE_DEVOPS_RESOURCE",
    "Authorizer",
    "AzureCliAuth",
    "BasicAuth",
    "NoAuth",
    "TokenHeader",
    "build_authorizer",
]

# Well-known application id of Azure DevOps, used as the token audience.
AZURE_DEVOPS_RESOURCE = "499b84ac-1321-427f-aa17-267ca6975798"

_AZ_TIMEOUT_SECONDS = 60.0


class Authorizer(Protocol):
    def apply(self, headers: dict[str, str]) -> Result[None, RemoteError]:
        """Add credentials to headers in place."""
        ...


class NoAuth:
    def apply(self, headers: dict[str, str]) -> Result[None, RemoteError]:
        return Ok(None)


class TokenHeader:
    """Static header, e.g. `Authorization: token <pat>` or `PRIVATE-TOKEN: <pat>`."""

    def __init__(self, name: str, value: str) -> None:
        self._name = name
        self._value = value

    def apply(self, headers: dict[str, str]) -> Result[None, RemoteError]:
        headers[self._name] = self._value
        return Ok(None)


class BasicAuth:
    """HTTP basic auth; Azure DevOps takes an empty user and the PAT."""

    def __init__(self, username: str, password: str) -> None:
        raw = f"{username}:{password}".encode()
        self._value = "Basic " + base64.b64encode(raw).decode("ascii")

    def apply(self, headers: dict[str, str]) -> Result[None, RemoteError]:
        headers["Authorization"] = self._value
        return Ok(None)


def _az_cli_token() -> Result[str, RemoteError]:
    result = run_process(
        [
            "az",
            "account",
            "get-access-token",
            "--resource",
            AZURE_DEVOPS_RESOURCE,
            "--query",
            "accessToken",
            "-o",
            "tsv",
        ],
        cwd=Path.cwd(),
        timeout=_AZ_TIMEOUT_SECONDS,
    )
    if isinstance(result, Err):
        return Err(
            RemoteError(
                kind="auth_failure",
                message=f"Cannot retrieve authentication token via Azure CLI ({result.error})",
                hint="Run: az login",
            )
        )
    token = result.value.strip()
    if not token:
        return Err(RemoteError(kind="auth_failure", message="Azure CLI returned an empty token"))
    return Ok(token)


class AzureCliAuth:
    """Bearer token delegated to the Azure CLI.

    The token is fetched on first use and cached for the lifetime of this
    object (one per process).
    """

    def __init__(self, fetch_token: Callable[[], Result[str, RemoteError]] = _az_cli_token) -> None:
        self._fetch_token = fetch_token
        self._token: str | None = None

    def apply(self, headers: dict[str, str]) -> Result[None, RemoteError]:
        if self._token is None:
            fetched = self._fetch_token()
            if isinstance(fetched, Err):
                return fetched
            self._token = fetched.value
        headers["Authorization"] = f"Bearer {self._token}"
        return Ok(None)


def build_authorizer(git: GitConfig) -> Result[Authorizer, RemoteError]:
    """Authorizer for the configured provider and auth mode.

    Without a token, requests are sent anonymously.
    """
    match git.provider.strip().lower():
        case "azure":
            if git.auth_mode == "az-cli":
                return Ok(AzureCliAuth())
            return Ok(BasicAuth("", git.token) if git.token else NoAuth())
        case "github":
            return Ok(TokenHeader("Authorization", f"token {git.token}") if git.token else NoAuth())
        case "gitlab":
            return Ok(TokenHeader("PRIVATE-TOKEN", git.token) if git.token else NoAuth())
        case _:
            return Err(
                RemoteError(
                    kind="invalid_provider",
                    message=f"unknown provider '{git.provider}'",
                    hint="Set [git].provider to github, gitlab or azure",
                )
            )

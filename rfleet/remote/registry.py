"""Provider resolution from configuration."""

from __future__ import annotations

from collections.abc import Callable

from rfleet.core.config import GitConfig
from rfleet.core.result import Err, Ok, Result
from rfleet.output.console import ConsoleProtocol
from rfleet.remote.auth import Authorizer, build_authorizer
from rfleet.remote.azure import AzureDevOpsProvider
from rfleet.remote.base import Ask, Provider, RestProvider
from rfleet.remote.errors import RemoteError
from rfleet.remote.github import GitHubProvider
from rfleet.remote.gitlab import GitLabProvider
from rfleet.remote.http import HttpClient

__all__ = ["PROVIDERS", "resolve_provider"]

PROVIDERS: dict[str, type[RestProvider]] = {
    "github": GitHubProvider,
    "gitlab": GitLabProvider,
    "azure": AzureDevOpsProvider,
}


def resolve_provider(
    git: GitConfig,
    http: HttpClient,
    ask: Ask,
    *,
    console: ConsoleProtocol,
    authorizer: Authorizer | None = None,
    sleep: Callable[[float], None] | None = None,
) -> Result[Provider, RemoteError]:
    """Build the provider named by `git.provider` (case-insensitive).

    Returns:
        Err with kind invalid_provider for an unknown or missing provider
    """
    provider_id = git.provider.strip().lower()
    provider_cls = PROVIDERS.get(provider_id)
    if provider_cls is None:
        shown = provider_id or "(none)"
        return Err(
            RemoteError(
                kind="invalid_provider",
                message=f"unknown provider '{shown}'",
                hint=f"Set [git].provider to one of: {', '.join(PROVIDERS)}",
            )
        )
    if not git.base_url:
        return Err(
            RemoteError(
                kind="missing_parameter",
                message="[git].base_url is not configured",
            )
        )

    if authorizer is None:
        built = build_authorizer(git)
        if isinstance(built, Err):
            return built
        authorizer = built.value

    if sleep is None:
        return Ok(provider_cls(git, http, authorizer, console=console, ask=ask))
    return Ok(provider_cls(git, http, authorizer, console=console, ask=ask, sleep=sleep))

"""Typed configuration loading and access.

The workspace config lives at `.rfleet/config.toml`:

    [git]
    provider = "github"
    base_url = "https://api.github.com"
    group_ids = ["my-org"]
    clone_protocol = "ssh"

    [initializr]
    url = "https://start.spring.io"
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_str_list, get_table

__all__ = [
    "AuthMode",
    "CloneProtocol",
    "Config",
    "ConfigError",
    "DEFAULT_INITIALIZR_URL",
    "GitConfig",
    "InitializrConfig",
    "TOKEN_ENV_VAR",
    "load_config",
]

TOKEN_ENV_VAR = "RFLEET_TOKEN"
DEFAULT_INITIALIZR_URL = "https://start.spring.io"

CloneProtocol = Literal["ssh", "https"]
AuthMode = Literal["pat", "az-cli"]

_CLONE_PROTOCOLS: tuple[CloneProtocol, ...] = ("ssh", "https")
_AUTH_MODES: tuple[AuthMode, ...] = ("pat", "az-cli")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class GitConfig:
    """Hosting provider and clone settings.

    Attributes:
        provider: Provider id (github, gitlab, azure)
        base_url: Provider base URL
        group_ids: Remote groups (orgs/groups/projects) mirrored in the workspace
        clone_protocol: Which remote URL to clone with
        use_token_for_operation: Inject the token into https git operations
        auth_mode: How provider API calls are authorized
        include_archived: Keep archived repositories in listings
        normalize_names: Lower-case and dash repository folder names
        token: Personal access token (empty when delegated)
    """

    provider: str = ""
    base_url: str = ""
    group_ids: tuple[str, ...] = ()
    clone_protocol: CloneProtocol = "ssh"
    use_token_for_operation: bool = False
    auth_mode: AuthMode = "pat"
    include_archived: bool = False
    normalize_names: bool = False
    token: str = field(default="", repr=False)


@dataclass(frozen=True, slots=True)
class InitializrConfig:
    """Project starter service used to seed new repositories."""

    url: str = DEFAULT_INITIALIZR_URL


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    git: GitConfig = field(default_factory=GitConfig)
    initializr: InitializrConfig = field(default_factory=InitializrConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On values outside the accepted sets.
        """
        git: StrDict = get_table(data, "git") or {}
        initializr: StrDict = get_table(data, "initializr") or {}

        clone_protocol = (get_str(git, "clone_protocol") or "ssh").lower()
        if clone_protocol not in _CLONE_PROTOCOLS:
            raise ValueError(f"invalid clone_protocol '{clone_protocol}' (expected ssh or https)")

        auth_mode = (get_str(git, "auth_mode") or "pat").lower()
        if auth_mode not in _AUTH_MODES:
            raise ValueError(f"invalid auth_mode '{auth_mode}' (expected pat or az-cli)")

        return cls(
            git=GitConfig(
                provider=(get_str(git, "provider") or "").lower(),
                base_url=(get_str(git, "base_url") or "").rstrip("/"),
                group_ids=tuple(get_str_list(git, "group_ids")),
                clone_protocol=clone_protocol,  # type: ignore[arg-type]
                use_token_for_operation=get_bool(git, "use_token_for_operation"),
                auth_mode=auth_mode,  # type: ignore[arg-type]
                include_archived=get_bool(git, "include_archived"),
                normalize_names=get_bool(git, "normalize_names"),
                token=get_str(git, "token") or "",
            ),
            initializr=InitializrConfig(
                url=(get_str(initializr, "url") or DEFAULT_INITIALIZR_URL).rstrip("/"),
            ),
        )

    def with_env_token(self, environ: Mapping[str, str] | None = None) -> Config:
        """Return a copy whose token is taken from RFLEET_TOKEN when set."""
        env = os.environ if environ is None else environ
        token = env.get(TOKEN_ENV_VAR, "").strip()
        if not token:
            return self
        return replace(self, git=replace(self.git, token=token))


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to config.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))

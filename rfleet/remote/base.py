"""Provider capability and the shared REST plumbing behind it.

Every hosting provider exposes the same six operations. The pipeline and
the CLI only ever talk to the `Provider` protocol; nothing outside
`rfleet.remote` branches on which provider is configured.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Protocol

from rfleet.core.config import GitConfig
from rfleet.core.result import Err, Ok, Result
from rfleet.core.structured import ObjList, StrDict, as_obj_list, as_str_dict
from rfleet.output.console import ConsoleProtocol
from rfleet.remote.auth import Authorizer
from rfleet.remote.errors import RemoteError, from_http_error
from rfleet.remote.http import HttpClient, HttpResponse
from rfleet.remote.model import Group, Labels, RemoteRepository, ReviewRequest

__all__ = [
    "RETRY_ATTEMPTS",
    "ArgReader",
    "Ask",
    "Provider",
    "RestProvider",
]

RETRY_ATTEMPTS = 3
RETRY_BACKOFF_SECONDS = 1.0

Ask = Callable[[str], str]


class Provider(Protocol):
    """A hosting provider (GitHub, GitLab, Azure DevOps)."""

    @property
    def labels(self) -> Labels: ...

    def list_groups(self) -> Result[list[Group], RemoteError]: ...

    def list_repositories(self) -> Result[list[RemoteRepository], RemoteError]:
        """Repositories of the configured groups, sorted by name_with_namespace."""
        ...

    def create_group(self, args: Sequence[str]) -> Result[str, RemoteError]: ...

    def create_repository(self, args: Sequence[str]) -> Result[str, RemoteError]: ...

    def create_review_request(
        self,
        repository: RemoteRepository,
        from_branch: str,
        into_branch: str,
        title: str,
        message: str,
        draft: bool,
    ) -> Result[ReviewRequest, RemoteError]: ...


class ArgReader:
    """Creation parameters: positional arguments first, prompts for the rest."""

    def __init__(self, args: Sequence[str], ask: Ask) -> None:
        self._args = [a.strip() for a in args]
        self._ask = ask

    def arg(self, index: int) -> str:
        return self._args[index] if index < len(self._args) else ""

    def value(self, index: int, prompt: str) -> str:
        given = self.arg(index)
        if given:
            return given
        return self._ask(prompt).strip()

    def choice(self, index: int, prompt: str, options: Sequence[str], default: str = "") -> str | None:
        """A value among options; empty input gives default, None if not an option."""
        picked = self.value(index, f"{prompt} ({'/'.join(options)})") or default
        if picked and picked not in options:
            return None
        return picked


def missing(message: str) -> Err[RemoteError]:
    return Err(RemoteError(kind="missing_parameter", message=message))


def unexpected(context: str) -> Err[RemoteError]:
    return Err(RemoteError(kind="invalid_response", message=f"{context}: unexpected response shape"))


class RestProvider(ABC):
    """Shared request, pagination and listing logic for REST providers.

    Subclasses must define:
    - labels: provider vocabulary
    - list_groups(), _list_group(): listing of all and of one group
    - create_group(), create_repository(), create_review_request()

    `api_url` defaults to the configured base_url.
    """

    labels: Labels

    def __init__(
        self,
        git: GitConfig,
        http: HttpClient,
        authorizer: Authorizer,
        *,
        console: ConsoleProtocol,
        ask: Ask,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._git = git
        self._http = http
        self._authorizer = authorizer
        self._console = console
        self._ask = ask
        self._sleep = sleep

    @property
    def api_url(self) -> str:
        return self._git.base_url

    # -- listing --------------------------------------------------------------

    def list_repositories(self) -> Result[list[RemoteRepository], RemoteError]:
        repos: list[RemoteRepository] = []
        failures: list[RemoteError] = []

        for group_id in self._git.group_ids:
            listed, error = self._list_group(group_id)
            repos.extend(listed)
            if error is not None:
                failures.append(error)
                self._console.warning(
                    f"cannot list {self.labels.repositories} of {self.labels.group} "
                    f"'{group_id}': {error.message}"
                )

        if failures and len(failures) == len(self._git.group_ids):
            return Err(failures[0])
        return Ok(self._finalize(repos))

    @abstractmethod
    def list_groups(self) -> Result[list[Group], RemoteError]: ...

    @abstractmethod
    def _list_group(self, group_id: str) -> tuple[list[RemoteRepository], RemoteError | None]:
        """Repositories of one configured group, plus the error that stopped listing."""
        ...

    def _finalize(self, repos: list[RemoteRepository]) -> list[RemoteRepository]:
        """Drop archived, sort, keep the first repository per local path."""
        if not self._git.include_archived:
            repos = [r for r in repos if not r.archived]

        seen: dict[str, RemoteRepository] = {}
        for repo in sorted(repos, key=lambda r: r.name_with_namespace):
            kept = seen.get(repo.path)
            if kept is not None:
                self._console.warning(
                    f"'{repo.name_with_namespace}' and '{kept.name_with_namespace}' "
                    f"share the folder '{repo.path}', keeping the first"
                )
                continue
            seen[repo.path] = repo
        return list(seen.values())

    def _paginate(
        self,
        path_for_page: Callable[[int], str],
        next_page: Callable[[HttpResponse], int | None],
        context: str,
    ) -> tuple[list[StrDict], RemoteError | None]:
        """Collect JSON array pages until next_page returns nothing.

        Items gathered before a failing page are returned with the error.
        """
        items: list[StrDict] = []
        page = 1
        while True:
            attempts = 1 if page == 1 else RETRY_ATTEMPTS
            sent = self._send("GET", path_for_page(page), context=context, attempts=attempts)
            if isinstance(sent, Err):
                return items, sent.error

            parsed = self._decode_list(sent.value, context)
            if isinstance(parsed, Err):
                return items, parsed.error
            items.extend(parsed.value)

            following = next_page(sent.value)
            if following is None or following <= page:
                return items, None
            page = following

    # -- requests -------------------------------------------------------------

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.api_url}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        path: str,
        body: object | None = None,
        *,
        context: str,
        attempts: int = 1,
    ) -> Result[HttpResponse, RemoteError]:
        """Authorized request; transient failures are retried up to attempts."""
        headers: dict[str, str] = {}
        authorized = self._authorizer.apply(headers)
        if isinstance(authorized, Err):
            return authorized

        url = self._url(path)
        attempt = 1
        while True:
            result = self._http.request(method, url, headers=headers, json_body=body)
            if isinstance(result, Ok):
                return result

            error = result.error
            if not error.is_transient or attempt >= attempts:
                return Err(from_http_error(error, context))
            self._sleep(RETRY_BACKOFF_SECONDS * attempt)
            attempt += 1

    def _send_json(
        self,
        method: str,
        path: str,
        body: object | None = None,
        *,
        context: str,
    ) -> Result[object, RemoteError]:
        sent = self._send(method, path, body, context=context)
        if isinstance(sent, Err):
            return sent
        parsed = sent.value.json()
        if isinstance(parsed, Err):
            return Err(RemoteError(kind="invalid_response", message=f"{context}: {parsed.error.message}"))
        return Ok(parsed.value)

    def _send_object(
        self,
        method: str,
        path: str,
        body: object | None = None,
        *,
        context: str,
    ) -> Result[StrDict, RemoteError]:
        result = self._send_json(method, path, body, context=context)
        if isinstance(result, Err):
            return result
        data = as_str_dict(result.value)
        if data is None:
            return unexpected(context)
        return Ok(data)

    def _get_list(self, path: str, *, context: str) -> Result[list[StrDict], RemoteError]:
        sent = self._send("GET", path, context=context)
        if isinstance(sent, Err):
            return sent
        return self._decode_list(sent.value, context)

    def _decode_list(self, response: HttpResponse, context: str) -> Result[list[StrDict], RemoteError]:
        parsed = response.json()
        if isinstance(parsed, Err):
            return Err(RemoteError(kind="invalid_response", message=f"{context}: {parsed.error.message}"))
        raw = as_obj_list(parsed.value)
        if raw is None:
            return unexpected(context)
        return Ok(_dicts(raw))

    # -- creation -------------------------------------------------------------

    @abstractmethod
    def create_group(self, args: Sequence[str]) -> Result[str, RemoteError]: ...

    @abstractmethod
    def create_repository(self, args: Sequence[str]) -> Result[str, RemoteError]: ...

    @abstractmethod
    def create_review_request(
        self,
        repository: RemoteRepository,
        from_branch: str,
        into_branch: str,
        title: str,
        message: str,
        draft: bool,
    ) -> Result[ReviewRequest, RemoteError]: ...

    # -- creation helpers -----------------------------------------------------

    def _pick_group(self, reader: ArgReader) -> tuple[str, int]:
        """Target group among the configured ones and the next argument index.

        With several configured groups the first argument names the group.
        """
        groups = list(self._git.group_ids)
        if not groups:
            return "", 0
        if len(groups) == 1:
            return groups[0], 0
        picked = reader.choice(0, f"Select your {self.labels.group}", groups)
        return picked or "", 1


def _dicts(items: ObjList) -> list[StrDict]:
    return [d for d in (as_str_dict(i) for i in items) if d is not None]

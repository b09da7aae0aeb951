"""GitHub and GitHub Enterprise provider."""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import parse_qs, urlparse

from rfleet.core.result import Err, Ok, Result
from rfleet.core.structured import StrDict, get_bool, get_id, get_str
from rfleet.remote.base import ArgReader, RestProvider, missing
from rfleet.remote.errors import RemoteError
from rfleet.remote.http import HttpResponse
from rfleet.remote.model import Group, Labels, RemoteRepository, ReviewRequest, normalize_name

__all__ = ["PERSONAL_GROUP", "GitHubProvider", "next_page_from_link"]

# Lists the authenticated user's own repositories.
PERSONAL_GROUP = Group(id="~", name="Personal")

_VISIBILITIES = ("public", "private")

GITHUB_LABELS = Labels(
    group="organization",
    groups="organizations",
    repository="repository",
    repositories="repositories",
    review_request="pull request",
    create_group_usage="login admin [description]",
    create_repository_usage="[organization] name [description] [visibility]",
)


def next_page_from_link(link: str | None) -> int | None:
    """Page number of the `rel="next"` entry of a Link header."""
    if not link:
        return None
    for entry in link.split(","):
        segments = [s.strip() for s in entry.split(";")]
        if len(segments) < 2:
            continue
        target = segments[0]
        if not (target.startswith("<") and target.endswith(">")):
            continue
        if 'rel="next"' not in segments[1:]:
            continue
        pages = parse_qs(urlparse(target[1:-1]).query).get("page")
        if pages and pages[0].isdigit():
            return int(pages[0])
    return None


class GitHubProvider(RestProvider):
    labels = GITHUB_LABELS

    @property
    def api_url(self) -> str:
        base = self._git.base_url.rstrip("/")
        if "api.github.com" in base:
            return base
        return f"{base}/api/v3"

    def list_groups(self) -> Result[list[Group], RemoteError]:
        result = self._get_list("user/orgs", context="cannot list organizations")
        if isinstance(result, Err):
            return result

        groups = [
            Group(id=login, name=login)
            for login in (get_str(item, "login") for item in result.value)
            if login
        ]
        groups.append(PERSONAL_GROUP)
        return Ok(groups)

    def _list_group(self, group_id: str) -> tuple[list[RemoteRepository], RemoteError | None]:
        base = _group_base_path(group_id)
        items, error = self._paginate(
            lambda page: f"{base}/repos?type=sources&page={page}",
            _next_page,
            context=f"cannot list repositories of '{group_id}'",
        )
        return [self._to_repository(item, group_id) for item in items], error

    def create_group(self, args: Sequence[str]) -> Result[str, RemoteError]:
        reader = ArgReader(args, self._ask)
        login = reader.value(0, "Enter your organization login:")
        admin = reader.value(1, "Enter the login of the user who will manage this organization:")
        description = reader.value(2, "Enter your organization description:")

        if not login or not admin:
            return missing("organization login and admin login are required")

        created = self._send_object(
            "POST",
            "admin/organizations",
            {"login": login, "admin": admin, "profile_name": login},
            context="cannot create organization",
        )
        if isinstance(created, Err):
            return created

        if description:
            patched = self._send(
                "PATCH",
                f"orgs/{login}",
                {"description": description},
                context="cannot update organization description",
            )
            if isinstance(patched, Err):
                return patched

        return Ok(get_str(created.value, "login") or login)

    def create_repository(self, args: Sequence[str]) -> Result[str, RemoteError]:
        reader = ArgReader(args, self._ask)
        group_id, idx = self._pick_group(reader)
        name = reader.value(idx, "Enter your repository name:")
        description = reader.value(idx + 1, "Enter your repository description:")
        visibility = reader.choice(
            idx + 2,
            "Select your repository visibility (default: private)",
            _VISIBILITIES,
            default="private",
        )

        if not group_id or not name:
            return missing("repository name and organization are required")
        if visibility is None:
            return missing(f"visibility must be one of: {', '.join(_VISIBILITIES)}")

        created = self._send_object(
            "POST",
            f"{_group_base_path(group_id)}/repos",
            {"name": name, "description": description, "private": visibility != "public"},
            context="cannot create repository",
        )
        if isinstance(created, Err):
            return created
        return Ok(get_id(created.value, "id") or name)

    def create_review_request(
        self,
        repository: RemoteRepository,
        from_branch: str,
        into_branch: str,
        title: str,
        message: str,
        draft: bool,
    ) -> Result[ReviewRequest, RemoteError]:
        created = self._send_object(
            "POST",
            f"repos/{repository.name_with_namespace}/pulls",
            {
                "title": title,
                "head": from_branch,
                "base": into_branch,
                "body": message,
                "draft": draft,
            },
            context=f"cannot create pull request for '{repository.name}'",
        )
        if isinstance(created, Err):
            return created

        data = created.value
        return Ok(
            ReviewRequest(
                id=get_id(data, "number") or get_id(data, "id") or "",
                url=get_str(data, "html_url") or "",
                state=get_str(data, "state") or "",
                mergeable=_mergeable(data),
            )
        )

    def _to_repository(self, item: StrDict, group_id: str) -> RemoteRepository:
        name = get_str(item, "name") or ""
        full_name = get_str(item, "full_name") or name
        return RemoteRepository(
            id=get_id(item, "id") or "",
            name=name,
            path=normalize_name(name, self._git.normalize_names),
            name_with_namespace=full_name,
            path_with_namespace=normalize_name(full_name, self._git.normalize_names),
            description=get_str(item, "description") or "",
            ssh_url=get_str(item, "ssh_url") or "",
            http_url=get_str(item, "clone_url") or "",
            default_branch=get_str(item, "default_branch") or "",
            archived=get_bool(item, "archived"),
            group_id=group_id,
            web_url=get_str(item, "html_url") or "",
        )


def _group_base_path(group_id: str) -> str:
    if group_id == PERSONAL_GROUP.id:
        return "user"
    return f"orgs/{group_id}"


def _next_page(response: HttpResponse) -> int | None:
    return next_page_from_link(response.header("Link"))


def _mergeable(data: StrDict) -> str:
    value = data.get("mergeable")
    if isinstance(value, bool):
        return "true" if value else "false"
    return get_str(data, "mergeable_state") or ""

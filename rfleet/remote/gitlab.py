"""GitLab provider."""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote

from rfleet.core.result import Err, Ok, Result
from rfleet.core.structured import StrDict, get_bool, get_id, get_str
from rfleet.remote.base import ArgReader, RestProvider, missing
from rfleet.remote.errors import RemoteError
from rfleet.remote.http import HttpResponse
from rfleet.remote.model import Group, Labels, RemoteRepository, ReviewRequest

__all__ = ["GitLabProvider"]

_VISIBILITIES = ("private", "internal", "public")

GITLAB_LABELS = Labels(
    group="group",
    groups="groups",
    repository="project",
    repositories="projects",
    review_request="merge request",
    create_group_usage="name path [description] [visibility]",
    create_repository_usage="[group] name [description] [visibility]",
)


class GitLabProvider(RestProvider):
    labels = GITLAB_LABELS

    @property
    def api_url(self) -> str:
        return f"{self._git.base_url.rstrip('/')}/api/v4"

    def list_groups(self) -> Result[list[Group], RemoteError]:
        result = self._get_list("groups?per_page=100", context="cannot list groups")
        if isinstance(result, Err):
            return result
        return Ok(
            [
                Group(id=group_id, name=get_str(item, "name") or group_id)
                for item in result.value
                if (group_id := get_id(item, "id"))
            ]
        )

    def _list_group(self, group_id: str) -> tuple[list[RemoteRepository], RemoteError | None]:
        base = f"groups/{quote(group_id, safe='')}/projects?order_by=name&sort=asc&per_page=100"
        items, error = self._paginate(
            lambda page: f"{base}&page={page}",
            _next_page,
            context=f"cannot list projects of '{group_id}'",
        )
        return [_to_repository(item, group_id) for item in items], error

    def create_group(self, args: Sequence[str]) -> Result[str, RemoteError]:
        reader = ArgReader(args, self._ask)
        name = reader.value(0, "Enter your group name:")
        path = reader.value(1, "Enter your group path:")
        description = reader.value(2, "Enter your group description:")
        visibility = reader.choice(
            3,
            "Select your group visibility (default: private)",
            _VISIBILITIES,
            default="private",
        )

        if not name or not path:
            return missing("group name and group path are required")
        if visibility is None:
            return missing(f"visibility must be one of: {', '.join(_VISIBILITIES)}")

        created = self._send_object(
            "POST",
            "groups",
            {"name": name, "path": path, "description": description, "visibility": visibility},
            context="cannot create group",
        )
        if isinstance(created, Err):
            return created
        return Ok(get_id(created.value, "id") or path)

    def create_repository(self, args: Sequence[str]) -> Result[str, RemoteError]:
        reader = ArgReader(args, self._ask)
        group_id, idx = self._pick_group(reader)
        name = reader.value(idx, "Enter your project name:")
        description = reader.value(idx + 1, "Enter your project description:")
        visibility = reader.choice(
            idx + 2,
            "Select your project visibility (default: private)",
            _VISIBILITIES,
            default="private",
        )

        if not group_id or not name:
            return missing("project name and group are required")
        if visibility is None:
            return missing(f"visibility must be one of: {', '.join(_VISIBILITIES)}")

        created = self._send_object(
            "POST",
            "projects",
            {
                "name": name,
                "namespace_id": group_id,
                "description": description,
                "visibility": visibility,
            },
            context="cannot create project",
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
        return Err(
            RemoteError(
                kind="unsupported",
                message="merge requests are not supported for GitLab yet",
            )
        )


def _next_page(response: HttpResponse) -> int | None:
    value = (response.header("X-Next-Page") or "").strip()
    return int(value) if value.isdigit() else None


def _to_repository(item: StrDict, group_id: str) -> RemoteRepository:
    name = get_str(item, "name") or ""
    return RemoteRepository(
        id=get_id(item, "id") or "",
        name=name,
        path=get_str(item, "path") or name,
        name_with_namespace=get_str(item, "name_with_namespace") or name,
        path_with_namespace=get_str(item, "path_with_namespace") or "",
        description=get_str(item, "description") or "",
        ssh_url=get_str(item, "ssh_url_to_repo") or "",
        http_url=get_str(item, "http_url_to_repo") or "",
        default_branch=get_str(item, "default_branch") or "",
        archived=get_bool(item, "archived"),
        group_id=group_id,
        web_url=get_str(item, "web_url") or "",
    )

"""Azure DevOps provider.

Groups are Azure DevOps projects; `base_url` is the organization URL,
e.g. `https://dev.azure.com/acme`.
"""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote

from rfleet.core.result import Err, Ok, Result
from rfleet.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_bool,
    get_id,
    get_str,
    get_table,
)
from rfleet.remote.base import ArgReader, RestProvider, missing, unexpected
from rfleet.remote.errors import RemoteError
from rfleet.remote.model import Group, Labels, RemoteRepository, ReviewRequest, normalize_name

__all__ = ["AzureDevOpsProvider", "strip_ref", "to_ref"]

API_VERSION = "7.1"
_REF_PREFIX = "refs/heads/"
_VISIBILITIES = ("private", "public")

AZURE_LABELS = Labels(
    group="project",
    groups="projects",
    repository="repository",
    repositories="repositories",
    review_request="pull request",
    create_group_usage="name [description] [visibility] [process]",
    create_repository_usage="[project] name",
)


def strip_ref(ref: str) -> str:
    return ref.removeprefix(_REF_PREFIX)


def to_ref(branch: str) -> str:
    return _REF_PREFIX + strip_ref(branch)


class AzureDevOpsProvider(RestProvider):
    labels = AZURE_LABELS

    def list_groups(self) -> Result[list[Group], RemoteError]:
        result = self._get_values(f"_apis/projects?api-version={API_VERSION}", "cannot list projects")
        if isinstance(result, Err):
            return result
        return Ok(
            [
                Group(id=project_id, name=get_str(item, "name") or project_id)
                for item in result.value
                if (project_id := get_id(item, "id"))
            ]
        )

    def _list_group(self, group_id: str) -> tuple[list[RemoteRepository], RemoteError | None]:
        result = self._get_values(
            f"{quote(group_id)}/_apis/git/repositories?api-version={API_VERSION}",
            f"cannot list repositories of '{group_id}'",
        )
        if isinstance(result, Err):
            return [], result.error
        return [self._to_repository(item, group_id) for item in result.value], None

    def create_group(self, args: Sequence[str]) -> Result[str, RemoteError]:
        reader = ArgReader(args, self._ask)
        name = reader.value(0, "Enter your project name:")
        if not name:
            return missing("project name is required")
        description = reader.value(1, "Enter your project description:")
        visibility = reader.choice(
            2,
            "Select your project visibility (default: private)",
            _VISIBILITIES,
            default="private",
        )
        if visibility is None:
            return missing(f"visibility must be one of: {', '.join(_VISIBILITIES)}")

        processes = self._get_values(
            f"_apis/process/processes?api-version={API_VERSION}",
            "cannot list process templates",
        )
        if isinstance(processes, Err):
            return processes

        by_name = {get_str(p, "name") or "": get_id(p, "id") or "" for p in processes.value}
        default_id = next(
            (get_id(p, "id") or "" for p in processes.value if get_bool(p, "isDefault")),
            "",
        )
        process_name = reader.value(
            3, f"Select your project process template ({', '.join(sorted(by_name))}):"
        )
        process_id = by_name.get(process_name, "") if process_name else default_id
        if not process_id:
            return missing(f"unknown process template '{process_name}'")

        created = self._send_object(
            "POST",
            f"_apis/projects?api-version={API_VERSION}",
            {
                "name": name,
                "description": description,
                "visibility": visibility,
                "capabilities": {
                    "versioncontrol": {"sourceControlType": "Git"},
                    "processTemplate": {"templateTypeId": process_id},
                },
            },
            context="cannot create project",
        )
        if isinstance(created, Err):
            return created
        return Ok(get_id(created.value, "id") or name)

    def create_repository(self, args: Sequence[str]) -> Result[str, RemoteError]:
        reader = ArgReader(args, self._ask)
        project, idx = self._pick_group(reader)
        name = reader.value(idx, "Enter your repository name:")

        if not project or not name:
            return missing("repository name and project are required")

        created = self._send_object(
            "POST",
            f"_apis/git/repositories?api-version={API_VERSION}",
            {"name": name, "project": {"id": project}},
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
            f"{quote(repository.group_id)}/_apis/git/repositories/{repository.id}"
            f"/pullrequests?api-version={API_VERSION}",
            {
                "title": title,
                "description": message,
                "sourceRefName": to_ref(from_branch),
                "targetRefName": to_ref(into_branch),
                "isDraft": draft,
            },
            context=f"cannot create pull request for '{repository.name}'",
        )
        if isinstance(created, Err):
            return created

        data = created.value
        pr_id = get_id(data, "pullRequestId") or ""
        web_url = get_str(get_table(data, "repository") or {}, "webUrl") or repository.web_url
        return Ok(
            ReviewRequest(
                id=pr_id,
                url=f"{web_url}/pullrequest/{pr_id}",
                state=get_str(data, "status") or "",
                mergeable=get_str(data, "mergeStatus") or "",
            )
        )

    def _get_values(self, path: str, context: str) -> Result[list[StrDict], RemoteError]:
        """Azure lists wrap their items in a `value` array."""
        result = self._send_object("GET", path, context=context)
        if isinstance(result, Err):
            return result
        values = as_obj_list(result.value.get("value"))
        if values is None:
            return unexpected(context)
        return Ok([d for d in (as_str_dict(v) for v in values) if d is not None])

    def _to_repository(self, item: StrDict, group_id: str) -> RemoteRepository:
        name = get_str(item, "name") or ""
        project = get_str(get_table(item, "project") or {}, "name") or group_id
        normalize = self._git.normalize_names
        return RemoteRepository(
            id=get_id(item, "id") or "",
            name=name,
            path=normalize_name(name, normalize),
            name_with_namespace=f"{project} / {name}",
            path_with_namespace=f"{normalize_name(project, normalize)}/{normalize_name(name, normalize)}",
            description="",
            ssh_url=get_str(item, "sshUrl") or "",
            http_url=get_str(item, "remoteUrl") or "",
            default_branch=strip_ref(get_str(item, "defaultBranch") or ""),
            archived=get_bool(item, "isDisabled"),
            group_id=group_id,
            web_url=get_str(item, "webUrl") or "",
        )

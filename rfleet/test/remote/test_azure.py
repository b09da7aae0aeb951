"""Tests for remote/azure.py."""

from __future__ import annotations

from rfleet.core.config import GitConfig
from rfleet.core.result import Err, Ok
from rfleet.output.console import MockConsole
from rfleet.remote.auth import NoAuth
from rfleet.remote.azure import AzureDevOpsProvider, strip_ref, to_ref
from rfleet.remote.http import MockHttpClient
from rfleet.remote.model import Group, RemoteRepository

ORG = "https://dev.azure.com/acme"


def _provider(
    http: MockHttpClient,
    *group_ids: str,
    answers: list[str] | None = None,
    include_archived: bool = False,
) -> AzureDevOpsProvider:
    pending = list(answers or [])
    git = GitConfig(
        provider="azure",
        base_url=ORG,
        group_ids=group_ids or ("Platform",),
        include_archived=include_archived,
    )
    return AzureDevOpsProvider(
        git,
        http,
        NoAuth(),
        console=MockConsole(),
        ask=lambda _prompt: pending.pop(0) if pending else "",
        sleep=lambda _seconds: None,
    )


def _repo_json(name: str, **extra: object) -> dict[str, object]:
    data: dict[str, object] = {
        "id": f"id-{name}",
        "name": name,
        "project": {"id": "p1", "name": "Platform"},
        "defaultBranch": "refs/heads/main",
        "sshUrl": f"git@ssh.dev.azure.com:v3/acme/Platform/{name}",
        "remoteUrl": f"https://acme@dev.azure.com/acme/Platform/_git/{name}",
        "webUrl": f"https://dev.azure.com/acme/Platform/_git/{name}",
        "isDisabled": False,
    }
    data.update(extra)
    return data


_REPOS_URL = f"{ORG}/Platform/_apis/git/repositories?api-version=7.1"
_PROCESSES_URL = f"{ORG}/_apis/process/processes?api-version=7.1"


class TestRefs:
    def test_strip_ref(self) -> None:
        assert strip_ref("refs/heads/main") == "main"
        assert strip_ref("main") == "main"

    def test_to_ref_is_idempotent(self) -> None:
        assert to_ref("feature/x") == "refs/heads/feature/x"
        assert to_ref("refs/heads/feature/x") == "refs/heads/feature/x"


class TestAzureListing:
    """Tests for list_groups / list_repositories."""

    def test_list_projects(self) -> None:
        http = MockHttpClient()
        http.set_json(
            "GET",
            f"{ORG}/_apis/projects?api-version=7.1",
            {"count": 1, "value": [{"id": "p1", "name": "Platform"}]},
        )

        assert _provider(http).list_groups() == Ok([Group("p1", "Platform")])

    def test_list_repositories_mapping(self) -> None:
        http = MockHttpClient()
        http.set_json("GET", _REPOS_URL, {"value": [_repo_json("svc-auth")]})

        repo = _provider(http).list_repositories().unwrap()[0]

        assert repo.id == "id-svc-auth"
        assert repo.path == "svc-auth"
        assert repo.name_with_namespace == "Platform / svc-auth"
        assert repo.path_with_namespace == "Platform/svc-auth"
        assert repo.default_branch == "main"
        assert repo.clone_url("ssh") == "git@ssh.dev.azure.com:v3/acme/Platform/svc-auth"
        assert repo.group_id == "Platform"

    def test_disabled_repositories_are_archived(self) -> None:
        http = MockHttpClient()
        payload = {"value": [_repo_json("old", isDisabled=True), _repo_json("new")]}
        http.set_json("GET", _REPOS_URL, payload)

        assert [r.name for r in _provider(http).list_repositories().unwrap()] == ["new"]
        kept = _provider(http, include_archived=True).list_repositories().unwrap()
        assert [r.name for r in kept] == ["new", "old"]

    def test_project_name_with_space_is_quoted(self) -> None:
        http = MockHttpClient()
        http.set_json(
            "GET",
            f"{ORG}/Data%20Team/_apis/git/repositories?api-version=7.1",
            {"value": []},
        )

        assert _provider(http, "Data Team").list_repositories() == Ok([])

    def test_unexpected_shape(self) -> None:
        http = MockHttpClient()
        http.set_json("GET", _REPOS_URL, [{"name": "not wrapped"}])

        result = _provider(http).list_repositories()

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_response"


class TestAzureCreation:
    """Tests for the creation operations."""

    _PROCESSES = {
        "value": [
            {"id": "proc-agile", "name": "Agile", "isDefault": True},
            {"id": "proc-scrum", "name": "Scrum", "isDefault": False},
        ]
    }

    def test_create_project_with_named_process(self) -> None:
        http = MockHttpClient()
        http.set_json("GET", _PROCESSES_URL, self._PROCESSES)
        http.set_json("POST", f"{ORG}/_apis/projects?api-version=7.1", {"id": "op-1"}, status=202)

        result = _provider(http).create_group(["Data", "Data team", "private", "Scrum"])

        assert result == Ok("op-1")
        body = http.calls[-1].json_body
        assert body == {
            "name": "Data",
            "description": "Data team",
            "visibility": "private",
            "capabilities": {
                "versioncontrol": {"sourceControlType": "Git"},
                "processTemplate": {"templateTypeId": "proc-scrum"},
            },
        }

    def test_create_project_defaults_process(self) -> None:
        http = MockHttpClient()
        http.set_json("GET", _PROCESSES_URL, self._PROCESSES)
        http.set_json("POST", f"{ORG}/_apis/projects?api-version=7.1", {"id": "op-2"}, status=202)

        result = _provider(http, answers=["", "", ""]).create_group(["Data"])

        assert result == Ok("op-2")
        body = http.calls[-1].json_body
        assert isinstance(body, dict)
        assert body["capabilities"]["processTemplate"]["templateTypeId"] == "proc-agile"  # type: ignore[index]

    def test_create_project_unknown_process(self) -> None:
        http = MockHttpClient()
        http.set_json("GET", _PROCESSES_URL, self._PROCESSES)

        result = _provider(http).create_group(["Data", "", "private", "Waterfall"])

        assert isinstance(result, Err)
        assert result.error.kind == "missing_parameter"
        assert http.urls("POST") == []

    def test_create_project_without_name_sends_nothing(self) -> None:
        http = MockHttpClient()

        result = _provider(http).create_group([])

        assert isinstance(result, Err)
        assert http.calls == []

    def test_create_repository(self) -> None:
        http = MockHttpClient()
        http.set_json("POST", f"{ORG}/_apis/git/repositories?api-version=7.1", {"id": "r-9"}, status=201)

        result = _provider(http).create_repository(["svc-new"])

        assert result == Ok("r-9")
        assert http.calls[0].json_body == {"name": "svc-new", "project": {"id": "Platform"}}

    def test_create_pull_request(self) -> None:
        http = MockHttpClient()
        http.set_json(
            "POST",
            f"{ORG}/Platform/_apis/git/repositories/id-svc/pullrequests?api-version=7.1",
            {
                "pullRequestId": 31,
                "status": "active",
                "mergeStatus": "queued",
                "repository": {"webUrl": "https://dev.azure.com/acme/Platform/_git/svc"},
            },
            status=201,
        )
        repo = RemoteRepository(id="id-svc", name="svc", path="svc", group_id="Platform")

        review = _provider(http).create_review_request(repo, "fix/x", "main", "Fix", "", False).unwrap()

        assert review.id == "31"
        assert review.url == "https://dev.azure.com/acme/Platform/_git/svc/pullrequest/31"
        assert review.state == "active"
        assert review.mergeable == "queued"
        assert http.calls[0].json_body == {
            "title": "Fix",
            "description": "",
            "sourceRefName": "refs/heads/fix/x",
            "targetRefName": "refs/heads/main",
            "isDraft": False,
        }

"""Tests for services/repos.py."""

from __future__ import annotations

import io
import shutil
import subprocess
import tarfile
from pathlib import Path

import pytest

from rfleet.core.config import GitConfig
from rfleet.core.result import Err, Ok, Result
from rfleet.core.workspace import Workspace
from rfleet.git.selector import RepoSelector
from rfleet.output.console import MockConsole, Style
from rfleet.remote.errors import RemoteError
from rfleet.remote.github import GITHUB_LABELS
from rfleet.remote.model import Group, RemoteRepository
from rfleet.remote.http import MockHttpClient
from rfleet.services.initializr import Initializr, StarterRequest
from rfleet.services.repos import RepoService

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"git {' '.join(args)} failed (code {result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.strip()


def _init_remote_repo(tmp_path: Path, name: str) -> tuple[str, Path]:
    """Create a bare repo + push an initial commit, return (url, seed_dir)."""
    remote = tmp_path / "remotes" / f"{name}.git"
    seed = tmp_path / "seeds" / name

    remote.parent.mkdir(parents=True, exist_ok=True)
    _git(tmp_path, "init", "--bare", "-b", "main", str(remote))

    seed.mkdir(parents=True)
    _git(seed, "init", "-b", "main")
    _git(seed, "config", "user.email", "test@example.com")
    _git(seed, "config", "user.name", "Test")

    (seed / "hello.txt").write_text("v1\n", encoding="utf-8")
    _git(seed, "add", "hello.txt")
    _git(seed, "commit", "-m", "init")

    url = remote.as_uri()
    _git(seed, "remote", "add", "origin", url)
    _git(seed, "push", "-u", "origin", "main")

    return url, seed


def _remote(name: str, url: str = "") -> RemoteRepository:
    return RemoteRepository(
        id=name,
        name=name,
        path=name,
        name_with_namespace=f"acme/{name}",
        http_url=url,
        default_branch="main",
    )


class FakeProvider:
    labels = GITHUB_LABELS

    def __init__(self, repos: Result[list[RemoteRepository], RemoteError]) -> None:
        self.repos = repos

    def list_groups(self) -> Result[list[Group], RemoteError]:
        return Ok([Group("acme", "acme")])

    def list_repositories(self) -> Result[list[RemoteRepository], RemoteError]:
        return self.repos


def _service(
    tmp_path: Path,
    repos: Result[list[RemoteRepository], RemoteError],
    console: MockConsole,
) -> tuple[RepoService, Path]:
    ws_root = tmp_path / "ws"
    (ws_root / ".rfleet").mkdir(parents=True)
    service = RepoService(
        workspace=Workspace(root=ws_root),
        git=GitConfig(provider="github", base_url="https://api.github.com", clone_protocol="https"),
        console=console,
        provider=FakeProvider(repos),  # type: ignore[arg-type]
    )
    return service, ws_root


class TestRemoteListing:
    """Tests for list_remote / list_groups."""

    def test_list_remote_applies_selector(self, tmp_path: Path) -> None:
        repos = Ok([_remote("svc-auth"), _remote("svc-legacy"), _remote("web")])
        service, _root = _service(tmp_path, repos, MockConsole())

        result = service.list_remote(RepoSelector("svc-*", ["svc-legacy"]))

        assert [r.name for r in result.unwrap()] == ["svc-auth"]

    def test_list_remote_error(self, tmp_path: Path) -> None:
        error = RemoteError(kind="network", message="offline")
        service, _root = _service(tmp_path, Err(error), MockConsole())

        assert service.list_remote(RepoSelector()) == Err(error)

    def test_list_groups(self, tmp_path: Path) -> None:
        service, _root = _service(tmp_path, Ok([]), MockConsole())

        assert service.list_groups() == Ok([Group("acme", "acme")])

    def test_without_provider(self, tmp_path: Path) -> None:
        service = RepoService(
            workspace=Workspace(root=tmp_path),
            git=GitConfig(),
            console=MockConsole(),
        )

        with pytest.raises(RuntimeError):
            service.list_remote(RepoSelector())


@requires_git
class TestCloneMissing:
    """Tests for clone_missing()."""

    def test_clones_only_missing_and_selected(self, tmp_path: Path) -> None:
        auth_url, _ = _init_remote_repo(tmp_path, "svc-auth")
        web_url, _ = _init_remote_repo(tmp_path, "web")
        console = MockConsole()
        repos = [_remote("svc-auth", auth_url), _remote("svc-billing", ""), _remote("web", web_url)]
        service, root = _service(tmp_path, Ok(repos), console)
        (root / "svc-billing").mkdir()

        result = service.clone_missing(RepoSelector("svc-*"))

        assert [r.name for r in result.unwrap()] == ["svc-auth", "svc-billing", "web"]
        assert (root / "svc-auth" / "hello.txt").is_file()
        assert not (root / "web").exists()
        assert console.find("'svc-billing' already exists, skipping")
        assert console.find("'web' did not match 'svc-*', skipping")
        assert console.find("'svc-auth' not present, cloning into 'svc-auth'")

    def test_quiet_mode_prints_only_problems(self, tmp_path: Path) -> None:
        url, _ = _init_remote_repo(tmp_path, "svc-auth")
        console = MockConsole()
        service, root = _service(tmp_path, Ok([_remote("svc-auth", url), _remote("web")]), console)

        service.clone_missing(RepoSelector("svc-*"), verbose=False)

        assert (root / "svc-auth").is_dir()
        assert console.messages == []

    def test_missing_url_is_an_error(self, tmp_path: Path) -> None:
        console = MockConsole()
        service, root = _service(tmp_path, Ok([_remote("svc-auth", "")]), console)

        service.clone_missing(RepoSelector())

        assert not (root / "svc-auth").exists()
        assert console.find("cannot clone 'svc-auth': no https URL reported")

    def test_failed_clone_does_not_stop_others(self, tmp_path: Path) -> None:
        url, _ = _init_remote_repo(tmp_path, "web")
        broken = (tmp_path / "remotes" / "gone.git").as_uri()
        console = MockConsole()
        service, root = _service(tmp_path, Ok([_remote("gone", broken), _remote("web", url)]), console)

        result = service.clone_missing(RepoSelector())

        assert isinstance(result, Ok)
        assert console.has_error() is True
        assert (root / "web" / "hello.txt").is_file()

    def test_empty_repository_warns(self, tmp_path: Path) -> None:
        remote = tmp_path / "empty.git"
        _git(tmp_path, "init", "--bare", str(remote))
        console = MockConsole()
        service, _root = _service(tmp_path, Ok([_remote("empty", remote.as_uri())]), console)

        service.clone_missing(RepoSelector())

        assert console.find("'empty' is an empty repository")

    def test_listing_failure(self, tmp_path: Path) -> None:
        error = RemoteError(kind="auth_failure", message="bad token")
        service, _root = _service(tmp_path, Err(error), MockConsole())

        assert service.clone_missing(RepoSelector()) == Err(error)


@requires_git
class TestLocalCommands:
    """Tests for list_local / update / status."""

    def test_update_and_status(self, tmp_path: Path) -> None:
        url, seed = _init_remote_repo(tmp_path, "svc-auth")
        console = MockConsole()
        service, root = _service(tmp_path, Ok([_remote("svc-auth", url)]), console)
        service.clone_missing(RepoSelector())
        local = root / "scratch"
        local.mkdir()
        _git(local, "init", "-b", "main")

        (seed / "hello.txt").write_text("v2\n", encoding="utf-8")
        _git(seed, "commit", "-am", "v2")
        _git(seed, "push")

        assert service.list_local(RepoSelector()) == ["scratch", "svc-auth"]

        console.clear()
        results = service.update(RepoSelector("svc-*"))
        assert [r.ok for r in results] == [True]
        assert (root / "svc-auth" / "hello.txt").read_text(encoding="utf-8") == "v2\n"
        assert console.messages == ["info: 'svc-auth' updated"]

        (root / "svc-auth" / "hello.txt").write_text("dirty\n", encoding="utf-8")
        console.clear()
        statuses = service.status(RepoSelector())
        assert [(s.path, s.state.value, s.local_only) for s in statuses] == [
            ("scratch", "clean", True),
            ("svc-auth", "dirty (unstaged changes)", False),
        ]
        assert console.outputs[0].style == Style.SUCCESS
        assert console.outputs[0].message.endswith("clean [local only]")
        assert console.outputs[1].style == Style.WARNING


# =============================================================================
# Starter initialization
# =============================================================================

STARTER_URL = "https://start.example.com/starter.tgz"


def _starter_bytes() -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, data in {"pom.xml": b"<project/>\n", "src/App.java": b"class App {}\n"}.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def _empty_remote(tmp_path: Path, name: str) -> Path:
    remote = tmp_path / "remotes" / f"{name}.git"
    remote.parent.mkdir(parents=True, exist_ok=True)
    _git(tmp_path, "init", "--bare", "-b", "main", str(remote))
    return remote


def _initializr(console: MockConsole) -> Initializr:
    http = MockHttpClient()
    http.set_download(STARTER_URL, _starter_bytes())
    return Initializr(http, "https://start.example.com", console)


@pytest.fixture
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    for var, value in {
        "GIT_AUTHOR_NAME": "Test",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test",
        "GIT_COMMITTER_EMAIL": "test@example.com",
    }.items():
        monkeypatch.setenv(var, value)


@requires_git
@pytest.mark.usefixtures("git_identity")
class TestInitRepository:
    """Tests for init_repository / init_created_repository."""

    def test_init_existing_clone(self, tmp_path: Path) -> None:
        remote = _empty_remote(tmp_path, "svc-new")
        console = MockConsole()
        service, root = _service(tmp_path, Ok([]), console)
        _git(root, "clone", "-q", remote.as_uri(), "svc-new")

        result = service.init_repository(
            "svc-new",
            StarterRequest("maven-project", "svc-new"),
            _initializr(console),
        )

        assert result == Ok("svc-new")
        assert _git(remote, "log", "--all", "--format=%s") == "Initial commit"
        tracked = _git(root / "svc-new", "ls-files").splitlines()
        assert tracked == ["pom.xml", "src/App.java"]
        assert console.find("'svc-new' initialized (2 files)")

    def test_not_a_local_repository(self, tmp_path: Path) -> None:
        console = MockConsole()
        service, _root = _service(tmp_path, Ok([]), console)

        result = service.init_repository("missing", StarterRequest("maven-project", "x"), _initializr(console))

        assert isinstance(result, Err)
        assert result.error.message == "'missing' is not a local repository"

    def test_init_created_repository_clones_first(self, tmp_path: Path) -> None:
        remote = _empty_remote(tmp_path, "svc-new")
        created = RemoteRepository(
            id="42",
            name="svc-new",
            path="svc-new",
            name_with_namespace="acme/svc-new",
            http_url=remote.as_uri(),
        )
        console = MockConsole()
        service, root = _service(tmp_path, Ok([_remote("other"), created]), console)

        result = service.init_created_repository(
            "42",
            StarterRequest("maven-project", "svc-new"),
            _initializr(console),
        )

        assert result == Ok("svc-new")
        assert (root / "svc-new" / "pom.xml").exists()
        assert not (root / "other").exists()
        assert _git(remote, "log", "--all", "--format=%s") == "Initial commit"

    def test_created_repository_not_listed(self, tmp_path: Path) -> None:
        console = MockConsole()
        service, _root = _service(tmp_path, Ok([_remote("other")]), console)

        result = service.init_created_repository("42", StarterRequest("maven-project", "x"), _initializr(console))

        assert isinstance(result, Err)
        assert "'42' not found" in result.error.message

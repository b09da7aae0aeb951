from __future__ import annotations

from rfleet.core.config import GitConfig
from rfleet.core.result import Err, Ok, Result
from rfleet.core.workspace import Workspace
from rfleet.git.discovery import find_repos
from rfleet.git.multi import PullResult, RepoStatus, pull_all, status_all
from rfleet.git.repository import Repository, auth_args_for, clone, is_empty_clone
from rfleet.git.selector import RepoSelector
from rfleet.output.console import ConsoleProtocol, Style
from rfleet.remote.base import Provider
from rfleet.remote.errors import RemoteError
from rfleet.remote.model import Group, RemoteRepository
from rfleet.services.initializr import Initializr, InitializrError, StarterRequest

INITIAL_COMMIT_MESSAGE = "Initial commit"

# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class RepoService:
    """Workspace-wide repository commands.

    Policy:
    - Local repositories are the git working copies found under the
      workspace root (two levels deep at most).
    - Remote repositories come from the configured provider and groups.
    - Cloning never touches an existing folder.
    """

    def __init__(
        self,
        *,
        workspace: Workspace,
        git: GitConfig,
        console: ConsoleProtocol,
        provider: Provider | None = None,
    ) -> None:
        self._workspace = workspace
        self._git = git
        self._provider = provider
        self._console = console
        self._auth_args = auth_args_for(git)

    def _remote(self) -> Provider:
        if self._provider is None:
            raise RuntimeError("RepoService was built without a provider")
        return self._provider

    def list_local(self, selector: RepoSelector) -> list[str]:
        return find_repos(self._workspace.root, selector)

    def list_remote(self, selector: RepoSelector) -> Result[list[RemoteRepository], RemoteError]:
        match self._remote().list_repositories():
            case Ok(repos):
                return Ok([r for r in repos if selector.is_selected(r.path)])
            case Err(e):
                return Err(e)

    def list_groups(self) -> Result[list[Group], RemoteError]:
        return self._remote().list_groups()

    def clone_missing(
        self,
        selector: RepoSelector,
        *,
        verbose: bool = True,
    ) -> Result[list[RemoteRepository], RemoteError]:
        """Clone the selected remote repositories that have no local folder.

        Returns every listed remote repository, selected or not. A failing
        clone is reported and does not stop the others.
        """
        listed = self._remote().list_repositories()
        if isinstance(listed, Err):
            return listed

        repos = listed.value
        if not repos and verbose:
            self._console.warning(f"no {self._remote().labels.repositories} found")

        for repo in repos:
            selected, reason = selector.match(repo.path)
            if not selected:
                if verbose:
                    self._console.print(f"{reason}, skipping", Style.DIM)
                continue
            self._clone_one(repo, verbose=verbose)

        return Ok(repos)

    def _clone_one(self, repo: RemoteRepository, *, verbose: bool) -> bool:
        dest = self._workspace.repo_dir(repo.path)
        if dest.exists():
            if verbose:
                self._console.print(f"'{repo.name}' already exists, skipping", Style.DIM)
            return True

        url = repo.clone_url(self._git.clone_protocol)
        if not url:
            self._console.error(
                f"cannot clone '{repo.name}': no {self._git.clone_protocol} URL reported"
            )
            return False

        if verbose:
            self._console.info(f"'{repo.name}' not present, cloning into '{repo.path}'")

        match clone(url, dest, cwd=self._workspace.root, auth_args=self._auth_args):
            case Ok(output):
                if is_empty_clone(output):
                    self._console.warning(f"'{repo.name}' is an empty repository")
                return True
            case Err(e):
                self._console.error(f"cannot clone '{repo.name}': {e.message}")
                return False

    def update(self, selector: RepoSelector, *, autostash: bool = False) -> list[PullResult]:
        """Pull with rebase every selected local repository."""
        paths = self.list_local(selector)
        results = pull_all(self._workspace.root, paths, autostash=autostash, auth_args=self._auth_args)
        for result in results:
            if result.ok:
                self._console.info(f"'{result.path}' updated")
            else:
                message = result.error.message if result.error else "unknown error"
                self._console.warning(f"cannot update '{result.path}' ({message})")
        return results

    def status(self, selector: RepoSelector) -> list[RepoStatus]:
        """Classify and print every selected local repository."""
        statuses = status_all(self._workspace.root, self.list_local(selector), auth_args=self._auth_args)
        for st in statuses:
            suffix = " [local only]" if st.local_only else ""
            line = f"{st.path:<40} {st.branch:<25} {st.state}{suffix}"
            if st.is_clean:
                self._console.print(line, Style.SUCCESS)
            elif st.is_dirty:
                self._console.print(line, Style.WARNING)
            else:
                self._console.print(line, Style.ERROR)
        return statuses

    # -- initialization -------------------------------------------------------

    def init_repository(
        self,
        path: str,
        request: StarterRequest,
        initializr: Initializr,
    ) -> Result[str, InitializrError]:
        """Unpack a starter into a local working copy, commit everything and push."""
        dest = self._workspace.repo_dir(path)
        if not (dest / ".git").is_dir():
            return Err(
                InitializrError(
                    f"'{path}' is not a local repository",
                    hint="Clone it first with: rfleet clone",
                )
            )

        unpacked = initializr.unpack_starter(request, dest)
        if isinstance(unpacked, Err):
            return unpacked

        repo = Repository(dest, auth_args=self._auth_args)
        committed = repo.add_and_commit(INITIAL_COMMIT_MESSAGE, only_tracked=False)
        if isinstance(committed, Err):
            return Err(InitializrError(f"cannot commit the starter in '{path}': {committed.error.message}"))

        # A fresh clone of an empty repository may have no upstream yet.
        pushed = repo.push(repo.current_branch() or "")
        if isinstance(pushed, Err):
            return Err(InitializrError(f"cannot push '{path}': {pushed.error.message}"))

        self._console.success(f"'{path}' initialized ({unpacked.value} files)")
        return Ok(path)

    def init_created_repository(
        self,
        repo_id: str,
        request: StarterRequest,
        initializr: Initializr,
    ) -> Result[str, InitializrError]:
        """Clone a repository created by id, then initialize it."""
        labels = self._remote().labels
        listed = self._remote().list_repositories()
        if isinstance(listed, Err):
            return Err(InitializrError(f"cannot list {labels.repositories}: {listed.error.message}"))

        repo = next((r for r in listed.value if r.id == repo_id), None)
        if repo is None:
            return Err(InitializrError(f"created {labels.repository} '{repo_id}' not found in the configured groups"))
        if not self._clone_one(repo, verbose=True):
            return Err(InitializrError(f"cannot clone '{repo.name}'"))
        return self.init_repository(repo.path, request, initializr)

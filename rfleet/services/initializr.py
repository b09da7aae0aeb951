"""Project starters for freshly created repositories.

A starter is a `.tgz` archive generated by an Initializr-compatible service
(start.spring.io by default) from a project type, a name and a list of
dependencies. It is unpacked at the root of a working copy.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from rfleet.core.result import Err, Ok, Result
from rfleet.output.console import ConsoleProtocol
from rfleet.remote.http import HttpClient

__all__ = [
    "EMPTY_PROJECT_TYPE",
    "Initializr",
    "InitializrError",
    "StarterRequest",
    "extract_starter",
]

# Creating a repository with this type (or none) skips initialization.
EMPTY_PROJECT_TYPE = "empty"


@dataclass(frozen=True, slots=True)
class InitializrError:
    message: str
    hint: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class StarterRequest:
    """What to generate.

    Attributes:
        project_type: Initializr project type (e.g. maven-project)
        name: Project name
        dependencies: Dependency ids
    """

    project_type: str
    name: str
    dependencies: tuple[str, ...] = ()

    @classmethod
    def parse(cls, project_type: str, name: str, dependencies: str) -> StarterRequest:
        """Build a request from raw input; dependencies are comma separated."""
        deps = tuple(d.strip() for d in dependencies.split(",") if d.strip())
        return cls(project_type=project_type.strip(), name=name.strip(), dependencies=deps)

    def form(self) -> dict[str, str]:
        return {
            "type": self.project_type,
            "name": self.name,
            "dependencies": ",".join(self.dependencies),
        }


def _safe_relative_path(member_name: str) -> Path | None:
    normalized = member_name.replace("\\", "/")
    if normalized.startswith("/"):
        return None
    parts = PurePosixPath(normalized).parts
    if not parts or any(part in {"", ".", ".."} for part in parts):
        return None
    if parts[0].endswith(":") or parts[0] == ".git":
        return None
    return Path(*parts)


def extract_starter(archive: Path, dest: Path) -> Result[int, InitializrError]:
    """Unpack the regular files of a gzipped tar into dest.

    Existing files are overwritten, nothing is removed. Entries escaping
    dest, links and the `.git` directory are skipped.

    Returns:
        Ok with the number of files written
    """
    root = dest.resolve()
    written = 0
    try:
        with tarfile.open(archive, "r:gz") as tar:
            for member in tar.getmembers():
                if not member.isreg():
                    continue
                rel_path = _safe_relative_path(member.name)
                if rel_path is None:
                    continue
                target = dest / rel_path
                if not target.resolve().is_relative_to(root):
                    continue

                src = tar.extractfile(member)
                if src is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)

                mode = member.mode & 0o777
                if mode:
                    with contextlib.suppress(OSError):
                        os.chmod(target, mode)
                written += 1
    except tarfile.TarError as e:
        return Err(InitializrError(f"invalid starter archive: {e}"))
    except OSError as e:
        return Err(InitializrError(f"cannot unpack starter: {e}"))
    return Ok(written)


class Initializr:
    """Client of an Initializr service."""

    def __init__(self, http: HttpClient, url: str, console: ConsoleProtocol) -> None:
        self._http = http
        self._url = url.rstrip("/")
        self._console = console

    @property
    def starter_url(self) -> str:
        return f"{self._url}/starter.tgz"

    def unpack_starter(self, request: StarterRequest, dest: Path) -> Result[int, InitializrError]:
        """Generate a starter for request and unpack it into dest."""
        if not request.name:
            return Err(InitializrError("name is required to initialize a repository"))

        self._console.info(f"generating '{request.name}' ({request.project_type}) from {self._url}")
        with tempfile.TemporaryDirectory(prefix="rfleet-starter-") as tmp:
            archive = Path(tmp) / f"{request.name}.tgz"
            downloaded = self._http.download(self.starter_url, archive, form=request.form())
            if isinstance(downloaded, Err):
                return Err(
                    InitializrError(
                        f"cannot download starter: {downloaded.error}",
                        hint=downloaded.error.body or None,
                    )
                )
            return extract_starter(archive, dest)

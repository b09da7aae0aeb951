"""Canonical remote model shared by every hosting provider."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "Group",
    "Labels",
    "RemoteRepository",
    "ReviewRequest",
    "normalize_name",
]


@dataclass(frozen=True, slots=True)
class Group:
    """A remote organizational unit (organization, group or project)."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class RemoteRepository:
    """A repository as listed by a provider.

    Attributes:
        id: Provider identifier
        name: Display name
        path: Local folder name (clone destination, discovery key)
        name_with_namespace: Display name qualified by its group
        path_with_namespace: Local path qualified by its group
        description: Free text, may span lines
        ssh_url: Clone URL for the ssh protocol
        http_url: Clone URL for the https protocol
        default_branch: Branch reviews are proposed into
        archived: Read-only on the provider
        group_id: Id of the Group it was listed from
        web_url: Browser URL, when the provider reports one
    """

    id: str
    name: str
    path: str
    name_with_namespace: str = ""
    path_with_namespace: str = ""
    description: str = ""
    ssh_url: str = ""
    http_url: str = ""
    default_branch: str = ""
    archived: bool = False
    group_id: str = ""
    web_url: str = ""

    def clone_url(self, protocol: str) -> str | None:
        """Clone URL for a protocol, None for an unknown protocol."""
        match protocol:
            case "ssh":
                return self.ssh_url
            case "https":
                return self.http_url
            case _:
                return None

    def one_line_description(self) -> str:
        return " ".join(self.description.split())


@dataclass(frozen=True, slots=True)
class ReviewRequest:
    """A pull/merge request opened by rfleet."""

    id: str
    url: str
    state: str = ""
    mergeable: str = ""


@dataclass(frozen=True, slots=True)
class Labels:
    """Provider vocabulary used in CLI help and messages."""

    group: str
    groups: str
    repository: str
    repositories: str
    review_request: str
    create_group_usage: str
    create_repository_usage: str


def normalize_name(name: str, enabled: bool) -> str:
    """Folder name for a repository: lower-case, spaces to dashes when enabled."""
    if not enabled:
        return name
    return name.replace(" ", "-").lower()

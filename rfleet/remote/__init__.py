"""Hosting provider access (GitHub, GitLab, Azure DevOps)."""

from .base import Provider
from .errors import RemoteError
from .http import HttpClient, MockHttpClient, RealHttpClient
from .model import Group, Labels, RemoteRepository, ReviewRequest, normalize_name
from .registry import resolve_provider

__all__ = [
    "Group",
    "HttpClient",
    "Labels",
    "MockHttpClient",
    "Provider",
    "RealHttpClient",
    "RemoteError",
    "RemoteRepository",
    "ReviewRequest",
    "normalize_name",
    "resolve_provider",
]

"""HTTP client abstraction for provider APIs.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib (JSON requests and file downloads)
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from rfleet import __version__
from rfleet.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
]

_CHUNK_SIZE = 8192


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
        body: Response body, if any
    """

    url: str
    status: int
    message: str
    body: str = ""

    @property
    def is_transient(self) -> bool:
        """True for failures worth retrying (network, rate limit, 5xx)."""
        return self.status == 0 or self.status == 429 or self.status >= 500

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A successful HTTP response.

    Attributes:
        url: Requested URL
        status: HTTP status code
        headers: Response headers with lower-cased names
        body: Decoded response body
    """

    url: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def json(self) -> Result[object, HttpError]:
        """Parse the body as JSON."""
        if not self.body.strip():
            return Ok(None)
        try:
            return Ok(json.loads(self.body))
        except json.JSONDecodeError as e:
            return Err(HttpError(url=self.url, status=0, message=f"JSON parse error: {e}"))


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations."""

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: object | None = None,
    ) -> Result[HttpResponse, HttpError]:
        """Send a request; JSON bodies are serialized by the client.

        Returns:
            Ok with the response for 2xx statuses, Err with HttpError otherwise
        """
        ...

    def download(
        self,
        url: str,
        dest: Path,
        *,
        form: Mapping[str, str] | None = None,
    ) -> Result[Path, HttpError]:
        """Save the response body to dest; a form is sent url-encoded with POST.

        Returns:
            Ok with dest, or Err with HttpError
        """
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - JSON request bodies
    - Timeout handling
    """

    def __init__(self, timeout: float = 30.0, user_agent: str = f"rfleet/{__version__}") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: object | None = None,
    ) -> Result[HttpResponse, HttpError]:
        all_headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        all_headers.update(headers or {})

        data: bytes | None = None
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            all_headers["Content-Type"] = "application/json"

        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                body = response.read().decode("utf-8", errors="replace")
                return Ok(
                    HttpResponse(
                        url=url,
                        status=response.status,
                        headers={k.lower(): v for k, v in response.headers.items()},
                        body=body,
                    )
                )
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if e.fp is not None else ""
            return Err(HttpError(url=url, status=e.code, message=str(e.reason), body=body))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def download(
        self,
        url: str,
        dest: Path,
        *,
        form: Mapping[str, str] | None = None,
    ) -> Result[Path, HttpError]:
        data = urllib.parse.urlencode(dict(form)).encode("ascii") if form is not None else None
        try:
            req = urllib.request.Request(
                url,
                data=data,
                headers={"User-Agent": self.user_agent},
                method="POST" if data is not None else "GET",
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                dest.parent.mkdir(parents=True, exist_ok=True)
                with open(dest, "wb") as f:
                    while True:
                        chunk = response.read(_CHUNK_SIZE)
                        if not chunk:
                            break
                        f.write(chunk)
                return Ok(dest)
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Download timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


@dataclass(frozen=True, slots=True)
class RecordedRequest:
    """A request seen by MockHttpClient."""

    method: str
    url: str
    headers: Mapping[str, str]
    json_body: object | None


class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are registered per (method, url). Registering several
    responses for the same key serves them in order, the last one repeating.

    Usage:
        client = MockHttpClient()
        client.set_json("GET", "https://api.example.com/user/orgs", [{"login": "acme"}])
        client.set_error("POST", "https://api.example.com/repos", 422, "Unprocessable")
        client.set_download("https://start.example.com/starter.tgz", archive_bytes)
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], list[HttpResponse | HttpError]] = {}
        self._downloads: dict[str, bytes | HttpError] = {}
        self.calls: list[RecordedRequest] = []

    def set_json(
        self,
        method: str,
        url: str,
        payload: object,
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        response = HttpResponse(
            url=url,
            status=status,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            body=json.dumps(payload),
        )
        self._responses.setdefault((method.upper(), url), []).append(response)

    def set_error(self, method: str, url: str, status: int, message: str) -> None:
        error = HttpError(url=url, status=status, message=message)
        self._responses.setdefault((method.upper(), url), []).append(error)

    def set_download(self, url: str, content: bytes | HttpError) -> None:
        self._downloads[url] = content

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: object | None = None,
    ) -> Result[HttpResponse, HttpError]:
        self.calls.append(
            RecordedRequest(
                method=method.upper(),
                url=url,
                headers=dict(headers or {}),
                json_body=json_body,
            )
        )

        queue = self._responses.get((method.upper(), url))
        if not queue:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def download(
        self,
        url: str,
        dest: Path,
        *,
        form: Mapping[str, str] | None = None,
    ) -> Result[Path, HttpError]:
        """Write the registered content to dest; the form is recorded as the body."""
        method = "POST" if form is not None else "GET"
        self.calls.append(
            RecordedRequest(
                method=method,
                url=url,
                headers={},
                json_body=dict(form) if form is not None else None,
            )
        )

        content = self._downloads.get(url)
        if content is None:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        if isinstance(content, HttpError):
            return Err(content)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(content)
        return Ok(dest)

    def urls(self, method: str | None = None) -> list[str]:
        """URLs requested so far, optionally filtered by method."""
        return [c.url for c in self.calls if method is None or c.method == method.upper()]

"""Tests for remote/http.py."""

from __future__ import annotations

from pathlib import Path

from rfleet.core.result import Err, Ok
from rfleet.remote.http import HttpClient, HttpError, HttpResponse, MockHttpClient, RealHttpClient


class TestHttpError:
    """Tests for HttpError."""

    def test_str_with_status(self) -> None:
        error = HttpError(url="https://x/api", status=404, message="Not Found")
        assert str(error) == "HTTP 404: Not Found (https://x/api)"

    def test_str_network(self) -> None:
        error = HttpError(url="https://x/api", status=0, message="Connection refused")
        assert str(error) == "Connection refused (https://x/api)"

    def test_transient(self) -> None:
        assert HttpError(url="u", status=0, message="").is_transient is True
        assert HttpError(url="u", status=429, message="").is_transient is True
        assert HttpError(url="u", status=502, message="").is_transient is True
        assert HttpError(url="u", status=404, message="").is_transient is False
        assert HttpError(url="u", status=401, message="").is_transient is False


class TestHttpResponse:
    """Tests for HttpResponse."""

    def test_json(self) -> None:
        response = HttpResponse(url="u", status=200, body='[{"id": 1}]')
        assert response.json() == Ok([{"id": 1}])

    def test_empty_body_is_none(self) -> None:
        assert HttpResponse(url="u", status=204).json() == Ok(None)

    def test_invalid_json(self) -> None:
        result = HttpResponse(url="u", status=200, body="<html>").json()
        assert isinstance(result, Err)
        assert "JSON parse error" in result.error.message

    def test_header_lookup_is_case_insensitive(self) -> None:
        response = HttpResponse(url="u", status=200, headers={"x-next-page": "2"})
        assert response.header("X-Next-Page") == "2"
        assert response.header("Link") is None


class TestMockHttpClient:
    """Tests for MockHttpClient."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)
        assert isinstance(RealHttpClient(), HttpClient)

    def test_unregistered_url_is_404(self) -> None:
        result = MockHttpClient().request("GET", "https://x/missing")
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_queued_responses_last_repeats(self) -> None:
        client = MockHttpClient()
        client.set_error("GET", "https://x/a", 503, "Unavailable")
        client.set_json("GET", "https://x/a", {"ok": True})

        first = client.request("GET", "https://x/a")
        second = client.request("get", "https://x/a")
        third = client.request("GET", "https://x/a")

        assert isinstance(first, Err)
        assert isinstance(second, Ok)
        assert isinstance(third, Ok)
        assert third.value.json() == Ok({"ok": True})

    def test_records_calls(self) -> None:
        client = MockHttpClient()
        client.request("POST", "https://x/repos", headers={"A": "b"}, json_body={"name": "svc"})
        client.request("GET", "https://x/user")

        assert client.urls() == ["https://x/repos", "https://x/user"]
        assert client.urls("POST") == ["https://x/repos"]
        assert client.calls[0].json_body == {"name": "svc"}
        assert client.calls[0].headers == {"A": "b"}


class TestMockDownload:
    """Tests for MockHttpClient.download()."""

    def test_writes_registered_content(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_download("https://start.example.com/starter.tgz", b"archive")
        dest = tmp_path / "out" / "starter.tgz"

        result = http.download("https://start.example.com/starter.tgz", dest, form={"name": "svc"})

        assert result == Ok(dest)
        assert dest.read_bytes() == b"archive"
        assert http.calls[0].method == "POST"
        assert http.calls[0].json_body == {"name": "svc"}

    def test_plain_download_is_get(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        http.set_download("https://example.com/file", b"x")

        http.download("https://example.com/file", tmp_path / "file")

        assert http.urls("GET") == ["https://example.com/file"]

    def test_unregistered_url_is_404(self, tmp_path: Path) -> None:
        result = MockHttpClient().download("https://example.com/missing", tmp_path / "f")

        assert isinstance(result, Err)
        assert result.error.status == 404
        assert not (tmp_path / "f").exists()

    def test_registered_error(self, tmp_path: Path) -> None:
        http = MockHttpClient()
        error = HttpError(url="https://example.com/f", status=500, message="boom")
        http.set_download("https://example.com/f", error)

        assert http.download("https://example.com/f", tmp_path / "f") == Err(error)

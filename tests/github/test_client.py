"""Tests for the GitHub REST client."""

from __future__ import annotations

import io
import json
import socket
from urllib.error import HTTPError, URLError

import pytest

from reposense.errors import RateLimitedError, SourceUnavailableError
from reposense.github.client import GitHubClient, GitHubNotFound


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # type: ignore[no-untyped-def]
        return False


def _http_error(url: str, code: int, reason: str = "error") -> HTTPError:
    return HTTPError(url, code, reason, hdrs=None, fp=io.BytesIO(b""))  # type: ignore[arg-type]


def test_get_json_sends_auth_headers(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["timeout"] = timeout
        return FakeResponse(json.dumps([{"path": "README.md"}]).encode("utf-8"))

    monkeypatch.setattr("reposense.github.client.urlopen", fake_urlopen)

    client = GitHubClient("secret-token")
    payload = client.get_json(client.repo_path("acme", "widget", "contents"), timeout=3.0)

    assert payload == [{"path": "README.md"}]
    assert captured["url"] == "https://api.github.com/repos/acme/widget/contents"
    assert captured["headers"]["authorization"] == "Bearer secret-token"
    assert captured["headers"]["accept"] == "application/vnd.github+json"
    assert captured["timeout"] == 3.0


def test_anonymous_client_omits_authorization(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["timeout"] = timeout
        return FakeResponse(b"{}")

    monkeypatch.setattr("reposense.github.client.urlopen", fake_urlopen)

    GitHubClient(default_timeout=7.0).get_json("repos/acme/widget")

    assert "authorization" not in captured["headers"]
    assert captured["timeout"] == 7.0


def test_absolute_urls_are_used_verbatim() -> None:
    client = GitHubClient(base_url="https://ghe.example.com/api/v3/")
    assert client.url_for("https://api.github.com/x") == "https://api.github.com/x"
    assert client.url_for("/repos/a/b") == "https://ghe.example.com/api/v3/repos/a/b"


def test_repo_path_quotes_segments() -> None:
    assert GitHubClient.repo_path("acme", "my repo", "contents") == "repos/acme/my%20repo/contents"


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (404, GitHubNotFound),
        (403, RateLimitedError),
        (429, RateLimitedError),
        (500, SourceUnavailableError),
    ],
)
def test_http_status_mapping(monkeypatch, status: int, expected: type) -> None:
    def fake_urlopen(request, timeout=None):
        raise _http_error(request.full_url, status)

    monkeypatch.setattr("reposense.github.client.urlopen", fake_urlopen)

    with pytest.raises(expected):
        GitHubClient().get_json("repos/acme/widget/contents")


def test_not_found_is_a_source_error(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise _http_error(request.full_url, 404)

    monkeypatch.setattr("reposense.github.client.urlopen", fake_urlopen)

    with pytest.raises(SourceUnavailableError) as excinfo:
        GitHubClient().get_json("repos/acme/widget")

    assert excinfo.value.status == 404


def test_server_error_keeps_status(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise _http_error(request.full_url, 502, "Bad Gateway")

    monkeypatch.setattr("reposense.github.client.urlopen", fake_urlopen)

    with pytest.raises(SourceUnavailableError) as excinfo:
        GitHubClient().get_json("repos/acme/widget")

    assert excinfo.value.status == 502
    assert "502 Bad Gateway" in str(excinfo.value)


@pytest.mark.parametrize("error", [socket.timeout("slow"), URLError("dns failure")])
def test_transport_failures_are_unavailable(monkeypatch, error: Exception) -> None:
    def fake_urlopen(request, timeout=None):
        raise error

    monkeypatch.setattr("reposense.github.client.urlopen", fake_urlopen)

    with pytest.raises(SourceUnavailableError):
        GitHubClient().get_json("repos/acme/widget")


def test_invalid_json_is_unavailable(monkeypatch) -> None:
    monkeypatch.setattr(
        "reposense.github.client.urlopen",
        lambda request, timeout=None: FakeResponse(b"<html>"),
    )

    with pytest.raises(SourceUnavailableError):
        GitHubClient().get_json("repos/acme/widget")

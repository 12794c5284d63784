"""Minimal read-only client for the GitHub REST API."""

from __future__ import annotations

import json
import socket
from typing import Any, Mapping
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from ..errors import RateLimitedError, SourceUnavailableError
from ..logging import get_logger

DEFAULT_API_BASE_URL = "https://api.github.com"
_RATE_LIMIT_STATUSES = {403, 429}


class GitHubNotFound(SourceUnavailableError):
    """404 from the API; callers decide whether that means "missing" or "empty"."""

    def __init__(self, url: str) -> None:
        super().__init__(f"GitHub resource not found: {url}", status=404)
        self.url = url


class GitHubClient:
    """Issues GET requests and maps transport status onto reposense errors."""

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        default_timeout: float = 10.0,
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.default_timeout = default_timeout
        self.logger = get_logger("github")

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def repo_path(owner: str, name: str, *suffix: str) -> str:
        parts = ["repos", quote(owner, safe=""), quote(name, safe="")]
        parts.extend(suffix)
        return "/".join(parts)

    def headers(self) -> Mapping[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "reposense",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def get_json(self, path: str, *, timeout: float | None = None) -> Any:
        """GET ``path`` and decode the JSON body.

        Raises ``GitHubNotFound`` on 404, ``RateLimitedError`` on 403/429 and
        ``SourceUnavailableError`` on any other failure.
        """
        url = self.url_for(path)
        request = Request(url, headers=dict(self.headers()), method="GET")
        effective_timeout = timeout if timeout is not None else self.default_timeout
        self.logger.debug("GET %s (timeout=%.1fs)", url, effective_timeout)

        try:
            with urlopen(request, timeout=effective_timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            if exc.code == 404:
                raise GitHubNotFound(url) from exc
            if exc.code in _RATE_LIMIT_STATUSES:
                raise RateLimitedError(
                    f"GitHub API rate limit reached ({exc.code}) for {url}"
                ) from exc
            raise SourceUnavailableError(
                f"GitHub API Error: {exc.code} {exc.reason}", status=exc.code
            ) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise SourceUnavailableError(f"GitHub request timed out: {url}") from exc
        except URLError as exc:
            raise SourceUnavailableError(f"GitHub request failed: {exc.reason}") from exc

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SourceUnavailableError(f"GitHub returned invalid JSON for {url}") from exc


__all__ = ["DEFAULT_API_BASE_URL", "GitHubClient", "GitHubNotFound"]

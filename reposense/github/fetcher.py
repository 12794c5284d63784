"""Bounded repository context acquisition from the GitHub API."""

from __future__ import annotations

import base64
import binascii
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Callable, List, Optional, Sequence, Tuple
from urllib.parse import quote

from ..errors import (
    AnalysisCancelledError,
    RateLimitedError,
    RepoNotFoundError,
    RepoSenseError,
    SourceUnavailableError,
)
from ..logging import get_logger
from ..models import EntryKind, FileContent, RepoContext, RepoRef, TreeEntry
from ..selector import FileSelector
from .client import DEFAULT_API_BASE_URL, GitHubClient, GitHubNotFound

SHALLOW = "shallow"
DEEP = "deep"
STRATEGIES = (SHALLOW, DEEP)

# Conventional source directories, in descent preference order.
SOURCE_DIRECTORIES = ("src", "app", "lib", "pkg")

_KIND_BY_TYPE = {
    "file": EntryKind.FILE,
    "blob": EntryKind.FILE,
    "dir": EntryKind.DIRECTORY,
    "tree": EntryKind.DIRECTORY,
}
_RESULT_GRACE_SECONDS = 0.5


def decode_content(payload: Any) -> Optional[str]:
    """Decode a contents/blob API payload; anything but valid base64 text yields ``None``."""
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if payload.get("encoding") != "base64" or not isinstance(content, str):
        return None
    try:
        raw = base64.b64decode(content.replace("\n", ""), validate=False)
        return raw.decode("utf-8")
    except (binascii.Error, ValueError):
        return None


class ContextFetcher:
    """Retrieves a bounded listing and a capped set of file contents for a repository."""

    def __init__(
        self,
        *,
        strategy: str = SHALLOW,
        api_base_url: str = DEFAULT_API_BASE_URL,
        listing_timeout: float = 3.0,
        file_timeout: float = 3.5,
        max_tree_paths: int = 200,
        selector: FileSelector | None = None,
        client_factory: Callable[[str | None], GitHubClient] | None = None,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown fetch strategy '{strategy}'. Expected one of {STRATEGIES}.")
        self.strategy = strategy
        self.api_base_url = api_base_url
        self.listing_timeout = listing_timeout
        self.file_timeout = file_timeout
        self.max_tree_paths = max_tree_paths
        self.selector = selector or FileSelector()
        self._client_factory = client_factory or self._default_client
        self.logger = get_logger("fetcher")

    def fetch(
        self,
        ref: RepoRef,
        credential: str | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> RepoContext:
        """Return the evidence for ``ref``.

        Rate limiting on any listing call degrades to a fallback context. A missing
        repository raises ``RepoNotFoundError``; other listing failures raise
        ``SourceUnavailableError``. Individual file failures only drop that file.
        """
        client = self._client_factory(credential)
        self._check_cancelled(cancel_event)
        try:
            if self.strategy == DEEP:
                entries, truncated = self._list_deep(client, ref)
            else:
                entries, truncated = self._list_shallow(client, ref), False
        except RateLimitedError as exc:
            self.logger.warning("GitHub rate limit reached; returning fallback context (%s)", exc)
            return RepoContext.fallback()

        tree_paths = self._tree_paths(entries)
        selected = self.selector.select(entries)
        self.logger.debug(
            "Selected %d of %d entries for %s: %s",
            len(selected),
            len(entries),
            ref.full_name,
            ", ".join(entry.path for entry in selected),
        )
        files = self._fetch_files(client, ref, selected, cancel_event)
        self.logger.info(
            "Fetched %d/%d files for %s (%d tree paths)",
            len(files),
            len(selected),
            ref.full_name,
            len(tree_paths),
        )
        return RepoContext(tree_paths=tree_paths, files=files, is_fallback=False, truncated=truncated)

    # listing strategies

    def _list_shallow(self, client: GitHubClient, ref: RepoRef) -> List[TreeEntry]:
        try:
            root_payload = client.get_json(
                client.repo_path(ref.owner, ref.name, "contents"), timeout=self.listing_timeout
            )
        except GitHubNotFound as exc:
            raise RepoNotFoundError(ref.full_name) from exc
        entries = self._entries_from_listing(root_payload)

        source_dir = self._pick_source_directory(entries)
        if source_dir is None:
            return entries

        try:
            sub_payload = client.get_json(
                client.repo_path(ref.owner, ref.name, "contents", quote(source_dir.path)),
                timeout=self.listing_timeout,
            )
        except GitHubNotFound:
            self.logger.debug("Source directory %s listed as empty (404)", source_dir.path)
            return entries
        except RateLimitedError:
            raise
        except SourceUnavailableError as exc:
            self.logger.warning("Skipping %s listing: %s", source_dir.path, exc)
            return entries
        return entries + self._entries_from_listing(sub_payload)

    def _list_deep(self, client: GitHubClient, ref: RepoRef) -> Tuple[List[TreeEntry], bool]:
        try:
            repo_payload = client.get_json(
                client.repo_path(ref.owner, ref.name), timeout=self.listing_timeout
            )
        except GitHubNotFound as exc:
            raise RepoNotFoundError(ref.full_name) from exc

        branch = "main"
        if isinstance(repo_payload, dict) and isinstance(repo_payload.get("default_branch"), str):
            branch = repo_payload["default_branch"]

        tree_path = client.repo_path(ref.owner, ref.name, "git", "trees", quote(branch, safe=""))
        try:
            tree_payload = client.get_json(f"{tree_path}?recursive=1", timeout=self.listing_timeout)
        except GitHubNotFound as exc:
            raise SourceUnavailableError(
                f'Could not access file tree for branch "{branch}".', status=404
            ) from exc

        if not isinstance(tree_payload, dict):
            raise SourceUnavailableError("GitHub returned an unexpected tree payload")
        truncated = bool(tree_payload.get("truncated"))
        if truncated:
            self.logger.warning(
                "Repository tree for %s is too large and was truncated by the GitHub API.",
                ref.full_name,
            )
        return self._entries_from_listing(tree_payload.get("tree")), truncated

    @staticmethod
    def _entries_from_listing(payload: Any) -> List[TreeEntry]:
        if not isinstance(payload, list):
            raise SourceUnavailableError("GitHub returned an unexpected directory listing")
        entries: List[TreeEntry] = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            path = item.get("path")
            kind = _KIND_BY_TYPE.get(str(item.get("type")))
            if not isinstance(path, str) or not path or kind is None:
                continue
            size = item.get("size")
            handle = item.get("url")
            entries.append(
                TreeEntry(
                    path=path,
                    kind=kind,
                    size_bytes=size if isinstance(size, int) else None,
                    fetch_handle=handle if isinstance(handle, str) else None,
                )
            )
        return entries

    @staticmethod
    def _pick_source_directory(entries: Sequence[TreeEntry]) -> TreeEntry | None:
        directories = {entry.path: entry for entry in entries if not entry.is_file}
        for name in SOURCE_DIRECTORIES:
            if name in directories:
                return directories[name]
        return None

    def _tree_paths(self, entries: Sequence[TreeEntry]) -> List[str]:
        if self.strategy == DEEP:
            paths = [entry.path for entry in entries if entry.is_file]
        else:
            paths = [entry.path if entry.is_file else f"{entry.path}/" for entry in entries]
        return paths[: self.max_tree_paths]

    # file contents

    def _fetch_files(
        self,
        client: GitHubClient,
        ref: RepoRef,
        selected: Sequence[TreeEntry],
        cancel_event: threading.Event | None,
    ) -> List[FileContent]:
        if not selected:
            return []
        self._check_cancelled(cancel_event)

        executor = ThreadPoolExecutor(
            max_workers=len(selected), thread_name_prefix="reposense-fetch"
        )
        deadline = time.monotonic() + self.file_timeout + _RESULT_GRACE_SECONDS
        files: List[FileContent] = []
        try:
            futures = [executor.submit(self._fetch_file, client, ref, entry) for entry in selected]
            for entry, future in zip(selected, futures):
                self._check_cancelled(cancel_event)
                try:
                    content = future.result(timeout=max(0.0, deadline - time.monotonic()))
                except FutureTimeout:
                    self.logger.debug("Dropping %s: fetch timed out", entry.path)
                    continue
                if content is not None:
                    files.append(content)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return files

    def _fetch_file(
        self, client: GitHubClient, ref: RepoRef, entry: TreeEntry
    ) -> FileContent | None:
        handle = entry.fetch_handle or client.repo_path(
            ref.owner, ref.name, "contents", quote(entry.path)
        )
        try:
            payload = client.get_json(handle, timeout=self.file_timeout)
        except RepoSenseError as exc:
            self.logger.debug("Dropping %s: %s", entry.path, exc)
            return None
        text = decode_content(payload)
        if text is None:
            self.logger.debug("Dropping %s: content missing or not base64 text", entry.path)
            return None
        return FileContent(path=entry.path, text=text)

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError("Analysis cancelled")

    def _default_client(self, credential: str | None) -> GitHubClient:
        return GitHubClient(credential, base_url=self.api_base_url)


__all__ = ["ContextFetcher", "DEEP", "SHALLOW", "SOURCE_DIRECTORIES", "decode_content"]

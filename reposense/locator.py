"""Repository reference parsing."""

from __future__ import annotations

from urllib.parse import urlsplit

from .models import RepoRef

ALLOWED_HOSTS = frozenset({"github.com", "www.github.com"})


def parse_repo_ref(raw: str | None, *, hosts: frozenset[str] = ALLOWED_HOSTS) -> RepoRef | None:
    """Return the owner/name pair encoded in ``raw`` or ``None`` when it is not usable.

    Accepts full URLs as well as bare ``github.com/owner/name`` strings. The first two
    path segments are taken verbatim; case and any ``.git`` suffix are preserved.
    """
    if not raw or not isinstance(raw, str):
        return None
    candidate = raw.strip()
    if not candidate:
        return None
    if "://" not in candidate:
        candidate = f"https://{candidate}"

    try:
        parts = urlsplit(candidate)
        host = parts.hostname
        parts.port  # raises ValueError for malformed ports
    except ValueError:
        return None

    if parts.scheme not in {"http", "https"} or not host or host not in hosts:
        return None

    segments = [segment for segment in parts.path.split("/") if segment]
    if len(segments) < 2:
        return None
    return RepoRef(owner=segments[0], name=segments[1])


__all__ = ["ALLOWED_HOSTS", "parse_repo_ref"]

"""GitHub context acquisition."""

from .client import GitHubClient, GitHubNotFound
from .fetcher import ContextFetcher, decode_content

__all__ = ["ContextFetcher", "GitHubClient", "GitHubNotFound", "decode_content"]

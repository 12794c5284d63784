"""Error taxonomy for the analysis pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_REFERENCE = "invalid_reference"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    BACKEND_FAILURE = "backend_failure"
    PARSE_FAILURE = "parse_failure"
    CANCELLED = "cancelled"


class BackendErrorCategory(str, Enum):
    """User-readable categories for generation backend failures."""

    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA_EXCEEDED = "quota_exceeded"
    SERVICE_UNAVAILABLE = "service_unavailable"
    MALFORMED_RESPONSE = "malformed_response"


class RepoSenseError(RuntimeError):
    """Base class for every failure raised by reposense components."""

    kind: ErrorKind = ErrorKind.UNAVAILABLE


class InvalidReferenceError(RepoSenseError):
    kind = ErrorKind.INVALID_REFERENCE


class RepoNotFoundError(RepoSenseError):
    """Raised when the target repository is absent or private."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, full_name: str) -> None:
        super().__init__(
            f'Repository "{full_name}" not found. It might be private or does not exist.'
        )
        self.full_name = full_name


class RateLimitedError(RepoSenseError):
    """Raised by the hosting client on 403/429; the fetcher degrades to fallback."""

    kind = ErrorKind.RATE_LIMITED


class SourceUnavailableError(RepoSenseError):
    """Non-2xx, network or timeout failure talking to the hosting API."""

    kind = ErrorKind.UNAVAILABLE

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class BackendError(RepoSenseError):
    kind = ErrorKind.BACKEND_FAILURE

    def __init__(self, category: BackendErrorCategory, message: str) -> None:
        super().__init__(message)
        self.category = category


class ReportParseError(RepoSenseError):
    """Raised only when the final structured response is not valid JSON."""

    kind = ErrorKind.PARSE_FAILURE


class AnalysisCancelledError(RepoSenseError):
    kind = ErrorKind.CANCELLED


__all__ = [
    "AnalysisCancelledError",
    "BackendError",
    "BackendErrorCategory",
    "ErrorKind",
    "InvalidReferenceError",
    "RateLimitedError",
    "RepoNotFoundError",
    "RepoSenseError",
    "ReportParseError",
    "SourceUnavailableError",
]

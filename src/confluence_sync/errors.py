"""Error taxonomy for confluence_sync.

Every error raised by the client, converter, writer or engine is a
``ConfluenceSyncError`` carrying an explicit ``kind`` discriminant, so
callers can ``match`` on ``error.kind`` instead of inspecting ad hoc
attributes such as HTTP status codes.

Propagation policy:

* Listing-phase errors (authentication, permission, malformed query, rate
  limit, API, network) abort a sync pass and reach the caller.
* ``ConversionError`` and ``FileWriteError`` are per-document: the engine
  records them and moves on.  History-save failures are the exception and
  propagate.
* ``PathTraversalError`` refuses a single write with no fallback.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of error kinds."""

    AUTHENTICATION = "authentication"
    PERMISSION_DENIED = "permission_denied"
    MALFORMED_QUERY = "malformed_query"
    RATE_LIMITED = "rate_limited"
    API_ERROR = "api_error"
    NETWORK = "network"
    CONVERSION = "conversion"
    FILE_WRITE = "file_write"
    PATH_TRAVERSAL = "path_traversal"
    CONFIGURATION = "configuration"


class ConfluenceSyncError(Exception):
    """Base class for all confluence_sync errors.

    Subclasses set the class attributes ``kind`` (the discriminant) and
    ``recoverable`` (whether retrying at a higher layer may succeed).

    Args:
        message: Human-readable description.
        details: Optional structured context (page id, path, status code).
    """

    kind: ErrorKind = ErrorKind.API_ERROR
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    def __str__(self) -> str:
        return self.message


class AuthenticationError(ConfluenceSyncError):
    """Credentials rejected (HTTP 401) after the refresh attempt."""

    kind = ErrorKind.AUTHENTICATION
    recoverable = True


class PermissionDeniedError(ConfluenceSyncError):
    """The account may not read the requested content (HTTP 403)."""

    kind = ErrorKind.PERMISSION_DENIED


class MalformedQueryError(ConfluenceSyncError):
    """The CQL query was rejected (HTTP 400)."""

    kind = ErrorKind.MALFORMED_QUERY


class RateLimitError(ConfluenceSyncError):
    """Too many requests (HTTP 429).

    ``retry_after`` is the server-suggested wait in seconds.  No backoff is
    performed here; the condition is surfaced to the caller.
    """

    kind = ErrorKind.RATE_LIMITED
    recoverable = True

    def __init__(
        self,
        message: str,
        retry_after: float = 0.0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message, {"retry_after": retry_after, **(details or {})}
        )
        self.retry_after = retry_after


class ConfluenceAPIError(ConfluenceSyncError):
    """Any other non-success API response."""

    kind = ErrorKind.API_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message, {"status_code": status_code, **(details or {})}
        )
        self.status_code = status_code


class NetworkError(ConfluenceSyncError):
    """Connection failure or timeout."""

    kind = ErrorKind.NETWORK
    recoverable = True


class ConversionError(ConfluenceSyncError):
    """Storage-format to Markdown conversion failed for one page."""

    kind = ErrorKind.CONVERSION

    def __init__(
        self,
        message: str,
        page_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, {"page_id": page_id, **(details or {})})
        self.page_id = page_id


class FileWriteError(ConfluenceSyncError):
    """Reading or writing a local file failed."""

    kind = ErrorKind.FILE_WRITE


class PathTraversalError(FileWriteError):
    """A target path tried to escape the sync folder."""

    kind = ErrorKind.PATH_TRAVERSAL


class ConfigurationError(ConfluenceSyncError):
    """Invalid configuration (for example an empty enabled filter)."""

    kind = ErrorKind.CONFIGURATION

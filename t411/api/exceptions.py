"""Errors raised by the T411 API client."""
from typing import Optional


class T411Error(Exception):
    """Base class for every error raised by this package."""


class ApiError(T411Error):
    """The service answered with an ``{"error", "code"}`` payload."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.message = message
        self.code = code
        super().__init__(f"({code}) {message}" if code is not None else message)


class AuthenticationError(ApiError):
    """Login was rejected or its response could not be understood."""


class NotAuthenticatedError(T411Error):
    """An operation requiring a session was attempted without one."""


class NetworkError(T411Error):
    """Transport failure or non-2xx HTTP status."""


class ParseError(T411Error):
    """Response body is not in the expected shape."""


class IngestError(T411Error):
    """A torrent could not be decomposed into its entry and status parts."""


class IngestTimeoutError(IngestError):
    """An ingestion task did not finish within its timeout."""

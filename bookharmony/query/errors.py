"""Failure taxonomy for backend proxy requests.

Every failure is raised once to the caller of `execute()` (or of `await builder`); nothing in the
query layer retries.
"""

from __future__ import annotations

NETWORK_ERROR_MESSAGE = (
    "Unable to connect to the server. Please check your internet connection and try again. "
    "If the problem persists, the service may be temporarily unavailable."
)
SESSION_EXPIRED_MESSAGE = "Session expired. Please sign in again."


class QueryError(RuntimeError):
    """Base class for all backend proxy request failures."""


class ConfigurationError(QueryError):
    """Raised when the project id or server URL is missing. No request is sent."""


class SessionExpiredError(QueryError):
    """Raised on HTTP 401/403 after the stored session has been invalidated."""

    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE, *, status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code


class HTTPQueryError(QueryError):
    """A non-2xx response from the backend proxy."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClientQueryError(HTTPQueryError):
    """4xx response (other than 401/403)."""


class ServerQueryError(HTTPQueryError):
    """5xx response, or a success response whose body is not JSON."""


class NetworkError(QueryError):
    """The request never reached the server or no response came back."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE) -> None:
        super().__init__(message)


class AuthError(QueryError):
    """Raised when a sign-up, sign-in or OAuth call is rejected by the backend."""

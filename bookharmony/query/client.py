"""Transport for query requests to the backend proxy.

`QueryClient.execute()` is the single execution routine behind both `builder.execute()` and
`await builder`. It performs at most one HTTP request and classifies the outcome:

    - 2xx       -> parsed JSON body, returned verbatim
    - 401/403   -> session invalidated, redirect to sign-in, `SessionExpiredError`
    - other 4xx -> `ClientQueryError` (logged at WARNING)
    - 5xx       -> `ServerQueryError` (logged at ERROR)
    - transport -> `NetworkError` with a generic, user-safe message (logged at WARNING)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from bookharmony.auth.navigation import LoggingNavigator, Navigator
from bookharmony.auth.session import SessionStore
from bookharmony.config.settings import Settings, load_settings
from bookharmony.query.builder import QueryBuilder
from bookharmony.query.errors import (
    ClientQueryError,
    ConfigurationError,
    NetworkError,
    ServerQueryError,
    SessionExpiredError,
)
from bookharmony.query.schema import QueryRequest

logger = logging.getLogger(__name__)

_POSSIBLE_NETWORK_CAUSES = (
    "Network connectivity issues",
    "Backend server is down or unreachable",
    "Invalid backend URL",
    "TLS or proxy configuration problem",
)


@asynccontextmanager
async def open_http_client(http_client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the shared HTTP client, or a short-lived one when none is configured."""

    if http_client is not None:
        yield http_client
        return

    async with httpx.AsyncClient() as client:
        yield client


def error_body_message(response: httpx.Response) -> str | None:
    """Return the JSON body's `error` or `message` field, if the body carries one."""

    try:
        body = response.json()
    except ValueError:
        return None

    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def error_message_from_response(response: httpx.Response) -> str:
    """Extract a human-readable message from an error response (`HTTP <code>: <reason>` fallback)."""

    message = error_body_message(response)
    if message:
        return message
    return f"HTTP {response.status_code}: {response.reason_phrase}"


class QueryClient:
    """Executes `QueryRequest`s against `{server_url}/api/projects/{project_id}/query`.

    Settings are resolved through `settings_loader` on every execution, so a missing project id or
    server URL is reported on first use and configuration changes are picked up without a restart.
    """

    def __init__(
            self,
            *,
            session: SessionStore,
            navigator: Navigator | None = None,
            settings_loader: Callable[[], Settings] = load_settings,
            http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.session = session
        self.navigator = navigator or LoggingNavigator()
        self._settings_loader = settings_loader
        self._http_client = http_client

    def from_(self, collection: str) -> QueryBuilder:
        """Start a new builder for `collection`."""

        return QueryBuilder(collection, self)

    def settings(self) -> Settings:
        return self._settings_loader()

    def auth_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.session.access_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @asynccontextmanager
    async def http(self) -> AsyncIterator[httpx.AsyncClient]:
        async with open_http_client(self._http_client) as client:
            yield client

    async def execute(self, request: QueryRequest) -> Any:
        """Send one request and return the parsed JSON response body."""

        settings = self.settings()
        try:
            backend = settings.backend()
        except ConfigurationError as exc:
            logger.error("configuration error collection=%s: %s", request.collection, exc)
            raise

        operation = request.effective_operation.value
        url = backend.query_url
        headers = self.auth_headers()

        try:
            async with self.http() as client:
                response = await client.post(url, content=request.to_json(), headers=headers)
        except httpx.TransportError as exc:
            logger.warning(
                "network error url=%s collection=%s operation=%s error=%r possible_causes=%s",
                url,
                request.collection,
                operation,
                exc,
                "; ".join(_POSSIBLE_NETWORK_CAUSES),
            )
            raise NetworkError() from exc

        if not response.is_success:
            self._raise_for_status(response, request=request, url=url, sign_in_path=settings.sign_in_path)

        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "invalid JSON response status=%d collection=%s operation=%s url=%s",
                response.status_code,
                request.collection,
                operation,
                url,
            )
            raise ServerQueryError(
                "Invalid response from server", status_code=response.status_code
            ) from exc

    def _raise_for_status(
            self,
            response: httpx.Response,
            *,
            request: QueryRequest,
            url: str,
            sign_in_path: str,
    ) -> None:
        status = response.status_code
        operation = request.effective_operation.value

        if status in (401, 403):
            logger.warning(
                "session rejected status=%d collection=%s operation=%s",
                status,
                request.collection,
                operation,
            )
            self.session.invalidate()
            self.navigator.redirect(sign_in_path)
            raise SessionExpiredError(status_code=status)

        message = error_message_from_response(response)
        if 400 <= status < 500:
            logger.warning(
                "query error status=%d collection=%s operation=%s url=%s message=%s",
                status,
                request.collection,
                operation,
                url,
                message,
            )
            raise ClientQueryError(message, status_code=status)

        logger.error(
            "query error status=%d collection=%s operation=%s url=%s message=%s",
            status,
            request.collection,
            operation,
            url,
            message,
        )
        raise ServerQueryError(message, status_code=status)

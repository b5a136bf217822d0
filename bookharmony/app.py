"""Application composition root.

This module wires together configuration, local session storage, the shared HTTP client and the
query client used by every service.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from bookharmony.auth.client import BackendAuthClient
from bookharmony.auth.navigation import LoggingNavigator, Navigator
from bookharmony.auth.session import SessionStore
from bookharmony.auth.storage import JsonFileStorage, KeyValueStorage
from bookharmony.config.settings import Settings, load_settings
from bookharmony.query.client import QueryClient


@dataclass(frozen=True)
class App:
    """Shared application dependencies for services and the CLI."""

    settings: Settings
    session: SessionStore
    http: httpx.AsyncClient
    client: QueryClient
    auth: BackendAuthClient

    async def aclose(self) -> None:
        await self.http.aclose()


def create_app(
        settings: Settings,
        *,
        storage: KeyValueStorage | None = None,
        navigator: Navigator | None = None,
        settings_loader: Callable[[], Settings] = load_settings,
        transport: httpx.AsyncBaseTransport | None = None,
) -> App:
    """Create the application container.

    Note:
        The returned HTTP client must be closed with `await app.aclose()` at shutdown.
    """

    session = SessionStore(storage or JsonFileStorage(settings.session_store_path))
    http = httpx.AsyncClient(transport=transport)
    client = QueryClient(
        session=session,
        navigator=navigator or LoggingNavigator(),
        settings_loader=settings_loader,
        http_client=http,
    )
    return App(
        settings=settings,
        session=session,
        http=http,
        client=client,
        auth=BackendAuthClient(client),
    )

"""Pytest configuration.

The repository uses a flat layout without requiring an installed package. This conftest ensures
tests can import from the `bookharmony.*` namespace when running `pytest` locally, and wires the
query client to a fake backend proxy.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import httpx
import pytest

# Ensure `import bookharmony...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from bookharmony.auth.navigation import LoggingNavigator  # noqa: E402
from bookharmony.auth.session import SESSION_STORAGE_KEY, SessionStore  # noqa: E402
from bookharmony.auth.storage import MemoryStorage  # noqa: E402
from bookharmony.config.settings import Settings  # noqa: E402
from bookharmony.query.client import QueryClient  # noqa: E402
from tests.helpers import FakeBackend, make_settings  # noqa: E402


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def session(storage: MemoryStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def signed_in(storage: MemoryStorage) -> MemoryStorage:
    storage.set_item(
        SESSION_STORAGE_KEY,
        json.dumps({"access_token": "tok-123", "user": {"id": "u1", "email": "reader@example.com"}}),
    )
    return storage


@pytest.fixture
def navigator() -> LoggingNavigator:
    return LoggingNavigator()


@pytest.fixture
def client(
        backend: FakeBackend,
        settings: Settings,
        session: SessionStore,
        navigator: LoggingNavigator,
) -> QueryClient:
    return QueryClient(
        session=session,
        navigator=navigator,
        settings_loader=lambda: settings,
        http_client=httpx.AsyncClient(transport=backend.transport()),
    )

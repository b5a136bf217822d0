"""Session-state service.

The stored session record (a JSON object with at least `access_token`) lives in local storage under
`SESSION_STORAGE_KEY`. `SessionStore` is the only writer besides the sign-in flow, and it notifies
subscribers on every change, including forced invalidation after an HTTP 401/403.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from bookharmony.auth.storage import KeyValueStorage

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "anyx.auth.session"


class SessionUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: str


class AuthSession(BaseModel):
    """A stored credential bundle."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str | None = None
    user: SessionUser | None = None


SessionListener = Callable[[AuthSession | None], None]


class SessionStore:
    """Read, persist and invalidate the session record; broadcast changes to subscribers."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._listeners: list[SessionListener] = []

    def current(self) -> AuthSession | None:
        """Return the stored session, or `None` if absent or malformed.

        A malformed record is logged and otherwise ignored; it never raises.
        """

        raw = self._storage.get_item(SESSION_STORAGE_KEY)
        if not raw:
            return None

        try:
            return AuthSession.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("failed to parse stored auth session: %s", exc)
            return None

    def access_token(self) -> str | None:
        session = self.current()
        if session is None or not session.access_token:
            return None
        return session.access_token

    def save(self, session: AuthSession) -> None:
        self._storage.set_item(SESSION_STORAGE_KEY, session.model_dump_json(exclude_none=True))
        self._notify(session)

    def invalidate(self) -> None:
        """Remove the stored session and notify subscribers with `None`."""

        self._storage.remove_item(SESSION_STORAGE_KEY)
        self._notify(None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            # noinspection PyBroadException
            try:
                listener(session)
            except Exception:
                logger.exception("session listener failed listener=%r", listener)

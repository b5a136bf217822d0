"""Backend-proxy authentication.

Sign-up, sign-in and OAuth initiation go to `{server_url}/api/projects/{project_id}/auth/...`.
A successful sign-in stores the returned session record, which the query client then reads for its
bearer credential.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx
from pydantic import ValidationError

from bookharmony.auth.session import AuthSession, SessionUser
from bookharmony.query.client import QueryClient, error_body_message
from bookharmony.query.errors import AuthError, NetworkError

logger = logging.getLogger(__name__)

OAuthProvider = Literal["google", "github", "azure", "facebook", "gitlab", "bitbucket"]


class BackendAuthClient:
    """Authentication against the backend proxy, sharing the query client's session and HTTP."""

    def __init__(self, client: QueryClient) -> None:
        self._client = client

    async def _post(self, action: str, body: dict[str, Any], *, default_error: str) -> Any:
        backend = self._client.settings().backend()
        url = backend.auth_url(action)

        try:
            async with self._client.http() as http:
                response = await http.post(
                    url, json=body, headers={"Content-Type": "application/json"}
                )
        except httpx.TransportError as exc:
            logger.warning("network error url=%s action=%s error=%r", url, action, exc)
            raise NetworkError() from exc

        if not response.is_success:
            message = error_body_message(response) or default_error
            logger.warning("auth request failed status=%d action=%s", response.status_code, action)
            raise AuthError(message)

        try:
            return response.json()
        except ValueError as exc:
            raise AuthError(default_error) from exc

    async def sign_up(self, email: str, password: str) -> Any:
        return await self._post(
            "signup", {"email": email, "password": password}, default_error="Signup failed"
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in and persist the session; subscribers are notified of the new session."""

        data = await self._post(
            "login", {"email": email, "password": password}, default_error="Login failed"
        )
        record = data.get("session", data) if isinstance(data, dict) else data
        try:
            session = AuthSession.model_validate(record)
        except ValidationError as exc:
            raise AuthError("Login failed: unexpected session format") from exc

        self._client.session.save(session)
        logger.info("signed in user_id=%s", session.user.id if session.user else None)
        return session

    async def sign_in_with_oauth(
            self,
            provider: OAuthProvider,
            redirect_to: str,
    ) -> str:
        """Start an OAuth flow; the navigator is sent to the provider URL, which is also returned."""

        data = await self._post(
            f"oauth/{provider}",
            {"redirect_to": redirect_to},
            default_error="OAuth initiation failed",
        )
        auth_url = data.get("auth_url") if isinstance(data, dict) else None
        if not auth_url:
            raise AuthError("OAuth initiation failed")

        self._client.navigator.redirect(auth_url)
        return auth_url

    def sign_out(self) -> None:
        self._client.session.invalidate()

    def get_session(self) -> AuthSession | None:
        return self._client.session.current()

    def get_user(self) -> SessionUser | None:
        session = self.get_session()
        return session.user if session else None

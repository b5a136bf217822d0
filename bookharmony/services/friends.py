"""Friend discovery, friend requests and friendships.

Friendships are stored in both directions (`user_id -> friend_id` and the reverse), so "my friends"
is a single-column lookup. Listing operations degrade to an empty list on backend failures;
mutations log and re-raise.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from bookharmony.models import FriendRequest, FriendRequestStatus, User
from bookharmony.query.client import QueryClient
from bookharmony.query.errors import QueryError
from bookharmony.services.rows import first_row, index_by, rows_of, unique

logger = logging.getLogger(__name__)

USER_SEARCH_LIMIT = 10


class FriendRequestError(ValueError):
    """Raised when a friend request cannot be sent, accepted or declined."""


def default_username(email: str, user_id: str) -> str:
    return f"{email.split('@')[0]}_{user_id[:8]}"


class FriendService:
    def __init__(self, client: QueryClient) -> None:
        self._client = client

    async def _find_user(self, column: str, value: str) -> User | None:
        row = first_row(await self._client.from_("users").select().eq(column, value).limit(1))
        return User.model_validate(row) if row else None

    async def _users_by_id(self, user_ids: list[str]) -> dict[str, User]:
        if not user_ids:
            return {}
        rows = rows_of(await self._client.from_("users").select().in_("id", unique(user_ids)))
        return {user_id: User.model_validate(row) for user_id, row in index_by(rows).items()}

    async def ensure_user_exists(self, user_id: str, email: str, username: str | None = None) -> User:
        """Return the profile for `user_id`, creating it on first sign-in."""

        try:
            existing = await self._find_user("id", user_id)
            if existing is not None:
                return existing

            values = {
                "id": user_id,
                "email": email,
                "username": username or default_username(email, user_id),
                "display_name": email.split("@")[0],
            }
            created = first_row(await self._client.from_("users").insert(values))
        except QueryError:
            logger.error("failed to ensure user exists user_id=%s", user_id)
            raise

        return User.model_validate(created or values)

    async def search_users_by_username(self, query: str) -> list[User]:
        query = (query or "").strip()
        if not query:
            return []

        try:
            rows = rows_of(
                await self._client.from_("users")
                .select()
                .ilike("username", f"%{query}%")
                .limit(USER_SEARCH_LIMIT)
            )
        except QueryError:
            logger.error("failed to search users query=%s", query)
            raise

        return [User.model_validate(row) for row in rows]

    async def send_friend_request(self, requester_id: str, recipient_username: str) -> FriendRequest:
        try:
            recipient = await self._find_user("username", recipient_username)
            if recipient is None:
                raise FriendRequestError("User not found")

            if recipient.id == requester_id:
                raise FriendRequestError("You cannot send a friend request to yourself")

            existing_request = first_row(
                await self._client.from_("friend_requests")
                .select()
                .eq("requester_id", requester_id)
                .eq("recipient_id", recipient.id)
                .limit(1)
            )
            if existing_request:
                raise FriendRequestError("Friend request already sent")

            existing_friendship = first_row(
                await self._client.from_("friendships")
                .select()
                .eq("user_id", requester_id)
                .eq("friend_id", recipient.id)
                .eq("status", "accepted")
                .limit(1)
            )
            if existing_friendship:
                raise FriendRequestError("Already friends")

            values = {
                "requester_id": requester_id,
                "recipient_id": recipient.id,
                "status": FriendRequestStatus.pending.value,
            }
            created = first_row(await self._client.from_("friend_requests").insert(values))
        except (QueryError, FriendRequestError) as exc:
            logger.error("failed to send friend request requester_id=%s: %s", requester_id, exc)
            raise

        if created is None:
            raise QueryError("Failed to send friend request: no row returned")
        return FriendRequest.model_validate(created)

    async def _pending_requests(self, column: str, user_id: str, other_column: str) -> list[FriendRequest]:
        requests = rows_of(
            await self._client.from_("friend_requests")
            .select()
            .eq(column, user_id)
            .eq("status", FriendRequestStatus.pending.value)
            .order("created_at", ascending=False)
        )
        if not requests:
            return []

        users = await self._users_by_id([r[other_column] for r in requests])
        other = other_column.removesuffix("_id")
        return [
            FriendRequest.model_validate({**r, other: users.get(r[other_column])})
            for r in requests
        ]

    async def get_incoming_requests(self, user_id: str) -> list[FriendRequest]:
        try:
            return await self._pending_requests("recipient_id", user_id, "requester_id")
        except QueryError as exc:
            logger.warning("failed to load incoming requests user_id=%s: %s", user_id, exc)
            return []

    async def get_outgoing_requests(self, user_id: str) -> list[FriendRequest]:
        try:
            return await self._pending_requests("requester_id", user_id, "recipient_id")
        except QueryError as exc:
            logger.warning("failed to load outgoing requests user_id=%s: %s", user_id, exc)
            return []

    async def _find_request_for_recipient(self, request_id: str, user_id: str) -> FriendRequest:
        row = first_row(
            await self._client.from_("friend_requests")
            .select()
            .eq("id", request_id)
            .eq("recipient_id", user_id)
            .limit(1)
        )
        if row is None:
            raise FriendRequestError("Friend request not found")
        return FriendRequest.model_validate(row)

    async def _set_request_status(self, request_id: str, status: FriendRequestStatus) -> None:
        await self._client.from_("friend_requests").update(
            {"status": status.value, "updated_at": datetime.now(UTC).isoformat()}
        ).eq("id", request_id)

    async def accept_friend_request(self, request_id: str, user_id: str) -> None:
        """Accept a pending request addressed to `user_id` and create both friendship rows."""

        try:
            request = await self._find_request_for_recipient(request_id, user_id)
            await self._set_request_status(request_id, FriendRequestStatus.accepted)
            await self._client.from_("friendships").insert(
                [
                    {
                        "user_id": request.requester_id,
                        "friend_id": request.recipient_id,
                        "status": "accepted",
                    },
                    {
                        "user_id": request.recipient_id,
                        "friend_id": request.requester_id,
                        "status": "accepted",
                    },
                ]
            )
        except (QueryError, FriendRequestError) as exc:
            logger.error("failed to accept friend request request_id=%s: %s", request_id, exc)
            raise

    async def decline_friend_request(self, request_id: str, user_id: str) -> None:
        try:
            await self._find_request_for_recipient(request_id, user_id)
            await self._set_request_status(request_id, FriendRequestStatus.declined)
        except (QueryError, FriendRequestError) as exc:
            logger.error("failed to decline friend request request_id=%s: %s", request_id, exc)
            raise

    async def friend_ids(self, user_id: str) -> list[str]:
        friendships = rows_of(
            await self._client.from_("friendships")
            .select()
            .eq("user_id", user_id)
            .eq("status", "accepted")
        )
        return unique(f["friend_id"] for f in friendships)

    async def get_friends(self, user_id: str) -> list[User]:
        try:
            friend_ids = await self.friend_ids(user_id)
            if not friend_ids:
                return []
            users = await self._users_by_id(friend_ids)
        except QueryError as exc:
            logger.warning("failed to load friends user_id=%s: %s", user_id, exc)
            return []

        return list(users.values())

    async def remove_friend(self, user_id: str, friend_id: str) -> None:
        """Delete the friendship in both directions."""

        try:
            await self._client.from_("friendships").delete().eq("user_id", user_id).eq("friend_id", friend_id)
            await self._client.from_("friendships").delete().eq("user_id", friend_id).eq("friend_id", user_id)
        except QueryError:
            logger.error("failed to remove friend user_id=%s friend_id=%s", user_id, friend_id)
            raise

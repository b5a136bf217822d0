"""Browse the books owned by a user's friends.

Joins are done client-side: friendships -> friends' `user_books` -> `books` -> owners (`users`).
Backend failures degrade to an empty result.
"""

from __future__ import annotations

import logging
from typing import Any

from bookharmony.models import Book, FriendBook
from bookharmony.query.client import QueryClient
from bookharmony.query.errors import QueryError
from bookharmony.services.friends import FriendService
from bookharmony.services.rows import first_row, index_by, rows_of, unique

logger = logging.getLogger(__name__)


def _friend_book(book: Book, owner_id: str, owner: dict[str, Any] | None) -> FriendBook:
    return FriendBook(
        **book.model_dump(),
        owner_id=owner_id,
        owner_username=(owner or {}).get("username") or "Unknown",
        owner_display_name=(owner or {}).get("display_name"),
    )


class FriendsCatalogService:
    def __init__(self, client: QueryClient) -> None:
        self._client = client
        self._friends = FriendService(client)

    async def _owners(self, owner_ids: list[str]) -> dict[Any, dict[str, Any]]:
        return index_by(
            rows_of(await self._client.from_("users").select().in_("id", unique(owner_ids)))
        )

    async def _search(self, user_id: str, search_query: str) -> list[FriendBook]:
        friend_ids = await self._friends.friend_ids(user_id)
        if not friend_ids:
            return []

        user_books = rows_of(
            await self._client.from_("user_books").select().in_("user_id", friend_ids)
        )
        if not user_books:
            return []

        book_ids = unique(ub["book_id"] for ub in user_books)
        books = [
            Book.model_validate(row)
            for row in rows_of(await self._client.from_("books").select().in_("id", book_ids))
        ]
        if not books:
            return []

        books = [b for b in books if b.matches(search_query or "", include_isbn=True)]
        owners = await self._owners(friend_ids)

        owners_by_book: dict[str, list[str]] = {}
        for ub in user_books:
            owners_by_book.setdefault(ub["book_id"], []).append(ub["user_id"])

        # Only owners whose profile could be loaded are listed.
        return [
            _friend_book(book, owner_id, owners[owner_id])
            for book in books
            for owner_id in owners_by_book.get(book.id or "", [])
            if owner_id in owners
        ]

    async def search_friends_catalog(self, user_id: str, search_query: str = "") -> list[FriendBook]:
        """One entry per (book, friend owning it), optionally filtered by title/author/ISBN."""

        try:
            return await self._search(user_id, search_query)
        except QueryError as exc:
            logger.warning("failed to search friends catalog user_id=%s: %s", user_id, exc)
            return []

    async def _details(self, user_id: str, book_id: str) -> list[FriendBook]:
        friend_ids = await self._friends.friend_ids(user_id)
        if not friend_ids:
            return []

        user_books = rows_of(
            await self._client.from_("user_books")
            .select()
            .eq("book_id", book_id)
            .in_("user_id", friend_ids)
        )
        if not user_books:
            return []

        row = first_row(await self._client.from_("books").select().eq("id", book_id).limit(1))
        if row is None:
            return []
        book = Book.model_validate(row)

        owner_ids = [ub["user_id"] for ub in user_books]
        owners = await self._owners(owner_ids)
        return [_friend_book(book, owner_id, owners.get(owner_id)) for owner_id in owner_ids]

    async def get_friend_book_details(self, user_id: str, book_id: str) -> list[FriendBook]:
        """Which friends own `book_id`; owners without a profile are shown as "Unknown"."""

        try:
            return await self._details(user_id, book_id)
        except QueryError as exc:
            logger.warning(
                "failed to load friend book details user_id=%s book_id=%s: %s", user_id, book_id, exc
            )
            return []

"""A user's own book collection: listing, adding by ISBN, read status, dashboard stats."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bookharmony.models import Book, UserBook
from bookharmony.query.client import QueryClient
from bookharmony.query.errors import QueryError
from bookharmony.services.lending import LendingService
from bookharmony.services.rows import first_row, index_by, rows_of, unique

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionStats:
    total_books: int
    read_books: int
    friends_count: int
    active_lendings: int


def filter_books(user_books: list[UserBook], term: str) -> list[UserBook]:
    """Keep the collection entries whose book title or author contains `term` (case-insensitive)."""

    return [ub for ub in user_books if ub.book is not None and ub.book.matches(term)]


class CollectionService:
    def __init__(self, client: QueryClient) -> None:
        self._client = client

    async def list_books(self, user_id: str) -> list[UserBook]:
        """Return the user's collection entries with their `book` attached."""

        user_books = rows_of(await self._client.from_("user_books").select().eq("user_id", user_id))
        if not user_books:
            return []

        book_ids = unique(ub["book_id"] for ub in user_books)
        books = index_by(rows_of(await self._client.from_("books").select().in_("id", book_ids)))

        return [
            UserBook.model_validate({**ub, "book": books.get(ub["book_id"])})
            for ub in user_books
        ]

    async def _find_or_create_book(self, book: Book) -> Book:
        existing = first_row(
            await self._client.from_("books").select().eq("isbn", book.isbn).limit(1)
        )
        if existing:
            return Book.model_validate(existing)

        values = book.model_dump(exclude={"id"}, exclude_none=True)
        created = first_row(await self._client.from_("books").insert(values))
        if created is None:
            # The proxy did not echo the inserted row; read it back by ISBN.
            created = first_row(
                await self._client.from_("books").select().eq("isbn", book.isbn).limit(1)
            )
        if created is None:
            raise QueryError(f"Book {book.isbn} was not stored")
        return Book.model_validate(created)

    async def add_book(self, user_id: str, book: Book) -> bool:
        """Add `book` to the user's collection, storing the book itself first if needed.

        Returns:
            `False` if the book was already in the collection, `True` otherwise.
        """

        try:
            stored = await self._find_or_create_book(book)
            assert stored.id is not None

            already = first_row(
                await self._client.from_("user_books")
                .select("id")
                .eq("user_id", user_id)
                .eq("book_id", stored.id)
                .limit(1)
            )
            if already:
                return False

            await self._client.from_("user_books").insert(
                {"user_id": user_id, "book_id": stored.id, "is_read": False}
            )
        except QueryError:
            logger.error("failed to add book isbn=%s user_id=%s", book.isbn, user_id)
            raise

        logger.info("book added isbn=%s user_id=%s", book.isbn, user_id)
        return True

    async def set_read_status(self, user_book_id: str, is_read: bool) -> None:
        await self._client.from_("user_books").update({"is_read": is_read}).eq("id", user_book_id)

    async def toggle_read_status(self, user_book_id: str, current_status: bool) -> bool:
        """Flip the read flag and return the new value."""

        new_status = not current_status
        await self.set_read_status(user_book_id, new_status)
        return new_status

    async def stats(self, user_id: str) -> CollectionStats:
        user_books = await self.list_books(user_id)

        friendships = rows_of(
            await self._client.from_("friendships")
            .select()
            .eq("user_id", user_id)
            .eq("status", "accepted")
        )
        lendings = await LendingService(self._client).list_active(user_id)

        return CollectionStats(
            total_books=len(user_books),
            read_books=sum(1 for ub in user_books if ub.is_read),
            friends_count=len(friendships),
            active_lendings=len(lendings),
        )

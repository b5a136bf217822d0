"""ISBN lookup: the local `books` collection first, then the Open Library books API."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from bookharmony.models import Book
from bookharmony.query.client import QueryClient
from bookharmony.query.errors import NetworkError
from bookharmony.services.rows import first_row

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r"^\s*(\d+)")


class BookNotFoundError(ValueError):
    """Raised when no book matches an ISBN in either the local collection or Open Library."""


class CatalogUnavailableError(RuntimeError):
    """Raised when Open Library answers with a non-2xx status or an unreadable body."""


def _published_year(publish_date: Any) -> int | None:
    if not isinstance(publish_date, str):
        return None
    match = _LEADING_INT_RE.match(publish_date)
    return int(match.group(1)) if match else None


def book_from_open_library(isbn: str, data: dict[str, Any]) -> Book:
    """Map one Open Library `jscmd=data` entry to a `Book` (not yet stored)."""

    authors = data.get("authors") or []
    author = authors[0].get("name") if authors and isinstance(authors[0], dict) else None
    cover = data.get("cover") or {}

    return Book(
        isbn=isbn,
        title=data.get("title") or "Unknown Title",
        author=author or "Unknown Author",
        cover_url=cover.get("large") or cover.get("medium"),
        summary=data.get("notes") or data.get("subtitle"),
        published_year=_published_year(data.get("publish_date")),
    )


class CatalogService:
    def __init__(self, client: QueryClient) -> None:
        self._client = client

    async def find_stored(self, isbn: str) -> Book | None:
        result = await self._client.from_("books").select().eq("isbn", isbn).limit(1)
        row = first_row(result)
        return Book.model_validate(row) if row else None

    async def fetch_open_library(self, isbn: str) -> Book | None:
        """Look `isbn` up in Open Library; `None` when Open Library has no entry for it."""

        base_url = self._client.settings().openlibrary_url
        url = f"{base_url}/api/books"
        params = {"bibkeys": f"ISBN:{isbn}", "format": "json", "jscmd": "data"}

        try:
            async with self._client.http() as http:
                response = await http.get(url, params=params)
        except httpx.TransportError as exc:
            logger.warning("open library unreachable url=%s isbn=%s error=%r", url, isbn, exc)
            raise NetworkError() from exc

        if not response.is_success:
            logger.warning("open library error status=%d isbn=%s", response.status_code, isbn)
            raise CatalogUnavailableError(f"Open Library returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogUnavailableError("Open Library returned an invalid response") from exc

        entry = payload.get(f"ISBN:{isbn}") if isinstance(payload, dict) else None
        if not entry:
            return None
        return book_from_open_library(isbn, entry)

    async def lookup_isbn(self, isbn: str) -> Book:
        """Return the stored book for `isbn`, or its Open Library record.

        Raises:
            ValueError: If `isbn` is blank.
            BookNotFoundError: If neither source knows the ISBN.
        """

        isbn = isbn.strip()
        if not isbn:
            raise ValueError("Please enter an ISBN")

        stored = await self.find_stored(isbn)
        if stored is not None:
            return stored

        book = await self.fetch_open_library(isbn)
        if book is None:
            raise BookNotFoundError(f"No book found with ISBN {isbn}")

        logger.info("isbn resolved via open library isbn=%s", isbn)
        return book

"""Tests for ISBN lookup against the local `books` collection and Open Library."""

from __future__ import annotations

import httpx
import pytest

from bookharmony.query.client import QueryClient
from bookharmony.services.catalog import (
    BookNotFoundError,
    CatalogService,
    CatalogUnavailableError,
    book_from_open_library,
)
from tests.helpers import FakeBackend

ISBN = "9780743273565"

OPEN_LIBRARY_ENTRY = {
    "title": "The Great Gatsby",
    "authors": [{"name": "F. Scott Fitzgerald"}, {"name": "Someone Else"}],
    "cover": {"medium": "https://covers.example/m.jpg", "large": "https://covers.example/l.jpg"},
    "subtitle": "A novel",
    "publish_date": "2004",
}


def _open_library(payload: dict):
    def handle(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/books"
        assert request.url.params["bibkeys"] == f"ISBN:{ISBN}"
        assert request.url.params["jscmd"] == "data"
        return httpx.Response(200, json=payload)

    return handle


def test_book_from_open_library_mapping() -> None:
    book = book_from_open_library(ISBN, OPEN_LIBRARY_ENTRY)

    assert book.title == "The Great Gatsby"
    assert book.author == "F. Scott Fitzgerald"
    assert book.cover_url == "https://covers.example/l.jpg"
    assert book.summary == "A novel"
    assert book.published_year == 2004
    assert book.id is None


def test_book_from_open_library_defaults() -> None:
    book = book_from_open_library(ISBN, {"publish_date": "March 2004", "notes": "Reissue"})

    assert book.title == "Unknown Title"
    assert book.author == "Unknown Author"
    assert book.cover_url is None
    assert book.summary == "Reissue"
    assert book.published_year is None


@pytest.mark.asyncio
async def test_lookup_prefers_stored_book(client: QueryClient, backend: FakeBackend) -> None:
    backend.on(
        "books",
        data=[{"id": "b1", "isbn": ISBN, "title": "Gatsby", "author": "Fitzgerald"}],
        where={"isbn": ISBN},
    )

    book = await CatalogService(client).lookup_isbn(f"  {ISBN} ")

    assert book.id == "b1"
    assert all(r.url.path.endswith("/query") for r in backend.requests)


@pytest.mark.asyncio
async def test_lookup_falls_back_to_open_library(client: QueryClient, backend: FakeBackend) -> None:
    backend.other = _open_library({f"ISBN:{ISBN}": OPEN_LIBRARY_ENTRY})

    book = await CatalogService(client).lookup_isbn(ISBN)

    assert book.title == "The Great Gatsby"
    assert book.isbn == ISBN
    assert len(backend.requests) == 2


@pytest.mark.asyncio
async def test_lookup_unknown_isbn(client: QueryClient, backend: FakeBackend) -> None:
    backend.other = _open_library({})

    with pytest.raises(BookNotFoundError):
        await CatalogService(client).lookup_isbn(ISBN)


@pytest.mark.asyncio
async def test_lookup_blank_isbn(client: QueryClient, backend: FakeBackend) -> None:
    with pytest.raises(ValueError, match="Please enter an ISBN"):
        await CatalogService(client).lookup_isbn("   ")

    assert backend.requests == []


@pytest.mark.asyncio
async def test_open_library_error_status(client: QueryClient, backend: FakeBackend) -> None:
    backend.other = lambda _request: httpx.Response(503, text="maintenance")

    with pytest.raises(CatalogUnavailableError):
        await CatalogService(client).fetch_open_library(ISBN)

"""Tests for the command-line surface wired through the composition root."""

from __future__ import annotations

import logging

import pytest

from bookharmony import cli
from bookharmony.app import App, create_app
from bookharmony.auth.session import SESSION_STORAGE_KEY
from bookharmony.auth.storage import MemoryStorage
from bookharmony.cli import NotSignedInError, _run, build_parser
from tests.helpers import FakeBackend, make_settings


def _app(backend: FakeBackend, storage: MemoryStorage) -> App:
    settings = make_settings()
    return create_app(
        settings,
        storage=storage,
        settings_loader=lambda: settings,
        transport=backend.transport(),
    )


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.asyncio
async def test_lookup_prints_stored_book(
        backend: FakeBackend, storage: MemoryStorage, capsys: pytest.CaptureFixture[str]
) -> None:
    backend.on(
        "books",
        data=[{"id": "b1", "isbn": "9780547928227", "title": "The Hobbit", "author": "J.R.R. Tolkien",
               "published_year": 1937}],
    )
    app = _app(backend, storage)

    code = await _run(build_parser().parse_args(["lookup", "9780547928227"]), app)
    await app.aclose()

    assert code == 0
    assert capsys.readouterr().out.strip() == "The Hobbit by J.R.R. Tolkien (1937) [ISBN 9780547928227]"


@pytest.mark.asyncio
async def test_collection_commands_require_sign_in(backend: FakeBackend, storage: MemoryStorage) -> None:
    app = _app(backend, storage)

    with pytest.raises(NotSignedInError):
        await _run(build_parser().parse_args(["books"]), app)
    await app.aclose()

    assert backend.requests == []


@pytest.mark.asyncio
async def test_books_lists_current_users_collection(
        backend: FakeBackend, signed_in: MemoryStorage, capsys: pytest.CaptureFixture[str]
) -> None:
    backend.on(
        "user_books",
        data=[{"id": "ub1", "user_id": "u1", "book_id": "b1", "is_read": True}],
        where={"user_id": "u1"},
    )
    backend.on("books", data=[{"id": "b1", "isbn": "1", "title": "Dune", "author": "Frank Herbert"}])
    app = _app(backend, signed_in)

    code = await _run(build_parser().parse_args(["books", "--search", "dune"]), app)
    await app.aclose()

    assert code == 0
    assert capsys.readouterr().out.strip() == "[x] ub1  Dune by Frank Herbert [ISBN 1]"
    assert backend.requests[0].headers["authorization"] == "Bearer tok-123"


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch, backend: FakeBackend, storage: MemoryStorage) -> list[str | None]:
    """Point `_main` at the fake backend; returns the log levels passed to `configure_logging`."""

    settings = make_settings(LOG_LEVEL="DEBUG")
    levels: list[str | None] = []
    monkeypatch.setattr(cli, "load_settings", lambda: settings)
    monkeypatch.setattr(cli, "configure_logging", levels.append)
    monkeypatch.setattr(cli, "create_app", lambda s: _app(backend, storage))
    return levels


@pytest.mark.asyncio
async def test_main_reports_expired_session(
        wired: list[str | None],
        backend: FakeBackend,
        signed_in: MemoryStorage,
        capsys: pytest.CaptureFixture[str],
) -> None:
    backend.on("user_books", status=401, json_body={"error": "jwt expired"})

    code = await cli._main(build_parser().parse_args(["books"]))

    assert code == 1
    assert "Run `bookharmony login`." in capsys.readouterr().err
    assert signed_in.get_item(SESSION_STORAGE_KEY) is None
    assert wired == ["DEBUG"]


@pytest.mark.asyncio
async def test_main_reports_invalid_input(
        wired: list[str | None], backend: FakeBackend, capsys: pytest.CaptureFixture[str]
) -> None:
    code = await cli._main(build_parser().parse_args(["--log-level", "warning", "lookup", " "]))

    assert code == 1
    assert capsys.readouterr().err.strip() == "error: Please enter an ISBN"
    assert backend.requests == []
    assert wired == ["warning"]


@pytest.mark.asyncio
async def test_main_logs_unexpected_failures(
        monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def broken_settings() -> None:
        raise RuntimeError("Invalid environment configuration: boom")

    monkeypatch.setattr(cli, "load_settings", broken_settings)

    with caplog.at_level(logging.ERROR, logger="bookharmony.cli"):
        code = await cli._main(build_parser().parse_args(["books"]))

    assert code == 1
    assert "command failed command=books" in caplog.text

"""Command-line entry point.

Usage examples:

    python -m bookharmony.cli login --email reader@example.com
    python -m bookharmony.cli add 9780743273565
    python -m bookharmony.cli books --search gatsby
    python -m bookharmony.cli friends-catalog tolkien
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from collections.abc import Sequence

from dotenv import load_dotenv

from bookharmony.app import App, create_app
from bookharmony.config.logging import configure_logging
from bookharmony.config.settings import load_settings
from bookharmony.models import Book
from bookharmony.query.errors import QueryError, SessionExpiredError
from bookharmony.services.catalog import CatalogService
from bookharmony.services.collection import CollectionService, filter_books
from bookharmony.services.friends import FriendService
from bookharmony.services.friends_catalog import FriendsCatalogService

logger = logging.getLogger(__name__)


class NotSignedInError(ValueError):
    """Raised when a command needs the current user but no session is stored."""


def _current_user_id(app: App) -> str:
    user = app.auth.get_user()
    if user is None:
        raise NotSignedInError("Not signed in. Run `bookharmony login` first.")
    return user.id


def _format_book(book: Book) -> str:
    year = f" ({book.published_year})" if book.published_year else ""
    return f"{book.title} by {book.author}{year} [ISBN {book.isbn}]"


async def _run(args: argparse.Namespace, app: App) -> int:
    command = args.command

    if command == "signup":
        password = args.password or getpass.getpass("Password: ")
        await app.auth.sign_up(args.email, password)
        print("Account created. Check your inbox, then run `login`.")
        return 0

    if command == "login":
        password = args.password or getpass.getpass("Password: ")
        session = await app.auth.sign_in(args.email, password)
        if session.user is not None:
            await FriendService(app.client).ensure_user_exists(session.user.id, session.user.email)
        print("Signed in.")
        return 0

    if command == "logout":
        app.auth.sign_out()
        print("Signed out.")
        return 0

    if command == "lookup":
        book = await CatalogService(app.client).lookup_isbn(args.isbn)
        print(_format_book(book))
        if book.summary:
            print(book.summary)
        return 0

    user_id = _current_user_id(app)

    if command == "add":
        book = await CatalogService(app.client).lookup_isbn(args.isbn)
        added = await CollectionService(app.client).add_book(user_id, book)
        print(f"Added: {_format_book(book)}" if added else "Already in your collection.")
        return 0

    if command == "books":
        user_books = await CollectionService(app.client).list_books(user_id)
        for ub in filter_books(user_books, args.search or ""):
            assert ub.book is not None
            mark = "x" if ub.is_read else " "
            print(f"[{mark}] {ub.id}  {_format_book(ub.book)}")
        return 0

    if command == "toggle-read":
        service = CollectionService(app.client)
        current = {ub.id: ub.is_read for ub in await service.list_books(user_id)}
        if args.user_book_id not in current:
            raise ValueError(f"No collection entry {args.user_book_id}")
        new_status = await service.toggle_read_status(args.user_book_id, current[args.user_book_id])
        print("Marked as read." if new_status else "Marked as unread.")
        return 0

    if command == "stats":
        stats = await CollectionService(app.client).stats(user_id)
        print(f"books={stats.total_books} read={stats.read_books} "
              f"friends={stats.friends_count} active_lendings={stats.active_lendings}")
        return 0

    friends = FriendService(app.client)

    if command == "friends":
        for friend in await friends.get_friends(user_id):
            print(f"{friend.username}  {friend.display_name or ''}".rstrip())
        return 0

    if command == "find-users":
        for user in await friends.search_users_by_username(args.query):
            print(user.username)
        return 0

    if command == "friend-request":
        await friends.send_friend_request(user_id, args.username)
        print(f"Friend request sent to {args.username}.")
        return 0

    if command == "requests":
        for request in await friends.get_incoming_requests(user_id):
            who = request.requester.username if request.requester else request.requester_id
            print(f"{request.id}  from {who}")
        return 0

    if command == "accept":
        await friends.accept_friend_request(args.request_id, user_id)
        print("Friend request accepted.")
        return 0

    if command == "friends-catalog":
        for item in await FriendsCatalogService(app.client).search_friends_catalog(user_id, args.query or ""):
            print(f"{_format_book(item)}  owned by {item.owner_username}")
        return 0

    raise ValueError(f"Unknown command: {command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bookharmony", description="Track your books and your friends' books.")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (e.g. DEBUG).")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("signup", "login"):
        p = sub.add_parser(name, help=f"{name.capitalize()} with email and password.")
        p.add_argument("--email", required=True)
        p.add_argument("--password", help="Prompted for when omitted.")

    sub.add_parser("logout", help="Forget the stored session.")
    sub.add_parser("lookup", help="Look a book up by ISBN.").add_argument("isbn")
    sub.add_parser("add", help="Add a book to your collection by ISBN.").add_argument("isbn")
    sub.add_parser("books", help="List your collection.").add_argument("--search")
    sub.add_parser("toggle-read", help="Flip the read flag of a collection entry.").add_argument("user_book_id")
    sub.add_parser("stats", help="Show collection statistics.")
    sub.add_parser("friends", help="List your friends.")
    sub.add_parser("find-users", help="Search users by username.").add_argument("query")
    sub.add_parser("friend-request", help="Send a friend request.").add_argument("username")
    sub.add_parser("requests", help="List incoming friend requests.")
    sub.add_parser("accept", help="Accept a friend request.").add_argument("request_id")
    sub.add_parser("friends-catalog", help="Search your friends' books.").add_argument("query", nargs="?")
    return parser


async def _main(args: argparse.Namespace) -> int:
    app: App | None = None
    # noinspection PyBroadException
    try:
        settings = load_settings()
        configure_logging(args.log_level or settings.log_level)

        app = create_app(settings)
        return await _run(args, app)
    except SessionExpiredError as exc:
        print(f"{exc} Run `bookharmony login`.", file=sys.stderr)
        return 1
    except (QueryError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except Exception:
        logger.exception("command failed command=%s", args.command)
        return 1
    finally:
        if app is not None:
            await app.aclose()


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""

    args = build_parser().parse_args(argv)
    load_dotenv(".env")
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()

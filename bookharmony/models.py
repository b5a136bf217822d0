"""Domain records returned by the backend proxy (Pydantic models).

Rows come back as plain JSON objects; unknown columns are ignored so that schema additions on the
backend do not break clients.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class FriendRequestStatus(StrEnum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"


class LendingStatus(StrEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    returned = "returned"


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class User(Record):
    id: str
    email: str
    username: str
    display_name: str | None = None
    created_at: str | None = None


class Book(Record):
    id: str | None = None
    isbn: str
    title: str
    author: str
    cover_url: str | None = None
    summary: str | None = None
    published_year: int | None = None

    def matches(self, term: str, *, include_isbn: bool = False) -> bool:
        """Case-insensitive substring match of `term` against title and author.

        A blank term matches every book.
        """

        needle = term.strip().lower()
        if not needle:
            return True
        if needle in self.title.lower() or needle in self.author.lower():
            return True
        return include_isbn and needle in self.isbn


class UserBook(Record):
    id: str
    user_id: str
    book_id: str
    is_read: bool = False
    added_at: str | None = None
    book: Book | None = None


class FriendRequest(Record):
    id: str
    requester_id: str
    recipient_id: str
    status: FriendRequestStatus
    created_at: str | None = None
    updated_at: str | None = None
    requester: User | None = None
    recipient: User | None = None


class Friendship(Record):
    id: str | None = None
    user_id: str
    friend_id: str
    status: str
    created_at: str | None = None


class FriendBook(Book):
    owner_id: str
    owner_username: str
    owner_display_name: str | None = None


class LendingRequest(Record):
    id: str | None = None
    book_id: str
    owner_id: str
    borrower_id: str
    status: LendingStatus = LendingStatus.pending
    requested_at: str | None = None
    approved_at: str | None = None
    returned_at: str | None = None

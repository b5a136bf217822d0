"""Lending requests between friends."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from bookharmony.models import LendingRequest, LendingStatus
from bookharmony.query.client import QueryClient
from bookharmony.services.rows import first_row, rows_of

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (LendingStatus.pending, LendingStatus.approved)


class LendingError(ValueError):
    """Raised for lending requests that violate lending rules."""


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class LendingService:
    def __init__(self, client: QueryClient) -> None:
        self._client = client

    async def request_loan(self, book_id: str, owner_id: str, borrower_id: str) -> LendingRequest:
        if owner_id == borrower_id:
            raise LendingError("You cannot borrow your own book")

        values = {
            "book_id": book_id,
            "owner_id": owner_id,
            "borrower_id": borrower_id,
            "status": LendingStatus.pending.value,
        }
        created = first_row(await self._client.from_("lending_requests").insert(values))
        logger.info("loan requested book_id=%s owner_id=%s borrower_id=%s", book_id, owner_id, borrower_id)
        return LendingRequest.model_validate(created or values)

    async def list_active(self, user_id: str) -> list[LendingRequest]:
        """Pending or approved requests where the user is the owner or the borrower."""

        statuses = [s.value for s in ACTIVE_STATUSES]
        seen: set[str] = set()
        requests: list[LendingRequest] = []
        # No OR filter on the proxy: one query per role, merged by id.
        for role in ("owner_id", "borrower_id"):
            rows = rows_of(
                await self._client.from_("lending_requests")
                .select()
                .eq(role, user_id)
                .in_("status", statuses)
                .order("requested_at", ascending=False)
            )
            for row in rows:
                row_id = row.get("id")
                if row_id is not None:
                    if row_id in seen:
                        continue
                    seen.add(row_id)
                requests.append(LendingRequest.model_validate(row))

        return requests

    async def _set_status(self, request_id: str, values: dict) -> None:
        await self._client.from_("lending_requests").update(values).eq("id", request_id)
        logger.info("loan updated request_id=%s status=%s", request_id, values["status"])

    async def approve(self, request_id: str) -> None:
        await self._set_status(
            request_id, {"status": LendingStatus.approved.value, "approved_at": _now_iso()}
        )

    async def reject(self, request_id: str) -> None:
        await self._set_status(request_id, {"status": LendingStatus.rejected.value})

    async def mark_returned(self, request_id: str) -> None:
        await self._set_status(
            request_id, {"status": LendingStatus.returned.value, "returned_at": _now_iso()}
        )

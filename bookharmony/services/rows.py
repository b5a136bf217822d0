"""Helpers for reading rows out of backend proxy responses and joining them client-side.

The proxy wraps results as `{"data": ...}` where `data` is a list of rows, a single row (single
mode), or null. The proxy has no relational joins, so related records are fetched with a second
`in_("id", ...)` query and attached by id.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def rows_of(result: Any) -> list[dict[str, Any]]:
    """Return the response rows as a list of dicts (empty when there is no data)."""

    data = result.get("data") if isinstance(result, dict) else result
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    return []


def first_row(result: Any) -> dict[str, Any] | None:
    rows = rows_of(result)
    return rows[0] if rows else None


def index_by(rows: Iterable[dict[str, Any]], key: str = "id") -> dict[Any, dict[str, Any]]:
    return {row[key]: row for row in rows if key in row}


def unique(values: Iterable[Any]) -> list[Any]:
    """De-duplicate while keeping first-seen order."""

    return list(dict.fromkeys(values))

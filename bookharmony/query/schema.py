"""Query request schema (Pydantic models).

This schema is the contract between the fluent `QueryBuilder` and the transport. The builder
accumulates state freely; at execution time it is reduced to a frozen `QueryRequest`, which is the
only thing the transport ever sees.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_COLUMNS = "*"


class Operation(StrEnum):
    """Supported operations on a remote collection."""

    select = "select"
    insert = "insert"
    update = "update"
    delete = "delete"


class FilterOperator(StrEnum):
    """Comparison operators understood by the backend proxy."""

    eq = "eq"
    neq = "neq"
    gt = "gt"
    gte = "gte"
    lt = "lt"
    lte = "lte"
    like = "like"
    ilike = "ilike"
    in_ = "in"
    is_ = "is"


class QueryFilter(BaseModel):
    """A single column/operator/value predicate."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    column: str
    operator: FilterOperator
    value: Any = None


class QueryOrder(BaseModel):
    """An ordering directive; directives apply in sequence order."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    column: str
    ascending: bool = True


class QueryRequest(BaseModel):
    """A fully reduced, immutable query request."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    collection: str = Field(min_length=1)
    operation: Operation | None = None
    columns: str = DEFAULT_COLUMNS
    filters: tuple[QueryFilter, ...] = ()
    order: tuple[QueryOrder, ...] = ()
    limit: int | None = None
    offset: int | None = None
    single: bool = False
    insert_values: tuple[dict[str, Any], ...] | None = None
    update_values: dict[str, Any] | None = None

    @property
    def effective_operation(self) -> Operation:
        """The operation sent on the wire (`select` when none was declared)."""

        return self.operation or Operation.select

    def payload(self) -> dict[str, Any]:
        """Return the JSON-ready request body for the backend proxy.

        Shape per operation:
            - select: `columns`, `filters`, `order`, `limit`/`offset` (only when set), `single`
            - insert: `values` (list), `select` (only for a non-default column selector)
            - update: `values` (map), `filters`, `select` (only for a non-default column selector)
            - delete: `filters`
        """

        operation = self.effective_operation
        body: dict[str, Any] = {"collection": self.collection, "operation": operation.value}
        filters = [f.model_dump(mode="json") for f in self.filters]
        values = self.model_dump(mode="json", include={"insert_values", "update_values"})

        if operation == Operation.insert:
            body["values"] = values["insert_values"] or []
            if self.columns != DEFAULT_COLUMNS:
                body["select"] = self.columns
        elif operation == Operation.update:
            body["values"] = values["update_values"] or {}
            body["filters"] = filters
            if self.columns != DEFAULT_COLUMNS:
                body["select"] = self.columns
        elif operation == Operation.delete:
            body["filters"] = filters
        else:
            body["columns"] = self.columns or DEFAULT_COLUMNS
            body["filters"] = filters
            body["order"] = [o.model_dump(mode="json") for o in self.order]
            if self.limit is not None:
                body["limit"] = self.limit
            if self.offset is not None:
                body["offset"] = self.offset
            body["single"] = self.single

        return body

    def to_json(self) -> bytes:
        """Encode the request body; identical requests encode to identical bytes."""

        return json.dumps(self.payload()).encode()

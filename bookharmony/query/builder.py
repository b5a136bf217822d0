"""Fluent query-intent builder.

The builder only records intent; nothing is sent until `execute()` is called or the builder is
awaited. Every configuration call returns the same builder so calls can be chained:

    rows = await client.from_("books").select().eq("isbn", isbn).limit(1)

A builder is meant to be used once per call site. Awaiting it twice sends two requests.
"""

from __future__ import annotations

from collections.abc import Generator, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from bookharmony.query.schema import (
    DEFAULT_COLUMNS,
    FilterOperator,
    Operation,
    QueryFilter,
    QueryOrder,
    QueryRequest,
)

if TYPE_CHECKING:
    from bookharmony.query.client import QueryClient


class QueryBuilder:
    """Accumulates one operation on a remote collection."""

    def __init__(self, collection: str, client: QueryClient) -> None:
        if not collection:
            raise ValueError("collection name must be a non-empty string")

        self._client = client
        self._collection = collection
        self._operation: Operation | None = None
        self._columns = DEFAULT_COLUMNS
        self._filters: list[QueryFilter] = []
        self._order: list[QueryOrder] = []
        self._limit: int | None = None
        self._offset: int | None = None
        self._single = False
        self._insert_values: list[dict[str, Any]] | None = None
        self._update_values: dict[str, Any] | None = None

    @property
    def collection(self) -> str:
        return self._collection

    def select(self, columns: str = DEFAULT_COLUMNS) -> QueryBuilder:
        self._columns = columns
        self._operation = Operation.select
        return self

    def _filter(self, column: str, operator: FilterOperator, value: Any) -> QueryBuilder:
        self._filters.append(QueryFilter(column=column, operator=operator, value=value))
        return self

    def eq(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(column, FilterOperator.eq, value)

    def neq(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(column, FilterOperator.neq, value)

    def gt(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(column, FilterOperator.gt, value)

    def gte(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(column, FilterOperator.gte, value)

    def lt(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(column, FilterOperator.lt, value)

    def lte(self, column: str, value: Any) -> QueryBuilder:
        return self._filter(column, FilterOperator.lte, value)

    def like(self, column: str, pattern: str) -> QueryBuilder:
        return self._filter(column, FilterOperator.like, pattern)

    def ilike(self, column: str, pattern: str) -> QueryBuilder:
        return self._filter(column, FilterOperator.ilike, pattern)

    def in_(self, column: str, values: Sequence[Any]) -> QueryBuilder:
        return self._filter(column, FilterOperator.in_, list(values))

    def is_(self, column: str, value: None = None) -> QueryBuilder:
        return self._filter(column, FilterOperator.is_, value)

    def order(self, column: str, *, ascending: bool = True) -> QueryBuilder:
        self._order.append(QueryOrder(column=column, ascending=ascending))
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._limit = count
        return self

    def offset(self, count: int) -> QueryBuilder:
        self._offset = count
        return self

    def single(self) -> QueryBuilder:
        self._single = True
        return self

    def insert(
            self,
            values: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    ) -> QueryBuilder:
        """Declare an insert of one record or a list of records.

        Filters added earlier are kept in the builder state (they are not serialized for inserts).
        """

        self._operation = Operation.insert
        if isinstance(values, Mapping):
            self._insert_values = [dict(values)]
        else:
            self._insert_values = [dict(v) for v in values]
        return self

    def update(self, values: Mapping[str, Any]) -> QueryBuilder:
        self._operation = Operation.update
        self._update_values = dict(values)
        return self

    def delete(self) -> QueryBuilder:
        self._operation = Operation.delete
        return self

    def build(self) -> QueryRequest:
        """Reduce the accumulated state into an immutable request."""

        return QueryRequest(
            collection=self._collection,
            operation=self._operation,
            columns=self._columns,
            filters=tuple(self._filters),
            order=tuple(self._order),
            limit=self._limit,
            offset=self._offset,
            single=self._single,
            insert_values=tuple(self._insert_values) if self._insert_values is not None else None,
            update_values=self._update_values,
        )

    def payload(self) -> dict[str, Any]:
        return self.build().payload()

    def to_json(self) -> bytes:
        return self.build().to_json()

    async def execute(self) -> Any:
        """Send the request and return the parsed JSON response body."""

        return await self._client.execute(self.build())

    def __await__(self) -> Generator[Any, None, Any]:
        return self.execute().__await__()

    def __repr__(self) -> str:
        operation = (self._operation or Operation.select).value
        return f"QueryBuilder(collection={self._collection!r}, operation={operation!r})"

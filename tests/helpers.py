"""Test doubles shared across test modules: settings factory and a fake backend proxy."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from bookharmony.config.settings import Settings

SERVER_URL = "https://api.example.test"
PROJECT_ID = "proj_test"
QUERY_URL = f"{SERVER_URL}/api/projects/{PROJECT_ID}/query"
OPENLIBRARY_URL = "https://openlibrary.example.test"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "PROJECT_ID": PROJECT_ID,
        "ANYX_SERVER_URL": SERVER_URL,
        "OPENLIBRARY_URL": OPENLIBRARY_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@dataclass
class Route:
    collection: str
    operation: str
    where: dict[str, Any]
    response: Callable[[], httpx.Response]


@dataclass
class FakeBackend:
    """Records every request and answers query payloads from registered routes.

    Routes match on collection, operation and (optionally) a subset of `eq` filters. The most
    recently registered matching route wins; unmatched queries answer `{"data": []}`. Requests to
    other paths (auth endpoints, Open Library) go to `other`.
    """

    requests: list[httpx.Request] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    other: Callable[[httpx.Request], httpx.Response] | None = None

    def on(
            self,
            collection: str,
            operation: str = "select",
            *,
            data: Any = None,
            status: int = 200,
            json_body: Any = None,
            where: dict[str, Any] | None = None,
    ) -> None:
        body = json_body if json_body is not None else {"data": data}
        self.routes.append(
            Route(collection, operation, where or {}, lambda: httpx.Response(status, json=body))
        )

    @property
    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith("/query")]

    def payloads_for(self, collection: str, operation: str | None = None) -> list[dict[str, Any]]:
        return [
            p
            for p in self.payloads
            if p["collection"] == collection and (operation is None or p["operation"] == operation)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not request.url.path.endswith("/query"):
            if self.other is None:
                return httpx.Response(404, json={"error": "no route"})
            return self.other(request)

        payload = json.loads(request.content)
        eq_filters = {
            f["column"]: f["value"] for f in payload.get("filters", []) if f["operator"] == "eq"
        }
        for route in reversed(self.routes):
            if route.collection != payload["collection"] or route.operation != payload["operation"]:
                continue
            if all(eq_filters.get(k) == v for k, v in route.where.items()):
                return route.response()
        return httpx.Response(200, json={"data": []})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

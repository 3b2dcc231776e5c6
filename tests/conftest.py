"""Test fixtures for the CRM desk.

Provides:
- FakeCRMApi: in-memory stand-in for the external CRM REST API, served
  through httpx.MockTransport, with hooks to fail or hold specific requests
- CRMApiClient, Notifier and BoardReconciler wired to the fake
- FastAPI test app with page services on app.state and an ASGI client
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.crmdesk.board.reconciler import BoardReconciler
from src.crmdesk.client.api import CRMApiClient
from src.crmdesk.config import get_settings
from src.crmdesk.notifications import Notifier

BASE_URL = "http://crm.test/api"


# ── In-Memory CRM API ───────────────────────────────────────────────────────


class FakeCRMApi:
    """In-memory CRM REST API.

    Records every request. ``fail()`` makes the next matching request answer
    with an error status, ``disconnect()`` makes it raise a transport error,
    ``garble()`` makes it answer with a body that cannot be decoded, and
    ``hold()`` parks it until the returned event is set.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {
            "companies": {},
            "contacts": {},
            "deals": {},
            "invoices": {},
            "tasks": {},
        }
        self.requests: list[httpx.Request] = []
        self._failures: dict[tuple[str, str], int] = {}
        self._disconnects: set[tuple[str, str]] = set()
        self._garbled: set[tuple[str, str]] = set()
        self._gates: dict[tuple[str, str], asyncio.Event] = {}
        self._next_id = 0
        self._next_invoice_number = 1001

    # ── Setup helpers ───────────────────────────────────────────────────

    def seed(self, collection: str, **fields: Any) -> dict[str, Any]:
        if "_id" not in fields:
            self._next_id += 1
            fields["_id"] = f"{collection}-{self._next_id}"
        self.collections[collection][fields["_id"]] = fields
        return fields

    def seed_deal(self, _id: str, title: str, amount: int = 0, status: str = "Open", **extra: Any):
        return self.seed("deals", _id=_id, title=title, amount=amount, status=status, **extra)

    def fail(self, method: str, path: str, status_code: int = 500) -> None:
        self._failures[(method, path)] = status_code

    def disconnect(self, method: str, path: str) -> None:
        self._disconnects.add((method, path))

    def garble(self, method: str, path: str) -> None:
        self._garbled.add((method, path))

    def hold(self, method: str, path: str) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(method, path)] = gate
        return gate

    def sent(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (path is None or _api_path(r) == path)
        ]

    @staticmethod
    def body(request: httpx.Request) -> dict[str, Any]:
        return json.loads(request.content)

    # ── Transport ───────────────────────────────────────────────────────

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, _api_path(request))

        gate = self._gates.pop(key, None)
        if gate is not None:
            await gate.wait()

        if key in self._disconnects:
            self._disconnects.discard(key)
            raise httpx.ConnectError("connection refused", request=request)
        if key in self._garbled:
            self._garbled.discard(key)
            return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip")
        if key in self._failures:
            return httpx.Response(self._failures.pop(key), json={"message": "Server error"})

        return self._route(request)

    def _route(self, request: httpx.Request) -> httpx.Response:
        parts = _api_path(request).strip("/").split("/")
        collection = parts[0]
        store = self.collections.get(collection)
        if store is None:
            return httpx.Response(404, json={"message": "Not found"})

        if collection == "invoices" and len(parts) == 3 and parts[1] == "download":
            if parts[2] not in store:
                return httpx.Response(404, json={"message": "Invoice not found"})
            number = store[parts[2]]["invoiceNumber"]
            return httpx.Response(
                200,
                content=b"%PDF-1.4 invoice",
                headers={
                    "content-type": "application/pdf",
                    "content-disposition": f'attachment; filename="invoice-{number}.pdf"',
                },
            )

        if len(parts) == 1:
            if request.method == "GET":
                return httpx.Response(200, json=[self._populate(r) for r in store.values()])
            if request.method == "POST":
                record = self._create(collection, json.loads(request.content))
                return httpx.Response(201, json=self._populate(record))

        if len(parts) == 2:
            record_id = parts[1]
            if record_id not in store:
                return httpx.Response(404, json={"message": "Not found"})
            if request.method == "PUT":
                update = json.loads(request.content)
                update.pop("_id", None)
                store[record_id].update(update)
                return httpx.Response(200, json=self._populate(store[record_id]))
            if request.method == "DELETE":
                del store[record_id]
                return httpx.Response(200, json={"message": "Deleted"})

        return httpx.Response(405, json={"message": "Method not allowed"})

    def _create(self, collection: str, body: dict[str, Any]) -> dict[str, Any]:
        if collection == "deals":
            body.setdefault("status", "Open")
        if collection == "invoices":
            body["invoiceNumber"] = self._next_invoice_number
            self._next_invoice_number += 1
        return self.seed(collection, **body)

    def _populate(self, record: dict[str, Any]) -> dict[str, Any]:
        """Resolve company/contact/deal ids to nested records, like the real API."""
        populated = dict(record)
        for field, collection, label in (
            ("company", "companies", "name"),
            ("contact", "contacts", "name"),
            ("deal", "deals", "title"),
        ):
            ref = populated.get(field)
            if isinstance(ref, str) and ref in self.collections[collection]:
                target = self.collections[collection][ref]
                populated[field] = {"_id": ref, label: target.get(label)}
        return populated


def _api_path(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/api")


# ── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture
def fake_api() -> FakeCRMApi:
    return FakeCRMApi()


@pytest.fixture
def api_client(fake_api: FakeCRMApi) -> CRMApiClient:
    return CRMApiClient(BASE_URL, timeout=5.0, transport=httpx.MockTransport(fake_api.handler))


@pytest.fixture
def notifier() -> Notifier:
    return Notifier(backlog=10)


@pytest.fixture
def board(api_client: CRMApiClient, notifier: Notifier) -> BoardReconciler:
    return BoardReconciler(api_client, notifier)


@pytest_asyncio.fixture
async def app_client(api_client: CRMApiClient) -> AsyncGenerator[tuple[AsyncClient, Any], None]:
    """ASGI client for the full app, with services bound to the fake API."""
    from src.crmdesk.main import create_app, init_services

    app = create_app()
    init_services(app, api_client, get_settings())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client, app

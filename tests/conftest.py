from __future__ import annotations

import asyncio
import json
import os
from typing import Any

os.environ.setdefault("ENV", "test")

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from jobpay.api.main import create_app  # noqa: E402
from jobpay.models.payment_models import Plan  # noqa: E402
from jobpay.services.payments_client import PaymentsClient  # noqa: E402

BASE_URL = "http://payments.test/api"


class FakePaymentsBackend:
    """Scriptable stand-in for the promo, payments and status endpoints.

    - ``promo_responses`` maps a code to ``(http_status, body)`` or an exception
    - ``initiate_response`` is ``(http_status, body)`` or an exception
    - ``status_script`` is consumed one item per status query: a status
      string, an exception to raise, or an ``httpx.Response``; once empty,
      ``default_status`` is returned
    - ``status_gate`` (an asyncio.Event) holds status queries until set;
      ``status_entered`` is set when a query is waiting on the gate
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.promo_responses: dict[str, Any] = {}
        self.initiate_response: Any = (201, {"transaction_id": "tx-1"})
        self.status_script: list[Any] = []
        self.default_status = "pending"
        self.status_gate: asyncio.Event | None = None
        self.status_entered: asyncio.Event | None = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/promo-codes/validate"):
            code = json.loads(request.content)["code"]
            return self._respond(self.promo_responses.get(code, (200, {"valid": False, "reason": "Unknown code"})))
        if request.method == "POST" and path.endswith("/payments"):
            return self._respond(self.initiate_response)
        if request.method == "GET" and path.endswith("/status"):
            if self.status_gate is not None:
                if self.status_entered is not None:
                    self.status_entered.set()
                await self.status_gate.wait()
            item = self.status_script.pop(0) if self.status_script else self.default_status
            if isinstance(item, Exception):
                raise item
            if isinstance(item, httpx.Response):
                return item
            return httpx.Response(200, json={"status": item})
        return httpx.Response(404, json={"error": "Not found"})

    @staticmethod
    def _respond(scripted: Any) -> httpx.Response:
        if isinstance(scripted, Exception):
            raise scripted
        status, body = scripted
        if isinstance(body, (str, bytes)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, suffix: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.path.endswith(suffix) and (method is None or r.method == method)
        ]

    @property
    def status_calls(self) -> int:
        return len(self.calls_to("/status"))

    def payment_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls_to("/payments", "POST")]


@pytest.fixture
def plan() -> Plan:
    return Plan(id="plan-1", slug="job-seeker-monthly", name="Job Seeker Monthly", amount=5000, duration_days=30)


@pytest.fixture
def backend() -> FakePaymentsBackend:
    return FakePaymentsBackend()


@pytest.fixture
def payments_client(backend: FakePaymentsBackend) -> PaymentsClient:
    return PaymentsClient(BASE_URL, timeout=1.0, transport=backend.transport())


@pytest.fixture
def api(payments_client: PaymentsClient):
    """TestClient kept open for the whole test so background polling keeps running."""
    app = create_app(payments_client=payments_client)
    with TestClient(app) as client:
        yield client

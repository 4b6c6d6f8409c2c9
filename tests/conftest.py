from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pytest

from gcashpay.storage.record_store import RecordStore
from gcashpay.utils.session_store import SessionStore


class FakeUisp:
    """In-memory stand-in for UispClient; records every created payment."""

    def __init__(
        self,
        clients: Optional[List[Dict[str, Any]]] = None,
        methods: Optional[List[Dict[str, Any]]] = None,
        payment_response: Any = None,
        fail_clients: bool = False,
        fail_methods: bool = False,
        fail_payment: bool = False,
    ) -> None:
        self.clients = clients if clients is not None else []
        self.methods = methods if methods is not None else []
        self.payment_response = payment_response if payment_response is not None else {"id": "pay_1"}
        self.fail_clients = fail_clients
        self.fail_methods = fail_methods
        self.fail_payment = fail_payment
        self.created: List[Dict[str, Any]] = []
        self.method_calls = 0

    async def list_clients(self) -> Any:
        if self.fail_clients:
            raise httpx.ConnectError("connection refused")
        return self.clients

    async def list_payment_methods(self) -> Any:
        self.method_calls += 1
        if self.fail_methods:
            raise httpx.ReadTimeout("timed out")
        return self.methods

    async def create_payment(self, payload: Dict[str, Any]) -> Any:
        self.created.append(payload)
        if self.fail_payment:
            request = httpx.Request("POST", "https://uisp.test/api/v1.0/payments")
            response = httpx.Response(422, request=request, json={"message": "Validation failed."})
            raise httpx.HTTPStatusError("Client error '422 Unprocessable Entity'", request=request, response=response)
        return self.payment_response

    async def aclose(self) -> None:
        pass


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def store(tmp_path) -> RecordStore:
    return RecordStore(tmp_path / "data" / "pending_payments.json")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions(clock: FakeClock) -> SessionStore:
    return SessionStore(default_ttl=600, clock=clock)


@pytest.fixture
def uisp() -> FakeUisp:
    return FakeUisp(
        clients=[
            {"id": 7, "userIdent": "ACC100", "firstName": "Ana", "lastName": "Reyes"},
            {"id": 8, "userIdent": "acc200", "firstName": "", "lastName": "", "companyName": "Bayan Corp"},
        ],
        methods=[
            {"id": "6efe0fa8-36b2-4dd1-b049-427bffc7d369", "name": "Cash"},
            {"id": "4145b5f5-3bbc-45e3-8fc5-9cda970c62fb", "name": "GCash"},
        ],
    )


@pytest.fixture
def fake_uisp():
    return FakeUisp

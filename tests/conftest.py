"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import copy
import inspect
import os
import sys
from collections.abc import Mapping
from typing import Any

import pytest

# Ensure src/ is on sys.path for tests so the src layout is used during test runs
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from did_v1.client import LedgerClient  # noqa: E402
from did_v1.constants import TICKET_SERVICE_KEY  # noqa: E402
from did_v1.errors import NotFoundError  # noqa: E402
from did_v1.schemas import LedgerRecord, LedgerStatus  # noqa: E402
from did_v1.settings import DidV1Settings  # noqa: E402

TICKET_SERVICE_URL = "https://ticket.ledger.test/tickets"

ELIGIBILITY_PROOF: dict[str, Any] = {
    "type": "Ed25519Signature2020",
    "proofPurpose": "assertionMethod",
    "verificationMethod": "did:v1:test:nym:z6MkTicketService#z6MkTicketService",
    "proofValue": "zTicket",
}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring an event loop")


def pytest_pyfunc_call(pyfuncitem: Any) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames  # type: ignore[attr-defined]
        }

        event_loop = asyncio.new_event_loop()
        try:
            event_loop.run_until_complete(pyfuncitem.obj(**call_kwargs))
        finally:
            event_loop.close()
        return True
    return None


class FakeLedger:
    """In-memory ledger transport recording every call it receives."""

    ticket_service_url = TICKET_SERVICE_URL
    eligibility_proof = ELIGIBILITY_PROOF

    def __init__(
        self,
        records: Mapping[str, Mapping[str, Any]] | None = None,
        *,
        meta: Mapping[str, Mapping[str, Any]] | None = None,
        omit_proof: bool = False,
        fail_send: Exception | None = None,
    ) -> None:
        self.records = {key: dict(value) for key, value in (records or {}).items()}
        self.meta = {key: dict(value) for key, value in (meta or {}).items()}
        self.omit_proof = omit_proof
        self.fail_send = fail_send
        self.calls: list[tuple[str, Any]] = []
        self.sent: list[dict[str, Any]] = []
        self._wrapper = LedgerClient(
            "ledger.test", mode="test", settings=DidV1Settings(DID_V1_MODE="test")
        )

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def get_record(self, id: str) -> LedgerRecord:
        self.calls.append(("get_record", id))
        if id not in self.records:
            raise NotFoundError("Record not found.", details={"url": id, "status": 404})
        return LedgerRecord(record=self.records[id], meta=self.meta.get(id, {}))

    async def get_status(self) -> LedgerStatus:
        self.calls.append(("get_status", None))
        return LedgerStatus.model_validate(
            {"service": {TICKET_SERVICE_KEY: {"id": TICKET_SERVICE_URL}}}
        )

    async def send_operation(self, operation: Mapping[str, Any]) -> dict[str, Any]:
        self.calls.append(("send_operation", operation.get("type")))
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append(copy.deepcopy(dict(operation)))
        return {"accepted": True, "type": operation.get("type")}

    def wrap(self, **kwargs: Any) -> dict[str, Any]:
        return self._wrapper.wrap(**kwargs)

    def _with_proof(self, operation: Mapping[str, Any]) -> dict[str, Any]:
        proved = copy.deepcopy(dict(operation))
        if not self.omit_proof:
            proved["proof"] = [dict(ELIGIBILITY_PROOF)]
        return proved

    async def get_ticket_service_proof(
        self, operation: Mapping[str, Any], ticket_service: str
    ) -> dict[str, Any]:
        self.calls.append(("get_ticket_service_proof", ticket_service))
        return self._with_proof(operation)

    async def send_to_accelerator(
        self, operation: Mapping[str, Any], *, hostname: str, auth_key: Any
    ) -> dict[str, Any]:
        self.calls.append(("send_to_accelerator", (hostname, auth_key.id)))
        return self._with_proof(operation)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def test_settings() -> DidV1Settings:
    return DidV1Settings(DID_V1_MODE="test")


@pytest.fixture
def make_ledger() -> type[FakeLedger]:
    return FakeLedger

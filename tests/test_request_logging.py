"""API 요청 로깅 테스트.

Request logging tests — one Axiom event per call, with the scheduling
identifiers and the engine error code as top-level fields.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.main import scheduling_error_handler
from app.middleware import axiom_logging
from app.middleware.axiom_logging import AxiomLoggingMiddleware, _domain_fields
from app.utils.exceptions import CapacityError, SchedulingError


class RecordingClient:
    """전송된 이벤트를 보관하는 Axiom 클라이언트 대역."""

    def __init__(self, token: str) -> None:
        self.token = token
        self.events: list[dict] = []

    def ingest_events(self, dataset: str, events: list[dict]) -> None:
        self.events.extend(events)


@pytest.fixture
def recorded(monkeypatch) -> list[RecordingClient]:
    clients: list[RecordingClient] = []

    def factory(token: str) -> RecordingClient:
        client = RecordingClient(token)
        clients.append(client)
        return client

    monkeypatch.setattr(settings, "AXIOM_API_TOKEN", "test-token")
    monkeypatch.setattr(settings, "AXIOM_DATASET", "scheduling-test")
    monkeypatch.setattr(axiom_logging, "AxiomClient", factory)
    return clients


def build_app() -> FastAPI:
    api = FastAPI()
    api.add_middleware(AxiomLoggingMiddleware)
    api.add_exception_handler(SchedulingError, scheduling_error_handler)

    @api.post("/shifts/{shift_id}/assign")
    async def assign(shift_id: str, body: dict) -> dict:
        raise CapacityError("cannot assign: shift already has 1 of 1 workers", shift_id=shift_id)

    @api.get("/facilities/{facility_id}/staffing")
    async def staffing(facility_id: str) -> dict:
        return {"facility_id": facility_id}

    @api.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return api


class TestDomainFields:
    def test_path_params_win(self):
        fields = _domain_fields({"shift_id": "s-path"}, None, {"shift_id": "s-body", "worker_id": "w-1"})
        assert fields == {"shift_id": "s-path", "worker_id": "w-1"}

    def test_ignores_non_dict_body(self):
        assert _domain_fields({}, {"new_status": "assigned"}, "(non-json body)") == {"new_status": "assigned"}


class TestAxiomLoggingMiddleware:
    async def test_error_event_carries_identifiers_and_code(self, recorded):
        transport = ASGITransport(app=build_app())
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            res = await ac.post("/shifts/abc/assign", json={"worker_id": "w-9", "password": "hunter2"})

        assert res.status_code == 409
        assert res.json()["code"] == "capacity_exceeded"

        [event] = recorded[0].events
        assert event["status_code"] == 409
        assert event["shift_id"] == "abc"
        assert event["worker_id"] == "w-9"
        assert event["route"] == "/shifts/{shift_id}/assign"
        assert event["error_code"] == "capacity_exceeded"
        assert event["error"] == "cannot assign: shift already has 1 of 1 workers"
        assert event["request_body"]["password"] == "***"

    async def test_success_and_skipped_paths(self, recorded):
        transport = ASGITransport(app=build_app())
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            await ac.get("/health")
            res = await ac.get("/facilities/f-1/staffing", params={"date": "2025-06-20"})

        assert res.status_code == 200
        [event] = recorded[0].events
        assert event["facility_id"] == "f-1"
        assert event["query_params"] == {"date": "2025-06-20"}
        assert "error" not in event

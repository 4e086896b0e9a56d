"""앱(직원용) API 테스트.

Worker app API tests — my shifts, open shifts, request and withdraw.
"""

import uuid
from datetime import date

from httpx import AsyncClient

from app.services.authorization_service import Actor
from app.services.lifecycle_service import lifecycle_service
from app.utils.concurrency import run_command
from tests.conftest import auth_header, make_shift, make_token, worker_actor

BASE = "/api/v1/app"
DAY = date(2025, 6, 20)


class TestMyShifts:
    async def test_lists_active_commitments(self, client: AsyncClient, db, directory, scheduler):
        """취소된 시프트는 내 시프트에서 빠집니다."""
        kept = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "15:00")
        dropped = await make_shift(db, scheduler, directory.facility_id, DAY, "15:00", "23:00")
        for shift_id in (kept, dropped):
            await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
        await run_command(db, lambda: lifecycle_service.cancel_shift(db, dropped, scheduler, "census low"))

        token = make_token(worker_actor(directory.rn_a))
        res = await client.get(f"{BASE}/my/shifts", headers=auth_header(token))
        assert res.status_code == 200
        assert [s["id"] for s in res.json()] == [str(kept)]

    async def test_actor_without_worker_id(self, client: AsyncClient):
        """직원 ID가 없는 토큰은 403."""
        token = make_token(Actor(id=uuid.uuid4(), role="worker", level=4))
        res = await client.get(f"{BASE}/my/shifts", headers=auth_header(token))
        assert res.status_code == 403
        assert res.json()["code"] == "forbidden"


class TestOpenShifts:
    async def test_only_requestable_shifts(self, client: AsyncClient, db, directory, scheduler):
        """전문분야/시설이 맞고 시간이 겹치지 않는 시프트만 보입니다."""
        match = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00", specialty="CNA")
        await make_shift(db, scheduler, directory.other_facility_id, DAY, "07:00", "19:00")
        clash = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 21), "09:00", "17:00")
        mine = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 21), "08:00", "12:00")
        await run_command(db, lambda: lifecycle_service.assign_worker(db, mine, directory.rn_a, scheduler))

        token = make_token(worker_actor(directory.rn_a))
        res = await client.get(f"{BASE}/open-shifts", params={"date_from": "2025-06-20"}, headers=auth_header(token))
        assert res.status_code == 200
        ids = [s["id"] for s in res.json()]
        assert ids == [str(match)]
        assert str(clash) not in ids

    async def test_inactive_worker_sees_nothing(self, client: AsyncClient, db, directory, scheduler):
        await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        token = make_token(worker_actor(directory.inactive_rn))
        res = await client.get(f"{BASE}/open-shifts", params={"date_from": "2025-06-20"}, headers=auth_header(token))
        assert res.json() == []


class TestRequestShift:
    async def test_request_and_withdraw(self, client: AsyncClient, db, directory, scheduler, scheduler_token):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        token = make_token(worker_actor(directory.rn_b))

        res = await client.post(
            f"{BASE}/shifts/{shift_id}/request", json={"note": "can stay late"}, headers=auth_header(token)
        )
        assert res.status_code == 201
        assert res.json()["status"] == "pending"
        assert res.json()["note"] == "can stay late"

        res = await client.get(f"/api/v1/admin/shifts/{shift_id}", headers=auth_header(scheduler_token))
        assert res.json()["status"] == "requested"

        res = await client.post(f"{BASE}/shifts/{shift_id}/request", headers=auth_header(token))
        assert res.status_code == 400

        res = await client.post(f"{BASE}/shifts/{shift_id}/withdraw", headers=auth_header(token))
        assert res.status_code == 200
        assert res.json()["status"] == "withdrawn"

        res = await client.post(f"{BASE}/shifts/{shift_id}/withdraw", headers=auth_header(token))
        assert res.status_code == 404

    async def test_request_wrong_specialty(self, client: AsyncClient, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        token = make_token(worker_actor(directory.cna))
        res = await client.post(f"{BASE}/shifts/{shift_id}/request", headers=auth_header(token))
        assert res.status_code == 422
        assert res.json()["context"]["reason"] == "specialty_mismatch"

    async def test_request_cancelled_shift(self, client: AsyncClient, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await run_command(db, lambda: lifecycle_service.cancel_shift(db, shift_id, scheduler, "census low"))

        token = make_token(worker_actor(directory.rn_a))
        res = await client.post(f"{BASE}/shifts/{shift_id}/request", headers=auth_header(token))
        assert res.status_code == 409
        assert res.json()["code"] == "invalid_transition"

"""충원 현황 계산 테스트.

Staffing calculator tests — pure projection and the per-shift and
per-date read endpoints.
"""

from datetime import date

import pytest
from httpx import AsyncClient

from app.services.staffing_service import calculate_staffing, display_status, percent_filled
from app.services.lifecycle_service import lifecycle_service
from app.utils.concurrency import run_command
from tests.conftest import auth_header, make_shift


class TestCalculateStaffing:
    """순수 계산 테스트."""

    @pytest.mark.parametrize(
        ("assigned", "required", "expected"),
        [(0, 2, 2), (1, 2, 1), (2, 2, 0), (3, 2, 0), (0, 1, 1)],
    )
    def test_still_needed(self, assigned, required, expected):
        """stillNeeded == max(0, required - assigned)."""
        assert calculate_staffing(assigned, required).still_needed == expected

    def test_boundaries(self):
        """0명과 정원 도달 경계."""
        empty = calculate_staffing(0, 3)
        assert empty.percent_filled == 0
        assert empty.is_fully_staffed is False

        full = calculate_staffing(3, 3)
        assert full.percent_filled == 100
        assert full.is_fully_staffed is True
        assert full.still_needed == 0

    def test_percent_rounds_half_up(self):
        """충원율 반올림."""
        assert percent_filled(1, 3) == 33
        assert percent_filled(2, 3) == 67
        assert percent_filled(1, 8) == 13  # 12.5 → 13
        assert percent_filled(1, 2) == 50

    def test_zero_required(self):
        """필요 인원 0이면 충원율 0."""
        assert percent_filled(0, 0) == 0
        assert calculate_staffing(0, 0).percent_filled == 0


class TestDisplayStatus:
    """표시 상태는 워크플로 상태를 대체하지 않습니다."""

    def test_count_labels(self):
        assert display_status(calculate_staffing(0, 2), "open") == "unfilled"
        assert display_status(calculate_staffing(1, 2), "requested") == "partially_filled"
        assert display_status(calculate_staffing(2, 2), "open") == "filled"

    def test_terminal_status_wins(self):
        """충원되었어도 취소 상태가 우선."""
        assert display_status(calculate_staffing(2, 2), "cancelled") == "cancelled"
        assert display_status(calculate_staffing(0, 2), "completed") == "completed"


class TestStaffingAPI:
    """충원 현황 조회 API 테스트."""

    async def test_shift_staffing(self, client: AsyncClient, db, directory, scheduler, scheduler_token):
        """배정 후 시프트 충원 현황."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 20), "07:00", "19:00", required_staff=2)
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))

        res = await client.get(f"/api/v1/admin/shifts/{shift_id}/staffing", headers=auth_header(scheduler_token))
        assert res.status_code == 200
        data = res.json()
        assert data["assigned"] == 1
        assert data["required"] == 2
        assert data["percent_filled"] == 50
        assert data["still_needed"] == 1
        assert data["is_fully_staffed"] is False
        assert data["display_status"] == "partially_filled"

    async def test_date_staffing_excludes_cancelled(
        self, client: AsyncClient, db, directory, scheduler, scheduler_token
    ):
        """일자별 요약은 취소된 시프트를 제외합니다."""
        day = date(2025, 6, 20)
        first = await make_shift(db, scheduler, directory.facility_id, day, "07:00", "15:00", required_staff=2)
        await make_shift(db, scheduler, directory.facility_id, day, "15:00", "23:00", required_staff=1)
        cancelled = await make_shift(db, scheduler, directory.facility_id, day, "23:00", "07:00", required_staff=3)
        await run_command(db, lambda: lifecycle_service.assign_worker(db, first, directory.rn_a, scheduler))
        await run_command(db, lambda: lifecycle_service.cancel_shift(db, cancelled, scheduler, "census low"))

        res = await client.get(
            f"/api/v1/admin/facilities/{directory.facility_id}/staffing",
            params={"date": "2025-06-20"},
            headers=auth_header(scheduler_token),
        )
        assert res.status_code == 200
        data = res.json()
        assert data["shift_count"] == 2
        assert data["required"] == 3
        assert data["assigned"] == 1
        assert data["still_needed"] == 2
        assert data["percent_filled"] == 33
        assert data["fully_staffed_shifts"] == 0

    async def test_worker_cannot_read_staffing(self, client: AsyncClient, db, directory, scheduler):
        """직원 레벨은 충원 현황을 볼 수 없습니다."""
        from tests.conftest import make_token, worker_actor

        shift_id = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 20), "07:00", "19:00")
        token = make_token(worker_actor(directory.rn_a))
        res = await client.get(f"/api/v1/admin/shifts/{shift_id}/staffing", headers=auth_header(token))
        assert res.status_code == 403
        assert res.json()["code"] == "forbidden"

"""가용성 판단 테스트.

Availability resolver tests — interval overlap, ordered eligibility checks,
overnight normalization and the eligible worker list.
"""

import uuid
from datetime import date, datetime, time, timezone

import pytest
from httpx import AsyncClient

from app.models.shift import Shift
from app.services.availability_service import (
    availability_service,
    check_eligibility,
    conflicts_with,
    intervals_overlap,
    order_eligible,
)
from app.services.directory_service import WorkerProfile
from app.services.lifecycle_service import lifecycle_service
from app.utils.concurrency import run_command
from app.utils.exceptions import ConflictError, IneligibleWorkerError
from app.utils.shift_time import resolve_window
from tests.conftest import auth_header, make_shift

FACILITY = uuid.uuid4()


def shift_on(day: date, start: time, end: time, specialty: str = "RN", facility_id=FACILITY) -> Shift:
    """저장하지 않은 시프트 객체를 만듭니다 (UTC 시설)."""
    start_at, end_at = resolve_window(day, start, end)
    return Shift(
        id=uuid.uuid4(),
        facility_id=facility_id,
        specialty=specialty,
        shift_date=day,
        start_time=start,
        end_time=end,
        start_at=start_at,
        end_at=end_at,
    )


def profile(**overrides) -> WorkerProfile:
    values = {"id": uuid.uuid4(), "specialty": "RN", "is_active": True, "facility_ids": frozenset({FACILITY})}
    values.update(overrides)
    return WorkerProfile(**values)


class TestIntervals:
    """반개구간 중복 판정."""

    def test_adjacent_is_not_overlap(self):
        a = datetime(2025, 6, 20, 9, tzinfo=timezone.utc)
        b = datetime(2025, 6, 20, 17, tzinfo=timezone.utc)
        c = datetime(2025, 6, 20, 23, tzinfo=timezone.utc)
        assert intervals_overlap(a, b, b, c) is False

    def test_partial_overlap(self):
        a = datetime(2025, 6, 20, 9, tzinfo=timezone.utc)
        b = datetime(2025, 6, 20, 17, tzinfo=timezone.utc)
        c = datetime(2025, 6, 20, 16, tzinfo=timezone.utc)
        d = datetime(2025, 6, 20, 20, tzinfo=timezone.utc)
        assert intervals_overlap(a, b, c, d) is True
        assert intervals_overlap(c, d, a, b) is True

    def test_overnight_shift_overlaps_next_morning(self):
        """23:00–07:00 야간 근무는 다음날 06:00–08:00과 겹칩니다."""
        night = shift_on(date(2025, 6, 20), time(23, 0), time(7, 0))
        assert night.end_at == datetime(2025, 6, 21, 7, tzinfo=timezone.utc)
        morning = shift_on(date(2025, 6, 21), time(6, 0), time(8, 0))
        assert conflicts_with(morning, [night]) is True

    def test_candidate_is_excluded(self):
        """후보 시프트 자신은 비교에서 제외됩니다."""
        candidate = shift_on(date(2025, 6, 20), time(9, 0), time(17, 0))
        assert conflicts_with(candidate, [candidate]) is False


class TestCheckEligibility:
    """순서대로 검사하고 첫 실패 사유를 반환합니다."""

    def test_eligible(self):
        result = check_eligibility(profile(), shift_on(date(2025, 6, 20), time(7, 0), time(19, 0)), [], [])
        assert result.eligible is True
        assert result.reason is None

    def test_inactive_reported_first(self):
        """비활성 + 전문분야 불일치 → inactive가 보고됩니다."""
        worker = profile(is_active=False, specialty="CNA")
        result = check_eligibility(worker, shift_on(date(2025, 6, 20), time(7, 0), time(19, 0)), [], [])
        assert result.reason == "inactive"

    def test_specialty_before_facility(self):
        worker = profile(specialty="LPN", facility_ids=frozenset())
        result = check_eligibility(worker, shift_on(date(2025, 6, 20), time(7, 0), time(19, 0)), [], [])
        assert result.reason == "specialty_mismatch"

    def test_facility_mismatch(self):
        worker = profile(facility_ids=frozenset({uuid.uuid4()}))
        result = check_eligibility(worker, shift_on(date(2025, 6, 20), time(7, 0), time(19, 0)), [], [])
        assert result.reason == "facility_mismatch"

    def test_already_assigned(self):
        worker = profile()
        result = check_eligibility(worker, shift_on(date(2025, 6, 20), time(7, 0), time(19, 0)), [worker.id], [])
        assert result.reason == "already_assigned"

    def test_time_conflict_names_the_other_shift(self):
        other = shift_on(date(2025, 6, 20), time(9, 0), time(17, 0))
        result = check_eligibility(profile(), shift_on(date(2025, 6, 20), time(16, 0), time(20, 0)), [], [other])
        assert result.reason == "time_conflict"
        assert result.conflicting_shift is other


class TestOrderEligible:
    def test_favorite_then_score_then_id(self):
        """즐겨찾기 → 신뢰도 내림차순(없으면 마지막) → ID."""
        fav = profile(reliability_score=10.0)
        high = profile(reliability_score=95.0)
        low = profile(reliability_score=50.0)
        unscored = profile(reliability_score=None)
        ordered = order_eligible([(unscored, False), (low, False), (fav, True), (high, False)])
        assert [p for p, _ in ordered] == [fav, high, low, unscored]


class TestAssignmentOverlap:
    """배정 시 시간 중복 검사 (DB)."""

    async def test_overlap_rejected_adjacent_accepted(self, db, directory, scheduler):
        """09–17 보유 시 16–20 배정은 ConflictError, 17–23은 성공."""
        day = date(2025, 6, 20)
        a = await make_shift(db, scheduler, directory.facility_id, day, "09:00", "17:00")
        b = await make_shift(db, scheduler, directory.facility_id, day, "16:00", "20:00")
        c = await make_shift(db, scheduler, directory.facility_id, day, "17:00", "23:00")
        worker = directory.rn_a

        await run_command(db, lambda: lifecycle_service.assign_worker(db, a, worker, scheduler))

        with pytest.raises(ConflictError) as exc_info:
            await run_command(db, lambda: lifecycle_service.assign_worker(db, b, worker, scheduler))
        assert exc_info.value.detail == "cannot assign: worker already has a shift from 09:00-17:00 on 2025-06-20"
        assert exc_info.value.context["reason"] == "time_conflict"
        assert exc_info.value.context["conflicting_shift_id"] == str(a)

        result = await run_command(db, lambda: lifecycle_service.assign_worker(db, c, worker, scheduler))
        assert result.assigned_worker_ids == [str(worker)]

    async def test_overnight_commitment_blocks_next_morning(self, db, directory, scheduler):
        """전날 23–07 야간 근무가 다음날 06–08 배정을 막습니다."""
        night = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 20), "23:00", "07:00")
        morning = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 21), "06:00", "08:00")
        worker = directory.rn_b

        await run_command(db, lambda: lifecycle_service.assign_worker(db, night, worker, scheduler))
        with pytest.raises(ConflictError):
            await run_command(db, lambda: lifecycle_service.assign_worker(db, morning, worker, scheduler))

    async def test_cancelled_shift_releases_commitment(self, db, directory, scheduler):
        """취소된 시프트는 더 이상 약속이 아닙니다."""
        day = date(2025, 6, 20)
        a = await make_shift(db, scheduler, directory.facility_id, day, "09:00", "17:00")
        b = await make_shift(db, scheduler, directory.facility_id, day, "10:00", "14:00")
        worker = directory.rn_a

        await run_command(db, lambda: lifecycle_service.assign_worker(db, a, worker, scheduler))
        await run_command(db, lambda: lifecycle_service.cancel_shift(db, a, scheduler, "unit closed"))
        result = await run_command(db, lambda: lifecycle_service.assign_worker(db, b, worker, scheduler))
        assert result.staffing.assigned == 1

    @pytest.mark.parametrize(
        ("worker_key", "reason"),
        [("cna", "specialty_mismatch"), ("rn_other", "facility_mismatch"), ("inactive_rn", "inactive")],
    )
    async def test_ineligible_worker(self, db, directory, scheduler, worker_key, reason):
        shift_id = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 20), "07:00", "19:00")
        worker_id = getattr(directory, worker_key)
        with pytest.raises(IneligibleWorkerError) as exc_info:
            await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, worker_id, scheduler))
        assert exc_info.value.context["reason"] == reason

    async def test_no_double_booking(self, db, directory, scheduler):
        """한 직원의 배정 시프트는 서로 겹치지 않습니다."""
        day = date(2025, 6, 20)
        windows = [("07:00", "15:00"), ("14:00", "22:00"), ("15:00", "23:00"), ("22:00", "06:00"), ("23:00", "07:00")]
        shift_ids = [await make_shift(db, scheduler, directory.facility_id, day, s, e) for s, e in windows]
        for shift_id in shift_ids:
            try:
                await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
            except ConflictError:
                pass

        commitments = await availability_service.worker_commitments(db, directory.rn_a, scheduler)
        assert [(c.start_time, c.end_time) for c in commitments] == [("07:00", "15:00"), ("15:00", "23:00"), ("23:00", "07:00")]
        for i, first in enumerate(commitments):
            for second in commitments[i + 1:]:
                assert not intervals_overlap(first.start_at, first.end_at, second.start_at, second.end_at)


class TestEligibleWorkersAPI:
    """배정 가능 직원 목록 API."""

    async def test_list_is_filtered_and_ordered(self, client: AsyncClient, db, directory, scheduler, scheduler_token):
        """자격 없는 직원은 제외, 즐겨찾기 → 점수 → 점수 없음 순서."""
        day = date(2025, 6, 20)
        busy = await make_shift(db, scheduler, directory.facility_id, day, "06:00", "10:00")
        target = await make_shift(db, scheduler, directory.facility_id, day, "07:00", "19:00")
        await run_command(db, lambda: lifecycle_service.assign_worker(db, busy, directory.rn_c, scheduler))

        res = await client.get(f"/api/v1/admin/shifts/{target}/eligible-workers", headers=auth_header(scheduler_token))
        assert res.status_code == 200
        ids = [w["worker_id"] for w in res.json()]
        # rn_b(즐겨찾기) → rn_a(80); rn_c는 시간 중복, cna/inactive/rn_other는 자격 없음
        assert ids == [str(directory.rn_b), str(directory.rn_a)]
        assert res.json()[0]["is_favorite"] is True

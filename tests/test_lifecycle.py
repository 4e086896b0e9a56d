"""시프트 라이프사이클 테스트.

Lifecycle controller tests — transition table, request/approve flow,
capacity, history, start job and optimistic concurrency.
"""

import uuid
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.orm.exc import StaleDataError

from app.models.shift import Shift
from app.services.lifecycle_service import lifecycle_service
from app.services.shift_service import shift_service
from app.services.transition_table import ALLOWED_TRANSITIONS, STATUSES, is_allowed
from app.utils.concurrency import run_command
from app.utils.exceptions import (
    CapacityError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from tests.conftest import make_shift, worker_actor

DAY = date(2025, 6, 20)


async def request_as(db, shift_id: uuid.UUID, worker_id: uuid.UUID):
    actor = worker_actor(worker_id)
    return await run_command(db, lambda: lifecycle_service.request_shift(db, shift_id, worker_id, actor))


async def transition(db, shift_id: uuid.UUID, status: str, actor, **kwargs):
    return await run_command(db, lambda: lifecycle_service.transition(db, shift_id, status, actor, **kwargs))


async def assigned_shift(db, directory, scheduler, worker_id=None) -> uuid.UUID:
    """open → requested → assigned 상태의 시프트를 만듭니다."""
    shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
    await request_as(db, shift_id, worker_id or directory.rn_a)
    await transition(db, shift_id, "assigned", scheduler)
    return shift_id


class TestTransitionTable:
    def test_terminal_states_have_no_exits(self):
        for status in ("completed", "cancelled", "facility_cancelled", "no_show"):
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_facility_cancel_from_every_non_terminal(self):
        for status in ("open", "requested", "assigned", "in_progress"):
            assert is_allowed(status, "facility_cancelled")

    def test_no_show_only_from_assigned(self):
        assert [s for s in STATUSES if is_allowed(s, "no_show")] == ["assigned"]

    def test_assigned_reachable_from_open_and_requested(self):
        assert [s for s in STATUSES if is_allowed(s, "assigned")] == ["open", "requested"]


class TestRequestAndApprove:
    """신청 → 승인 흐름."""

    async def test_first_request_moves_open_to_requested(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        request = await request_as(db, shift_id, directory.rn_a)
        assert request.status == "pending"

        shift = await shift_service.get_shift(db, shift_id, scheduler)
        assert shift.status == "requested"
        assert shift.assigned_worker_ids == []

        # 두 번째 신청은 상태를 바꾸지 않습니다
        await request_as(db, shift_id, directory.rn_b)
        history = await shift_service.get_history(db, shift_id, scheduler)
        assert [h.new_status for h in history] == ["open", "requested"]

    async def test_ineligible_worker_cannot_request(self, db, directory, scheduler):
        from app.utils.exceptions import IneligibleWorkerError

        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        with pytest.raises(IneligibleWorkerError) as exc_info:
            await request_as(db, shift_id, directory.cna)
        assert exc_info.value.detail == "cannot request: worker specialty does not match the shift specialty"
        assert (await shift_service.get_shift(db, shift_id, scheduler)).status == "open"

    async def test_worker_cannot_request_for_someone_else(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        actor = worker_actor(directory.rn_a)
        with pytest.raises(ForbiddenError):
            await lifecycle_service.request_shift(db, shift_id, directory.rn_b, actor)

    async def test_duplicate_pending_request(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await request_as(db, shift_id, directory.rn_a)
        with pytest.raises(ValidationError):
            await request_as(db, shift_id, directory.rn_a)

    async def test_approve_oldest_pending(self, db, directory, scheduler):
        """승인 대상을 지정하지 않으면 가장 오래된 신청을 승인합니다."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await request_as(db, shift_id, directory.rn_c)
        await request_as(db, shift_id, directory.rn_a)

        result = await transition(db, shift_id, "assigned", scheduler)
        assert result.status == "assigned"
        assert result.assigned_worker_ids == [str(directory.rn_c)]
        assert result.staffing.is_fully_staffed is True

        requests = await shift_service.list_requests(db, shift_id, scheduler)
        statuses = {r.worker_id: r.status for r in requests}
        assert statuses == {str(directory.rn_c): "approved", str(directory.rn_a): "pending"}

    async def test_approve_named_worker(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await request_as(db, shift_id, directory.rn_c)
        await request_as(db, shift_id, directory.rn_a)

        result = await transition(db, shift_id, "assigned", scheduler, worker_id=directory.rn_a)
        assert result.assigned_worker_ids == [str(directory.rn_a)]

    async def test_approve_without_pending_request(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await request_as(db, shift_id, directory.rn_a)
        with pytest.raises(ValidationError):
            await transition(db, shift_id, "assigned", scheduler, worker_id=directory.rn_b)

    async def test_approval_rechecks_overlap(self, db, directory, scheduler):
        """신청 후 다른 시프트에 배정되면 승인 시 ConflictError."""
        requested = await make_shift(db, scheduler, directory.facility_id, DAY, "09:00", "17:00")
        other = await make_shift(db, scheduler, directory.facility_id, DAY, "15:00", "23:00")
        await request_as(db, requested, directory.rn_a)
        await run_command(db, lambda: lifecycle_service.assign_worker(db, other, directory.rn_a, scheduler))

        with pytest.raises(ConflictError):
            await transition(db, requested, "assigned", scheduler)

        shift = await shift_service.get_shift(db, requested, scheduler)
        assert shift.status == "requested"
        assert shift.assigned_worker_ids == []
        requests = await shift_service.list_requests(db, requested, scheduler, status="pending")
        assert len(requests) == 1

    async def test_approval_rechecks_capacity(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await request_as(db, shift_id, directory.rn_a)
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_b, scheduler))

        with pytest.raises(CapacityError):
            await transition(db, shift_id, "assigned", scheduler)
        assert (await shift_service.get_shift(db, shift_id, scheduler)).status == "requested"

    async def test_withdraw_keeps_status(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await request_as(db, shift_id, directory.rn_a)
        actor = worker_actor(directory.rn_a)

        withdrawn = await run_command(db, lambda: lifecycle_service.withdraw_request(db, shift_id, directory.rn_a, actor))
        assert withdrawn.status == "withdrawn"
        assert (await shift_service.get_shift(db, shift_id, scheduler)).status == "requested"

        with pytest.raises(NotFoundError):
            await lifecycle_service.withdraw_request(db, shift_id, directory.rn_a, actor)


class TestAssignmentSet:
    """배정/해제와 정원."""

    async def test_capacity_invariant(self, db, directory, scheduler):
        """정원 2명 시프트에 세 번째 배정은 CapacityError, 배정 인원은 2명 유지."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00", required_staff=2)
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_b, scheduler))

        with pytest.raises(CapacityError) as exc_info:
            await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_c, scheduler))
        assert exc_info.value.detail == "cannot assign: shift already has 2 of 2 workers"

        shift = await shift_service.get_shift(db, shift_id, scheduler)
        assert len(shift.assigned_worker_ids) == 2
        assert shift.staffing.still_needed == 0

    async def test_reaching_required_does_not_change_status(self, db, directory, scheduler):
        """정원 도달은 정보 신호일 뿐 상태를 바꾸지 않습니다."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        result = await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
        assert result.status == "open"
        assert result.staffing.is_fully_staffed is True
        assert result.staffing.display_status == "filled"

        history = await shift_service.get_history(db, shift_id, scheduler)
        assert len(history) == 1

    async def test_assign_same_worker_twice(self, db, directory, scheduler):
        from app.utils.exceptions import IneligibleWorkerError

        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00", required_staff=2)
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
        with pytest.raises(IneligibleWorkerError) as exc_info:
            await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
        assert exc_info.value.context["reason"] == "already_assigned"

    async def test_unassign_frees_a_slot(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
        result = await run_command(db, lambda: lifecycle_service.unassign_worker(db, shift_id, directory.rn_a, scheduler))
        assert result.assigned_worker_ids == []
        assert result.staffing.assigned == 0

        result = await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_b, scheduler))
        assert result.assigned_worker_ids == [str(directory.rn_b)]

        with pytest.raises(NotFoundError):
            await lifecycle_service.unassign_worker(db, shift_id, directory.rn_a, scheduler)

    async def test_cannot_assign_to_cancelled_shift(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await run_command(db, lambda: lifecycle_service.cancel_shift(db, shift_id, scheduler, "no longer needed"))
        with pytest.raises(StateTransitionError) as exc_info:
            await lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler)
        assert exc_info.value.detail == "cannot assign: shift is cancelled"

    async def test_directly_staffed_shift_is_confirmed_and_worked(self, db, directory, scheduler):
        """직접 배정으로 채운 시프트는 명시적 전이로 assigned가 된 뒤 완료까지 진행됩니다."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00", required_staff=2)
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_a, scheduler))
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_b, scheduler))

        result = await transition(db, shift_id, "assigned", scheduler)
        assert result.status == "assigned"
        assert set(result.assigned_worker_ids) == {str(directory.rn_a), str(directory.rn_b)}

        await transition(db, shift_id, "in_progress", scheduler, now=datetime(2025, 6, 20, 7, tzinfo=timezone.utc))
        result = await transition(db, shift_id, "completed", scheduler)
        assert result.status == "completed"

        history = await shift_service.get_history(db, shift_id, scheduler)
        assert [(h.previous_status, h.new_status) for h in history] == [
            (None, "open"),
            ("open", "assigned"),
            ("assigned", "in_progress"),
            ("in_progress", "completed"),
        ]

    async def test_confirm_after_withdrawn_request(self, db, directory, scheduler):
        """신청이 철회된 requested 시프트도 직접 배정 후 확정할 수 있습니다."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        await request_as(db, shift_id, directory.rn_a)
        actor = worker_actor(directory.rn_a)
        await run_command(db, lambda: lifecycle_service.withdraw_request(db, shift_id, directory.rn_a, actor))
        await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, directory.rn_b, scheduler))

        result = await transition(db, shift_id, "assigned", scheduler)
        assert result.status == "assigned"
        assert result.assigned_worker_ids == [str(directory.rn_b)]

    async def test_nothing_to_confirm(self, db, directory, scheduler):
        """배정도 신청도 없으면 assigned 전이는 ValidationError, 상태는 open."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        with pytest.raises(ValidationError):
            await transition(db, shift_id, "assigned", scheduler)
        assert (await shift_service.get_shift(db, shift_id, scheduler)).status == "open"
        assert len(await shift_service.get_history(db, shift_id, scheduler)) == 1

    async def test_worker_cannot_assign(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        with pytest.raises(ForbiddenError):
            await lifecycle_service.assign_worker(db, shift_id, directory.rn_a, worker_actor(directory.rn_a))


class TestTransitions:
    """전이 규칙과 이력."""

    async def test_full_lifecycle_history(self, db, directory, scheduler):
        shift_id = await assigned_shift(db, directory, scheduler)
        await transition(db, shift_id, "in_progress", scheduler, now=datetime(2025, 6, 20, 7, tzinfo=timezone.utc))
        await transition(db, shift_id, "completed", scheduler, note="signed off")

        history = await shift_service.get_history(db, shift_id, scheduler)
        assert [(h.previous_status, h.new_status) for h in history] == [
            (None, "open"),
            ("open", "requested"),
            ("requested", "assigned"),
            ("assigned", "in_progress"),
            ("in_progress", "completed"),
        ]
        assert [h.sequence for h in history] == [1, 2, 3, 4, 5]
        assert history[1].initiated_by == "worker"
        assert history[2].initiated_by == "scheduler"
        assert history[-1].note == "signed off"

    async def test_completed_to_open_is_rejected(self, db, directory, scheduler):
        """completed → open은 StateTransitionError, 상태와 이력은 그대로."""
        shift_id = await assigned_shift(db, directory, scheduler)
        await transition(db, shift_id, "in_progress", scheduler)
        await transition(db, shift_id, "completed", scheduler)
        before = await shift_service.get_history(db, shift_id, scheduler)

        with pytest.raises(StateTransitionError) as exc_info:
            await transition(db, shift_id, "open", scheduler, note="")
        assert exc_info.value.context["current_status"] == "completed"
        assert exc_info.value.context["attempted_status"] == "open"

        shift = await shift_service.get_shift(db, shift_id, scheduler)
        assert shift.status == "completed"
        assert len(await shift_service.get_history(db, shift_id, scheduler)) == len(before)

    async def test_repeated_completion_is_noop(self, db, directory, scheduler):
        shift_id = await assigned_shift(db, directory, scheduler)
        await transition(db, shift_id, "in_progress", scheduler)
        await transition(db, shift_id, "completed", scheduler)
        count = len(await shift_service.get_history(db, shift_id, scheduler))

        result = await transition(db, shift_id, "completed", scheduler)
        assert result.status == "completed"
        assert len(await shift_service.get_history(db, shift_id, scheduler)) == count

    async def test_cannot_start_before_start_time(self, db, directory, scheduler):
        shift_id = await assigned_shift(db, directory, scheduler)
        with pytest.raises(ValidationError):
            await transition(db, shift_id, "in_progress", scheduler, now=datetime(2025, 6, 20, 6, 59, tzinfo=timezone.utc))
        assert (await shift_service.get_shift(db, shift_id, scheduler)).status == "assigned"

    async def test_no_show_only_from_assigned(self, db, directory, scheduler):
        shift_id = await assigned_shift(db, directory, scheduler)
        await transition(db, shift_id, "in_progress", scheduler)
        with pytest.raises(StateTransitionError):
            await transition(db, shift_id, "no_show", scheduler)

        other = await assigned_shift(db, directory, scheduler, worker_id=directory.rn_b)
        result = await transition(db, other, "no_show", scheduler)
        assert result.status == "no_show"

    async def test_unknown_status(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        with pytest.raises(ValidationError):
            await transition(db, shift_id, "paused", scheduler)

    async def test_cancel_requires_reason(self, db, directory, scheduler):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        with pytest.raises(ValidationError):
            await run_command(db, lambda: lifecycle_service.cancel_shift(db, shift_id, scheduler, "  "))

    async def test_transition_to_cancelled_without_note(self, db, directory, scheduler, facility_manager):
        """전이 명령의 메모는 자유 입력이므로 비어 있어도 취소되고 개시자가 기록됩니다."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        result = await transition(db, shift_id, "cancelled", scheduler, note="")
        assert result.status == "cancelled"

        other = await assigned_shift(db, directory, scheduler)
        await transition(db, other, "in_progress", scheduler)
        result = await transition(db, other, "facility_cancelled", facility_manager)
        assert result.status == "facility_cancelled"

        cancelled = await shift_service.get_history(db, shift_id, scheduler)
        assert (cancelled[-1].new_status, cancelled[-1].initiated_by) == ("cancelled", "scheduler")
        facility = await shift_service.get_history(db, other, scheduler)
        assert (facility[-1].new_status, facility[-1].initiated_by) == ("facility_cancelled", "facility")

    async def test_in_progress_cannot_be_cancelled_by_scheduler(self, db, directory, scheduler, facility_manager):
        """진행 중 시프트는 시설 취소만 가능하며 시설이 개시자로 기록됩니다."""
        shift_id = await assigned_shift(db, directory, scheduler)
        await transition(db, shift_id, "in_progress", scheduler)

        with pytest.raises(StateTransitionError):
            await run_command(db, lambda: lifecycle_service.cancel_shift(db, shift_id, scheduler, "unit closed"))

        result = await run_command(
            db,
            lambda: lifecycle_service.cancel_shift(db, shift_id, facility_manager, "unit closed", facility_initiated=True),
        )
        assert result.status == "facility_cancelled"
        history = await shift_service.get_history(db, shift_id, scheduler)
        assert history[-1].initiated_by == "facility"
        assert history[-1].note == "unit closed"

    async def test_facility_manager_cannot_plain_cancel(self, db, directory, scheduler, facility_manager):
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00")
        with pytest.raises(ForbiddenError):
            await lifecycle_service.cancel_shift(db, shift_id, facility_manager, "census")


class TestStartDueShifts:
    async def test_starts_assigned_shifts_past_start(self, db, directory, scheduler):
        due = await assigned_shift(db, directory, scheduler)
        later = await make_shift(db, scheduler, directory.facility_id, date(2025, 6, 22), "07:00", "19:00")
        await request_as(db, later, directory.rn_b)
        await transition(db, later, "assigned", scheduler)

        started = await lifecycle_service.start_due_shifts(db, now=datetime(2025, 6, 21, tzinfo=timezone.utc))
        assert started == 1

        assert (await shift_service.get_shift(db, due, scheduler)).status == "in_progress"
        assert (await shift_service.get_shift(db, later, scheduler)).status == "assigned"
        history = await shift_service.get_history(db, due, scheduler)
        assert history[-1].initiated_by == "system"


class TestOptimisticConcurrency:
    """버전 충돌 재시도."""

    async def test_retry_once_then_succeed(self, db):
        calls: list[int] = []

        async def command() -> str:
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("version mismatch")
            return "ok"

        assert await run_command(db, command) == "ok"
        assert len(calls) == 2

    async def test_second_failure_surfaces_conflict(self, db):
        calls: list[int] = []

        async def command() -> None:
            calls.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(ConflictError) as exc_info:
            await run_command(db, command)
        assert len(calls) == 2
        assert exc_info.value.context["reason"] == "version_mismatch"

    async def test_stale_session_reloads_and_respects_capacity(self, session_factory, db, directory, scheduler):
        """오래된 버전으로 쓴 세션은 다시 읽고 정원을 다시 확인합니다."""
        shift_id = await make_shift(db, scheduler, directory.facility_id, DAY, "07:00", "19:00", required_staff=1)

        async with session_factory() as first, session_factory() as second:
            stale = await first.get(Shift, shift_id)
            assert stale.assigned_count == 0

            await run_command(second, lambda: lifecycle_service.assign_worker(second, shift_id, directory.rn_a, scheduler))

            # first는 assigned_count=0을 보고 있으나, 재시도에서 최신 상태로 정원 초과를 발견
            with pytest.raises(CapacityError):
                await run_command(first, lambda: lifecycle_service.assign_worker(first, shift_id, directory.rn_b, scheduler))

        shift = await shift_service.get_shift(db, shift_id, scheduler)
        assert shift.assigned_worker_ids == [str(directory.rn_a)]

"""시프트 라이프사이클 서비스 — 모든 상태 전이와 배정 변경의 권한자.

Lifecycle Controller — The only writer of shift status and of the
assignment set.

Every status change goes through ``_record``: the status is updated (which
bumps the shift version) and exactly one history entry is appended. Adding
or removing a worker is a separate operation (``assign_worker`` /
``unassign_worker``) that never changes the status; reaching
``required_staff`` is reported as ``is_fully_staffed`` only.

Transition rules beyond the table:
    - open → requested: 직원 신청 (a worker request; eligibility is checked)
    - requested → assigned: 신청 승인 (approves a pending request; eligibility,
      overlap and capacity are re-checked)
    - open | requested → assigned: 배정 확정 (with no pending request, confirms
      workers already placed by ``assign_worker``; at least one is required)
    - assigned → in_progress: 시작 시각 이후만 (not before start_at)
    - in_progress → completed: completed → completed is a no-op
    - → cancelled / facility_cancelled: the history entry records who initiated it

Service methods flush but do not commit; routers run them through
``run_command``, which commits and retries once on a version conflict.
"""

from datetime import datetime, timezone
from functools import partial
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import Shift, ShiftAssignment, ShiftRequest
from app.repositories.assignment_repository import assignment_repository
from app.repositories.history_repository import history_repository
from app.repositories.request_repository import request_repository
from app.repositories.shift_repository import shift_repository
from app.schemas.shift import ShiftRequestResponse, ShiftResponse
from app.services.authorization_service import SYSTEM_ACTOR, Actor, authorization_service
from app.services.availability_service import availability_service
from app.services.shift_service import shift_service
from app.services.transition_table import (
    ASSIGNABLE_STATUSES,
    REQUESTABLE_STATUSES,
    check_transition,
    is_noop,
)
from app.utils.concurrency import run_command
from app.utils.event_log import emit_event
from app.utils.exceptions import (
    CapacityError,
    ConflictError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from app.utils.shift_time import ensure_utc

# 목표 상태별 필요 권한 — Action required per target status
TRANSITION_ACTIONS: dict[str, str] = {
    "requested": "shifts:request",
    "assigned": "shifts:assign",
    "in_progress": "shifts:transition",
    "completed": "shifts:transition",
    "no_show": "shifts:transition",
    "cancelled": "shifts:cancel",
    "facility_cancelled": "shifts:facility_cancel",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleService:
    """시프트 라이프사이클 서비스.

    Service owning status transitions, worker requests and the
    assignment set of every shift.
    """

    async def _record(
        self,
        db: AsyncSession,
        shift: Shift,
        new_status: str,
        actor: Actor,
        note: str | None = None,
        initiated_by: str | None = None,
    ) -> None:
        """상태를 변경하고 이력을 하나 추가합니다.

        Set the status and append exactly one history entry. The flush
        compares the shift version, so a concurrent writer on the same
        shift raises ``StaleDataError`` here.
        """
        previous: str = shift.status
        shift.status = new_status
        await db.flush()
        await history_repository.append(
            db,
            shift_id=shift.id,
            previous_status=previous,
            new_status=new_status,
            actor_id=actor.id,
            actor_role=actor.role,
            initiated_by=initiated_by or actor.initiated_by,
            note=note,
        )
        emit_event(
            "shift_transition",
            shift_id=shift.id,
            previous_status=previous,
            new_status=new_status,
            actor_id=actor.id,
            actor_role=actor.role,
            initiated_by=initiated_by or actor.initiated_by,
        )

    def _check_capacity(self, shift: Shift) -> None:
        """배정 인원이 필요 인원에 도달했으면 CapacityError."""
        if shift.assigned_count >= shift.required_staff:
            raise CapacityError(
                f"cannot assign: shift already has {shift.assigned_count} of {shift.required_staff} workers",
                shift_id=str(shift.id),
                assigned=shift.assigned_count,
                required=shift.required_staff,
            )

    async def _place_worker(
        self,
        db: AsyncSession,
        shift: Shift,
        worker_id: UUID,
        actor: Actor,
    ) -> ShiftAssignment:
        """자격/중복/정원을 확인하고 배정을 추가합니다.

        Lock the worker, re-read its commitments, check eligibility and
        capacity, then add the assignment and bump ``assigned_count``.
        """
        await availability_service.ensure_eligible(db, worker_id, shift, lock=True)
        self._check_capacity(shift)
        assignment: ShiftAssignment = await assignment_repository.create(
            db,
            {"shift_id": shift.id, "worker_id": worker_id, "assigned_by": actor.id},
        )
        shift.assigned_count += 1
        await db.flush()
        return assignment

    # ------------------------------------------------------------------
    # 상태 전이 — Transition(shift, newStatus, actor, note)
    # ------------------------------------------------------------------
    async def transition(
        self,
        db: AsyncSession,
        shift_id: UUID,
        new_status: str,
        actor: Actor,
        note: str | None = None,
        worker_id: UUID | None = None,
        now: datetime | None = None,
    ) -> ShiftResponse:
        """시프트 상태를 전이합니다.

        Move a shift to ``new_status``. Illegal transitions leave the shift
        and its history unchanged.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            shift_id: 시프트 ID (Shift UUID)
            new_status: 목표 상태 (Target status)
            actor: 수행자 (Actor)
            note: 메모 (Note stored on the history entry)
            worker_id: 신청/승인 대상 직원 (Worker to request for or approve)
            now: 기준 시각, 테스트용 (Clock override)

        Returns:
            ShiftResponse: 전이 후 시프트 (Shift after the transition)

        Raises:
            ForbiddenError: 권한 없음 (Action denied)
            StateTransitionError: 전이표에 없는 전이 (Illegal transition)
            ValidationError: 알 수 없는 상태, 시작 전 진행 등 (Unknown status, start before time)
            IneligibleWorkerError / ConflictError / CapacityError: 신청 또는 승인 실패
        """
        action: str | None = TRANSITION_ACTIONS.get(new_status)
        if action is None:
            authorization_service.require(actor, "shifts:transition")
        else:
            authorization_service.require(actor, action)

        shift: Shift = await shift_service.load(db, shift_id)
        if is_noop(shift.status, new_status):
            return await shift_service.build_response(db, shift)
        check_transition(shift.status, new_status, shift_id=str(shift.id))

        if new_status == "requested":
            target: UUID | None = worker_id or actor.worker_id
            if target is None:
                raise ValidationError("a worker is required to request a shift", shift_id=str(shift.id))
            await self.request_shift(db, shift_id, target, actor, note)
        elif new_status == "assigned":
            await self._to_assigned(db, shift, worker_id, actor, note)
        elif new_status in ("cancelled", "facility_cancelled"):
            await self._cancel(db, shift, actor, note, facility_initiated=new_status == "facility_cancelled")
        elif new_status == "in_progress":
            current: datetime = now or _now()
            if current < ensure_utc(shift.start_at):
                raise ValidationError(
                    "cannot start: the shift has not reached its start time",
                    shift_id=str(shift.id),
                    start_at=ensure_utc(shift.start_at).isoformat(),
                )
            await self._record(db, shift, new_status, actor, note)
        else:
            await self._record(db, shift, new_status, actor, note)

        return await shift_service.build_response(db, shift)

    async def _to_assigned(
        self,
        db: AsyncSession,
        shift: Shift,
        worker_id: UUID | None,
        actor: Actor,
        note: str | None,
    ) -> None:
        """assigned 상태로 전이합니다 (신청 승인 또는 배정 확정).

        With a named worker, approve that worker's pending request. Without
        one, approve the oldest pending request; when nobody is waiting,
        confirm the workers already placed through ``assign_worker``.

        Raises:
            ValidationError: 승인할 신청도 확정할 배정도 없음 (Nothing to approve or confirm)
        """
        request: ShiftRequest | None = await request_repository.get_pending(db, shift.id, worker_id)
        if request is not None:
            await self._approve(db, shift, request, actor, note)
            return
        if worker_id is None and shift.assigned_count > 0:
            await self._record(
                db, shift, "assigned", actor, note or f"confirmed {shift.assigned_count} assigned worker(s)"
            )
            return
        raise ValidationError(
            "cannot assign: there is no pending request to approve and no assigned worker to confirm",
            shift_id=str(shift.id),
            worker_id=str(worker_id) if worker_id else None,
        )

    async def _approve(
        self,
        db: AsyncSession,
        shift: Shift,
        request: ShiftRequest,
        actor: Actor,
        note: str | None,
    ) -> None:
        """대기 신청을 승인하고 assigned로 전이합니다.

        Eligibility, overlap and capacity are checked again because the
        worker's schedule may have changed since the request.
        """
        await self._place_worker(db, shift, request.worker_id, actor)
        request.status = "approved"
        request.processed_by = actor.id
        request.processed_at = _now()
        await self._record(db, shift, "assigned", actor, note or f"approved request of worker {request.worker_id}")

    # ------------------------------------------------------------------
    # 직원 신청 — RequestShift / WithdrawRequest
    # ------------------------------------------------------------------
    async def request_shift(
        self,
        db: AsyncSession,
        shift_id: UUID,
        worker_id: UUID,
        actor: Actor,
        note: str | None = None,
    ) -> ShiftRequestResponse:
        """직원이 시프트를 신청합니다.

        Create a pending request after the full eligibility check. The first
        request on an ``open`` shift moves it to ``requested``; later
        requests leave the status alone.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            shift_id: 시프트 ID (Shift UUID)
            worker_id: 신청 직원 (Requesting worker)
            actor: 수행자 (Actor)
            note: 메모 (Note)

        Returns:
            ShiftRequestResponse: 생성된 신청 (Created request)

        Raises:
            StateTransitionError: 신청 불가 상태 (Shift not open or requested)
            ValidationError: 이미 대기 중인 신청 (Duplicate pending request)
            IneligibleWorkerError / ConflictError: 자격 미충족 또는 시간 중복
        """
        authorization_service.require(actor, "shifts:request")
        authorization_service.require_self(actor, worker_id)
        shift: Shift = await shift_service.load(db, shift_id)
        if shift.status not in REQUESTABLE_STATUSES:
            raise StateTransitionError(shift.status, "requested", shift_id=str(shift.id))

        if await request_repository.get_pending(db, shift.id, worker_id) is not None:
            raise ValidationError(
                "worker already has a pending request for this shift",
                shift_id=str(shift.id),
                worker_id=str(worker_id),
            )
        await availability_service.ensure_eligible(db, worker_id, shift, lock=False, verb="request")

        request: ShiftRequest = await request_repository.create(
            db,
            {"shift_id": shift.id, "worker_id": worker_id, "status": "pending", "note": note},
        )
        if shift.status == "open":
            await self._record(db, shift, "requested", actor, note or f"requested by worker {worker_id}")
        return shift_service.request_to_response(request)

    async def withdraw_request(
        self,
        db: AsyncSession,
        shift_id: UUID,
        worker_id: UUID,
        actor: Actor,
    ) -> ShiftRequestResponse:
        """대기 중인 신청을 철회합니다 (상태는 변경하지 않음).

        Raises:
            NotFoundError: 대기 신청 없음 (No pending request)
        """
        authorization_service.require(actor, "shifts:request")
        authorization_service.require_self(actor, worker_id)
        shift: Shift = await shift_service.load(db, shift_id)
        request: ShiftRequest | None = await request_repository.get_pending(db, shift.id, worker_id)
        if request is None:
            raise NotFoundError(
                "no pending request for this worker",
                shift_id=str(shift.id),
                worker_id=str(worker_id),
            )
        request.status = "withdrawn"
        request.processed_by = actor.id
        request.processed_at = _now()
        await db.flush()
        return shift_service.request_to_response(request)

    # ------------------------------------------------------------------
    # 배정 집합 — AssignWorker / UnassignWorker
    # ------------------------------------------------------------------
    async def assign_worker(
        self,
        db: AsyncSession,
        shift_id: UUID,
        worker_id: UUID,
        actor: Actor,
    ) -> ShiftResponse:
        """직원을 시프트에 배정합니다 (상태 변경 없음).

        Add a worker to the assignment set. The status is left as is; the
        returned staffing projection carries ``is_fully_staffed``.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            shift_id: 시프트 ID (Shift UUID)
            worker_id: 배정 직원 (Worker UUID)
            actor: 수행자 (Actor)

        Returns:
            ShiftResponse: 배정 후 시프트 (Shift with its staffing projection)

        Raises:
            StateTransitionError: 배정 불가 상태 (Shift not open, requested or assigned)
            IneligibleWorkerError: 자격 미충족 (Ineligible worker)
            ConflictError: 시간 중복 (Overlapping commitment)
            CapacityError: 정원 초과 (Already at required staff)
        """
        authorization_service.require(actor, "shifts:assign")
        shift: Shift = await shift_service.load(db, shift_id)
        if shift.status not in ASSIGNABLE_STATUSES:
            raise StateTransitionError(
                shift.status,
                shift.status,
                detail=f"cannot assign: shift is {shift.status}",
                shift_id=str(shift.id),
            )
        await self._place_worker(db, shift, worker_id, actor)
        emit_event("worker_assigned", shift_id=shift.id, worker_id=worker_id, actor_id=actor.id)
        return await shift_service.build_response(db, shift)

    async def unassign_worker(
        self,
        db: AsyncSession,
        shift_id: UUID,
        worker_id: UUID,
        actor: Actor,
    ) -> ShiftResponse:
        """직원 배정을 해제합니다 (상태 변경 없음).

        Raises:
            StateTransitionError: 해제 불가 상태 (Shift not open, requested or assigned)
            NotFoundError: 활성 배정 없음 (Worker is not assigned)
        """
        authorization_service.require(actor, "shifts:assign")
        shift: Shift = await shift_service.load(db, shift_id)
        if shift.status not in ASSIGNABLE_STATUSES:
            raise StateTransitionError(
                shift.status,
                shift.status,
                detail=f"cannot unassign: shift is {shift.status}",
                shift_id=str(shift.id),
            )
        assignment: ShiftAssignment | None = await assignment_repository.get_active(db, shift.id, worker_id)
        if assignment is None:
            raise NotFoundError(
                "worker is not assigned to this shift",
                shift_id=str(shift.id),
                worker_id=str(worker_id),
            )
        await assignment_repository.revoke(db, assignment, actor.id, _now())
        shift.assigned_count -= 1
        await db.flush()
        emit_event("worker_unassigned", shift_id=shift.id, worker_id=worker_id, actor_id=actor.id)
        return await shift_service.build_response(db, shift)

    # ------------------------------------------------------------------
    # 취소 — CancelShift(shift, actor, reason)
    # ------------------------------------------------------------------
    async def cancel_shift(
        self,
        db: AsyncSession,
        shift_id: UUID,
        actor: Actor,
        reason: str,
        facility_initiated: bool = False,
    ) -> ShiftResponse:
        """시프트를 취소합니다.

        Cancel a shift. Facility-initiated cancellation ends in
        ``facility_cancelled`` and is reachable from any non-terminal state;
        otherwise the shift ends in ``cancelled`` (open, requested or
        assigned only). Assignments stay recorded; a cancelled shift no
        longer counts as a commitment.

        Raises:
            ValidationError: 취소 사유 없음 (Blank reason)
            StateTransitionError: 취소 불가 상태 (Cancellation not allowed from the current status)
        """
        target: str = "facility_cancelled" if facility_initiated else "cancelled"
        authorization_service.require(actor, TRANSITION_ACTIONS[target])
        shift: Shift = await shift_service.load(db, shift_id)
        if not reason.strip():
            raise ValidationError("a cancellation reason is required", shift_id=str(shift.id))
        check_transition(shift.status, target, shift_id=str(shift.id))
        await self._cancel(db, shift, actor, reason, facility_initiated)
        return await shift_service.build_response(db, shift)

    async def _cancel(
        self,
        db: AsyncSession,
        shift: Shift,
        actor: Actor,
        reason: str | None,
        facility_initiated: bool,
    ) -> None:
        target: str = "facility_cancelled" if facility_initiated else "cancelled"
        initiated_by: str = "facility" if facility_initiated else actor.initiated_by
        await self._record(db, shift, target, actor, reason, initiated_by=initiated_by)

    # ------------------------------------------------------------------
    # 일일 작업 — StartDueShifts(now)
    # ------------------------------------------------------------------
    async def _start_one(self, db: AsyncSession, shift_id: UUID, now: datetime) -> bool:
        shift: Shift | None = await shift_repository.get_by_id(db, shift_id)
        if shift is None or shift.status != "assigned" or ensure_utc(shift.start_at) > now:
            return False
        await self._record(db, shift, "in_progress", SYSTEM_ACTOR, "started at scheduled time")
        return True

    async def start_due_shifts(self, db: AsyncSession, now: datetime | None = None) -> int:
        """시작 시각이 지난 배정 완료 시프트를 진행 중으로 전이합니다.

        Move every ``assigned`` shift whose start is at or before ``now`` to
        ``in_progress`` as the system actor. Each shift commits on its own;
        a shift changed concurrently is skipped.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            now: 기준 시각 (Clock, defaults to the current UTC time)

        Returns:
            int: 시작된 시프트 수 (Shifts started)
        """
        current: datetime = now or _now()
        started: int = 0
        for shift_id in await shift_repository.get_due_to_start(db, current):
            try:
                if await run_command(db, partial(self._start_one, db, shift_id, current)):
                    started += 1
            except ConflictError:
                emit_event("start_skipped", shift_id=shift_id, reason="version_mismatch")
        emit_event("start_due_shifts", started=started, now=current)
        return started


# 싱글턴 인스턴스 — Singleton instance
lifecycle_service: LifecycleService = LifecycleService()

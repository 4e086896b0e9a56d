"""시프트 배정 레포지토리 — 배정 및 직원 약속(commitment) 쿼리.

Shift Assignment Repository — Queries over the normalized assignment join
entity, including the worker commitment set used by the overlap check.
"""

from collections import defaultdict
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import Shift, ShiftAssignment
from app.repositories.base import BaseRepository
from app.repositories.shift_repository import RELEASED_STATUSES


class AssignmentRepository(BaseRepository[ShiftAssignment]):
    """시프트 배정 레포지토리.

    Shift assignment repository. Only rows with ``revoked_at IS NULL`` are
    active; revoked rows stay as the assignment audit trail.
    """

    def __init__(self) -> None:
        super().__init__(ShiftAssignment)

    async def get_active(
        self,
        db: AsyncSession,
        shift_id: UUID,
        worker_id: UUID,
    ) -> ShiftAssignment | None:
        """시프트-직원의 활성 배정을 조회합니다."""
        result = await db.execute(
            select(ShiftAssignment).where(
                ShiftAssignment.shift_id == shift_id,
                ShiftAssignment.worker_id == worker_id,
                ShiftAssignment.revoked_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_worker_ids(
        self,
        db: AsyncSession,
        shift_ids: list[UUID],
    ) -> dict[UUID, list[UUID]]:
        """시프트별 활성 배정 직원 ID 목록 (배정 순서).

        Map each shift id to its active worker ids in assignment order.
        Shifts without assignments map to an empty list.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            shift_ids: 시프트 ID 목록 (Shift UUIDs)

        Returns:
            dict[UUID, list[UUID]]: 시프트별 직원 목록 (Worker ids per shift)
        """
        mapping: dict[UUID, list[UUID]] = defaultdict(list)
        if not shift_ids:
            return mapping
        result = await db.execute(
            select(ShiftAssignment.shift_id, ShiftAssignment.worker_id)
            .where(
                ShiftAssignment.shift_id.in_(shift_ids),
                ShiftAssignment.revoked_at.is_(None),
            )
            .order_by(ShiftAssignment.assigned_at, ShiftAssignment.id)
        )
        for shift_id, worker_id in result.all():
            mapping[shift_id].append(worker_id)
        return mapping

    async def get_commitments(
        self,
        db: AsyncSession,
        worker_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
        exclude_shift_id: UUID | None = None,
    ) -> list[Shift]:
        """직원의 현재 약속(활성 배정 시프트)을 조회합니다.

        The worker's current commitments: shifts with an active assignment
        whose status is not cancelled, facility_cancelled or no_show.
        Always read fresh from the database so the overlap check never
        works from a stale snapshot.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            worker_id: 직원 ID (Worker UUID)
            date_from: 시작 날짜, 포함 (Inclusive lower date bound)
            date_to: 종료 날짜, 포함 (Inclusive upper date bound)
            exclude_shift_id: 제외할 시프트 (The candidate shift itself)

        Returns:
            list[Shift]: 약속된 시프트 목록 (Committed shifts ordered by start)
        """
        query: Select = (
            select(Shift)
            .join(ShiftAssignment, ShiftAssignment.shift_id == Shift.id)
            .where(
                ShiftAssignment.worker_id == worker_id,
                ShiftAssignment.revoked_at.is_(None),
                Shift.status.not_in(RELEASED_STATUSES),
            )
        )
        if date_from is not None:
            query = query.where(Shift.shift_date >= date_from)
        if date_to is not None:
            query = query.where(Shift.shift_date <= date_to)
        if exclude_shift_id is not None:
            query = query.where(Shift.id != exclude_shift_id)
        query = query.order_by(Shift.start_at, Shift.id)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def revoke(
        self,
        db: AsyncSession,
        assignment: ShiftAssignment,
        revoked_by: UUID | None,
        revoked_at: datetime,
    ) -> None:
        """배정을 해제합니다 (행은 삭제하지 않음) — Revoke without deleting the row."""
        assignment.revoked_by = revoked_by
        assignment.revoked_at = revoked_at
        await db.flush()


# 싱글턴 인스턴스 — Singleton instance
assignment_repository: AssignmentRepository = AssignmentRepository()

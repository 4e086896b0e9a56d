"""근무 신청 레포지토리 — 직원 시프트 신청 쿼리.

Shift Request Repository — Queries for worker shift requests.
"""

from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import ShiftRequest
from app.repositories.base import BaseRepository


class ShiftRequestRepository(BaseRepository[ShiftRequest]):
    """근무 신청 레포지토리 (Shift request repository)."""

    def __init__(self) -> None:
        super().__init__(ShiftRequest)

    async def get_pending(
        self,
        db: AsyncSession,
        shift_id: UUID,
        worker_id: UUID | None = None,
    ) -> ShiftRequest | None:
        """대기 중인 신청을 조회합니다.

        Return the worker's pending request on the shift, or the oldest
        pending request when ``worker_id`` is None.
        """
        query: Select = select(ShiftRequest).where(
            ShiftRequest.shift_id == shift_id,
            ShiftRequest.status == "pending",
        )
        if worker_id is not None:
            query = query.where(ShiftRequest.worker_id == worker_id)
        query = query.order_by(ShiftRequest.requested_at, ShiftRequest.id).limit(1)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_shift(
        self,
        db: AsyncSession,
        shift_id: UUID,
        status: str | None = None,
    ) -> list[ShiftRequest]:
        """시프트의 신청 목록 (신청 순) — Requests of a shift in request order."""
        query: Select = select(ShiftRequest).where(ShiftRequest.shift_id == shift_id)
        if status is not None:
            query = query.where(ShiftRequest.status == status)
        query = query.order_by(ShiftRequest.requested_at, ShiftRequest.id)
        result = await db.execute(query)
        return list(result.scalars().all())


# 싱글턴 인스턴스 — Singleton instance
request_repository: ShiftRequestRepository = ShiftRequestRepository()

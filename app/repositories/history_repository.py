"""시프트 상태 이력 레포지토리 — 추가 전용 감사 기록.

Shift History Repository — Append-only audit trail queries.
Rows are only ever inserted; there is no update or delete path.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import ShiftHistory
from app.repositories.base import BaseRepository


class ShiftHistoryRepository(BaseRepository[ShiftHistory]):
    """시프트 이력 레포지토리 (Shift history repository)."""

    def __init__(self) -> None:
        super().__init__(ShiftHistory)

    async def append(
        self,
        db: AsyncSession,
        shift_id: UUID,
        previous_status: str | None,
        new_status: str,
        actor_id: UUID | None,
        actor_role: str | None,
        initiated_by: str,
        note: str | None = None,
    ) -> ShiftHistory:
        """이력 항목을 추가합니다.

        Append one history entry with the next per-shift sequence number.
        Two writers racing on the same shift compute the same sequence and
        the unique constraint rejects the second.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            shift_id: 시프트 ID (Shift UUID)
            previous_status: 이전 상태, 생성 시 None (Prior status, None on creation)
            new_status: 새 상태 (New status)
            actor_id: 수행자 ID (Actor id)
            actor_role: 수행자 역할 (Actor role)
            initiated_by: 주체 구분 (worker / scheduler / facility / system)
            note: 메모 (Free-text note)

        Returns:
            ShiftHistory: 생성된 이력 (Created entry)
        """
        current: int = (
            await db.execute(
                select(func.coalesce(func.max(ShiftHistory.sequence), 0)).where(ShiftHistory.shift_id == shift_id)
            )
        ).scalar() or 0
        return await self.create(
            db,
            {
                "shift_id": shift_id,
                "sequence": current + 1,
                "previous_status": previous_status,
                "new_status": new_status,
                "actor_id": actor_id,
                "actor_role": actor_role,
                "initiated_by": initiated_by,
                "note": note,
            },
        )

    async def get_by_shift(self, db: AsyncSession, shift_id: UUID) -> list[ShiftHistory]:
        """시프트 이력을 순번 순으로 조회합니다 — History in sequence order."""
        result = await db.execute(
            select(ShiftHistory).where(ShiftHistory.shift_id == shift_id).order_by(ShiftHistory.sequence)
        )
        return list(result.scalars().all())


# 싱글턴 인스턴스 — Singleton instance
history_repository: ShiftHistoryRepository = ShiftHistoryRepository()

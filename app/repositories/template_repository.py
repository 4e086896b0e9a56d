"""시프트 템플릿 레포지토리 — 템플릿 조회 쿼리.

Shift Template Repository — Queries for recurring shift templates.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.template import ShiftTemplate
from app.repositories.base import BaseRepository


class ShiftTemplateRepository(BaseRepository[ShiftTemplate]):
    """시프트 템플릿 테이블에 대한 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the shift_templates table.
    """

    def __init__(self) -> None:
        super().__init__(ShiftTemplate)

    async def get_filtered(
        self,
        db: AsyncSession,
        facility_id: UUID | None = None,
        is_active: bool | None = None,
    ) -> list[ShiftTemplate]:
        """시설/활성 여부로 템플릿을 조회합니다.

        List templates, optionally filtered by facility and active flag,
        ordered by facility then name.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            facility_id: 시설 ID 필터 (Optional facility filter)
            is_active: 활성 여부 필터 (Optional active filter)

        Returns:
            list[ShiftTemplate]: 템플릿 목록 (Matching templates)
        """
        query: Select = select(ShiftTemplate)
        if facility_id is not None:
            query = query.where(ShiftTemplate.facility_id == facility_id)
        if is_active is not None:
            query = query.where(ShiftTemplate.is_active == is_active)
        query = query.order_by(ShiftTemplate.facility_id, ShiftTemplate.name, ShiftTemplate.id)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_active_ids(self, db: AsyncSession) -> Sequence[UUID]:
        """활성 템플릿 ID 목록 — IDs of every active template, for the batch generator."""
        result = await db.execute(
            select(ShiftTemplate.id).where(ShiftTemplate.is_active.is_(True)).order_by(ShiftTemplate.id)
        )
        return result.scalars().all()


# 싱글턴 인스턴스 — Singleton instance
template_repository: ShiftTemplateRepository = ShiftTemplateRepository()

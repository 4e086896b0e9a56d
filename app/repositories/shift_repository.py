"""시프트 레포지토리 — 시프트 조회/생성 쿼리.

Shift Repository — Queries for the single tagged shift table (template
instances, ad-hoc and block shifts).
"""

from datetime import date, datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import Shift
from app.repositories.base import BaseRepository

# 집계/약속 계산에서 제외되는 상태 — Statuses that free the worker and drop out of staffing totals
RELEASED_STATUSES: tuple[str, ...] = ("cancelled", "facility_cancelled", "no_show")


class ShiftRepository(BaseRepository[Shift]):
    """시프트 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the shifts table.
    """

    def __init__(self) -> None:
        super().__init__(Shift)

    async def get_existing_keys(self, db: AsyncSession, keys: list[str]) -> set[str]:
        """이미 존재하는 결정적 키 집합을 반환합니다.

        Return the subset of ``keys`` that already exist. The generator
        inserts only the missing ones and never touches existing rows.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            keys: 확인할 키 목록 (Candidate shift keys)

        Returns:
            set[str]: 존재하는 키 (Keys already materialized)
        """
        if not keys:
            return set()
        result = await db.execute(select(Shift.shift_key).where(Shift.shift_key.in_(keys)))
        return set(result.scalars().all())

    async def get_by_keys(self, db: AsyncSession, keys: list[str]) -> Sequence[Shift]:
        """결정적 키로 시프트를 날짜 순으로 조회합니다."""
        if not keys:
            return []
        query: Select = (
            select(Shift)
            .where(Shift.shift_key.in_(keys))
            .order_by(Shift.shift_date.asc(), Shift.id.asc())
        )
        result = await db.execute(query)
        return result.scalars().all()

    def build_list_query(
        self,
        facility_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: str | None = None,
        specialty: str | None = None,
        origin: str | None = None,
        template_id: UUID | None = None,
    ) -> Select:
        """필터 조건으로 시프트 목록 쿼리를 구성합니다.

        Build the shift list query ordered by start instant.

        Args:
            facility_id: 시설 필터 (Facility filter)
            date_from: 시작 날짜, 포함 (Inclusive lower date bound)
            date_to: 종료 날짜, 포함 (Inclusive upper date bound)
            status: 상태 필터 (Workflow status filter)
            specialty: 전문 분야 필터 (Specialty filter)
            origin: 생성 출처 필터 (Origin filter)
            template_id: 템플릿 필터 (Template filter)

        Returns:
            Select: 시프트 쿼리 (Shift query)
        """
        query: Select = select(Shift)
        if facility_id is not None:
            query = query.where(Shift.facility_id == facility_id)
        if date_from is not None:
            query = query.where(Shift.shift_date >= date_from)
        if date_to is not None:
            query = query.where(Shift.shift_date <= date_to)
        if status is not None:
            query = query.where(Shift.status == status)
        if specialty is not None:
            query = query.where(Shift.specialty == specialty)
        if origin is not None:
            query = query.where(Shift.origin == origin)
        if template_id is not None:
            query = query.where(Shift.template_id == template_id)
        return query.order_by(Shift.start_at, Shift.slot_index, Shift.id)

    async def get_for_facility_date(
        self,
        db: AsyncSession,
        facility_id: UUID,
        shift_date: date,
    ) -> list[Shift]:
        """시설의 특정 날짜 시프트 중 취소/노쇼가 아닌 것을 조회합니다.

        Shifts of a facility on a date that still count toward staffing.
        """
        query: Select = (
            self.build_list_query(facility_id=facility_id, date_from=shift_date, date_to=shift_date)
            .where(Shift.status.not_in(RELEASED_STATUSES))
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_open_for_specialty(
        self,
        db: AsyncSession,
        specialty: str,
        facility_ids: list[UUID],
        date_from: date,
    ) -> list[Shift]:
        """직원이 신청할 수 있는 열린 시프트 목록.

        Open or requested shifts of the given specialty at the given facilities,
        from ``date_from`` onward.
        """
        if not facility_ids:
            return []
        query: Select = (
            select(Shift)
            .where(
                Shift.specialty == specialty,
                Shift.facility_id.in_(facility_ids),
                Shift.status.in_(("open", "requested")),
                Shift.shift_date >= date_from,
            )
            .order_by(Shift.start_at, Shift.id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_due_to_start(self, db: AsyncSession, now: datetime) -> Sequence[UUID]:
        """시작 시각이 지난 배정 완료 시프트 ID 목록.

        Ids of ``assigned`` shifts whose start instant is at or before ``now``.
        """
        result = await db.execute(
            select(Shift.id)
            .where(Shift.status == "assigned", Shift.start_at <= now)
            .order_by(Shift.start_at, Shift.id)
        )
        return result.scalars().all()


# 싱글턴 인스턴스 — Singleton instance
shift_repository: ShiftRepository = ShiftRepository()

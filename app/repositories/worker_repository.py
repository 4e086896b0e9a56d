"""직원/시설 디렉터리 레포지토리 — 자격 프로필 조회 쿼리.

Directory Repository — Read queries over facilities, workers and their
facility memberships. The engine never writes these tables.
"""

from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.directory import Facility, Worker, WorkerFacility
from app.repositories.base import BaseRepository


class FacilityRepository(BaseRepository[Facility]):
    """시설 레포지토리 (Facility repository)."""

    def __init__(self) -> None:
        super().__init__(Facility)


class WorkerRepository(BaseRepository[Worker]):
    """직원 테이블에 대한 쿼리를 담당하는 레포지토리.

    Repository handling queries for workers and worker_facilities.
    """

    def __init__(self) -> None:
        super().__init__(Worker)

    async def get_for_update(self, db: AsyncSession, worker_id: UUID) -> Worker | None:
        """직원 행을 잠금과 함께 조회합니다.

        Load a worker row with ``SELECT ... FOR UPDATE``. Holding this lock
        while reading commitments serializes concurrent assignments of the
        same worker across different shifts.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            worker_id: 직원 ID (Worker UUID)

        Returns:
            Worker | None: 잠긴 직원 또는 None (Locked worker or None)
        """
        result = await db.execute(
            select(Worker).where(Worker.id == worker_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_facility_ids(self, db: AsyncSession, worker_id: UUID) -> list[UUID]:
        """직원이 소속된 시설 ID 목록 — Facility ids the worker is associated with."""
        result = await db.execute(
            select(WorkerFacility.facility_id).where(WorkerFacility.worker_id == worker_id)
        )
        return list(result.scalars().all())

    async def get_facility_candidates(
        self,
        db: AsyncSession,
        facility_id: UUID,
    ) -> list[tuple[Worker, bool]]:
        """시설에 소속된 직원과 즐겨찾기 여부를 조회합니다.

        List workers associated with a facility together with the facility's
        favorite flag. Used as the candidate pool for eligible-worker search.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            facility_id: 시설 ID (Facility UUID)

        Returns:
            list[tuple[Worker, bool]]: (직원, 즐겨찾기) 목록 (Worker and favorite flag pairs)
        """
        query: Select = (
            select(Worker, WorkerFacility.is_favorite)
            .join(WorkerFacility, WorkerFacility.worker_id == Worker.id)
            .where(WorkerFacility.facility_id == facility_id)
            .order_by(Worker.id)
        )
        result = await db.execute(query)
        return [(worker, bool(is_favorite)) for worker, is_favorite in result.all()]


# 싱글턴 인스턴스 — Singleton instances
facility_repository: FacilityRepository = FacilityRepository()
worker_repository: WorkerRepository = WorkerRepository()

"""시설/직원 디렉터리 서비스 — 자격 프로필과 시설 시간대 조회.

Directory Service — The engine's read-only view of the facility and staff
directory: ``get_worker_profile`` and ``get_facility``.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.directory import Facility, Worker
from app.repositories.worker_repository import facility_repository, worker_repository
from app.utils.exceptions import NotFoundError


@dataclass(frozen=True)
class WorkerProfile:
    """직원 자격 프로필 (Worker eligibility profile)."""

    id: UUID
    specialty: str
    is_active: bool
    facility_ids: frozenset[UUID]
    full_name: str = ""
    reliability_score: float | None = None


@dataclass(frozen=True)
class FacilityInfo:
    """시설 정보 (Facility id and IANA timezone)."""

    id: UUID
    timezone: str


def to_profile(worker: Worker, facility_ids: list[UUID]) -> WorkerProfile:
    """직원 모델을 자격 프로필로 변환합니다."""
    return WorkerProfile(
        id=worker.id,
        specialty=worker.specialty,
        is_active=bool(worker.is_active),
        facility_ids=frozenset(facility_ids),
        full_name=worker.full_name,
        reliability_score=worker.reliability_score,
    )


class DirectoryService:
    """디렉터리 조회 서비스 (Directory lookups)."""

    async def get_worker_profile(
        self,
        db: AsyncSession,
        worker_id: UUID,
        lock: bool = False,
    ) -> WorkerProfile:
        """직원 자격 프로필을 조회합니다.

        Load a worker's eligibility profile. With ``lock`` the worker row is
        held ``FOR UPDATE`` until the transaction ends, which serializes
        assignment decisions for that worker.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            worker_id: 직원 ID (Worker UUID)
            lock: 행 잠금 여부 (Lock the worker row)

        Returns:
            WorkerProfile: 자격 프로필 (Eligibility profile)

        Raises:
            NotFoundError: 직원을 찾을 수 없을 때 (Unknown worker)
        """
        worker: Worker | None
        if lock:
            worker = await worker_repository.get_for_update(db, worker_id)
        else:
            worker = await worker_repository.get_by_id(db, worker_id)
        if worker is None:
            raise NotFoundError("Worker not found", worker_id=str(worker_id))
        facility_ids: list[UUID] = await worker_repository.get_facility_ids(db, worker_id)
        return to_profile(worker, facility_ids)

    async def get_facility(self, db: AsyncSession, facility_id: UUID) -> FacilityInfo:
        """시설 정보를 조회합니다.

        Raises:
            NotFoundError: 시설을 찾을 수 없을 때 (Unknown facility)
        """
        facility: Facility | None = await facility_repository.get_by_id(db, facility_id)
        if facility is None:
            raise NotFoundError("Facility not found", facility_id=str(facility_id))
        return FacilityInfo(id=facility.id, timezone=facility.timezone or "UTC")


# 싱글턴 인스턴스 — Singleton instance
directory_service: DirectoryService = DirectoryService()

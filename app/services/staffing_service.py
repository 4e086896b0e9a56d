"""스태핑 계산 서비스 — 배정 인원으로부터 충원 현황을 파생합니다.

Staffing Calculator — Derives fill ratio, need and a display status from a
shift's required and assigned counts.

``calculate_staffing`` and ``display_status`` are pure functions. They
never decide the workflow status: a shift can be filled and still be
cancelled, and reaching ``required`` does not move a shift to
``assigned``.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import Shift
from app.repositories.shift_repository import shift_repository
from app.schemas.staffing import DateStaffingResponse, StaffingResponse
from app.services.authorization_service import Actor, authorization_service
from app.services.directory_service import directory_service
from app.services.transition_table import TERMINAL_STATUSES
from app.utils.exceptions import NotFoundError


@dataclass(frozen=True)
class Staffing:
    """시프트 충원 현황 (Staffing projection)."""

    assigned: int
    required: int
    percent_filled: int
    is_fully_staffed: bool
    still_needed: int


def percent_filled(assigned: int, required: int) -> int:
    """충원율(%)을 반올림(half up)하여 계산합니다. required가 0이면 0."""
    if required <= 0:
        return 0
    return (200 * assigned + required) // (2 * required)


def calculate_staffing(assigned: int, required: int) -> Staffing:
    """배정/필요 인원으로 충원 현황을 계산합니다.

    Args:
        assigned: 배정 인원 (Active assignments)
        required: 필요 인원 (Required staff)

    Returns:
        Staffing: 충원 현황 (Projection)
    """
    return Staffing(
        assigned=assigned,
        required=required,
        percent_filled=percent_filled(assigned, required),
        is_fully_staffed=assigned >= required,
        still_needed=max(0, required - assigned),
    )


def display_status(staffing: Staffing, workflow_status: str) -> str:
    """표시용 상태를 결정합니다.

    Terminal workflow states win; otherwise the label comes from the counts.
    """
    if workflow_status in TERMINAL_STATUSES:
        return workflow_status
    if staffing.assigned == 0:
        return "unfilled"
    if staffing.is_fully_staffed:
        return "filled"
    return "partially_filled"


class StaffingService:
    """충원 현황 조회 서비스 (Staffing read service)."""

    def for_shift(self, shift: Shift) -> StaffingResponse:
        """시프트의 충원 현황 응답을 만듭니다."""
        staffing: Staffing = calculate_staffing(shift.assigned_count, shift.required_staff)
        return StaffingResponse(
            assigned=staffing.assigned,
            required=staffing.required,
            percent_filled=staffing.percent_filled,
            is_fully_staffed=staffing.is_fully_staffed,
            still_needed=staffing.still_needed,
            display_status=display_status(staffing, shift.status),
        )

    async def get_shift_staffing(
        self,
        db: AsyncSession,
        shift_id: UUID,
        actor: Actor,
    ) -> StaffingResponse:
        """시프트 하나의 충원 현황을 조회합니다.

        Raises:
            NotFoundError: 시프트를 찾을 수 없을 때 (Unknown shift)
        """
        authorization_service.require(actor, "staffing:read")
        shift: Shift | None = await shift_repository.get_by_id(db, shift_id)
        if shift is None:
            raise NotFoundError("Shift not found", shift_id=str(shift_id))
        return self.for_shift(shift)

    async def get_date_staffing(
        self,
        db: AsyncSession,
        facility_id: UUID,
        shift_date: date,
        actor: Actor,
    ) -> DateStaffingResponse:
        """시설의 일자별 충원 요약을 조회합니다.

        Aggregate staffing of a facility on one date, over shifts that are
        not cancelled, facility_cancelled or no_show.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            facility_id: 시설 ID (Facility UUID)
            shift_date: 대상 날짜 (Date)
            actor: 수행자 (Actor)

        Returns:
            DateStaffingResponse: 일자별 요약 (Date summary)
        """
        authorization_service.require(actor, "staffing:read")
        await directory_service.get_facility(db, facility_id)
        shifts: list[Shift] = await shift_repository.get_for_facility_date(db, facility_id, shift_date)

        per_shift: list[Staffing] = [calculate_staffing(s.assigned_count, s.required_staff) for s in shifts]
        required: int = sum(s.required for s in per_shift)
        assigned: int = sum(s.assigned for s in per_shift)
        return DateStaffingResponse(
            facility_id=str(facility_id),
            date=shift_date,
            shift_count=len(per_shift),
            required=required,
            assigned=assigned,
            still_needed=sum(s.still_needed for s in per_shift),
            percent_filled=percent_filled(assigned, required),
            fully_staffed_shifts=sum(1 for s in per_shift if s.is_fully_staffed),
        )


# 싱글턴 인스턴스 — Singleton instance
staffing_service: StaffingService = StaffingService()

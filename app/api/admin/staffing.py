"""관리자 충원 현황 라우터 — 시프트/일자별 충원 및 직원 약속 조회.

Admin Staffing Router — Staffing projections per shift and per facility
date, and the current commitments of a worker.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentActor
from app.database import get_db
from app.schemas.shift import ShiftResponse
from app.schemas.staffing import DateStaffingResponse, StaffingResponse
from app.services.availability_service import availability_service
from app.services.staffing_service import staffing_service

router: APIRouter = APIRouter()


@router.get("/shifts/{shift_id}/staffing", response_model=StaffingResponse)
async def get_shift_staffing(
    shift_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> StaffingResponse:
    """시프트 하나의 충원 현황을 조회합니다.

    Staffing projection of one shift.
    """
    return await staffing_service.get_shift_staffing(db, shift_id, actor)


@router.get("/facilities/{facility_id}/staffing", response_model=DateStaffingResponse)
async def get_date_staffing(
    facility_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    shift_date: Annotated[date, Query(alias="date")],
) -> DateStaffingResponse:
    """시설의 일자별 충원 요약을 조회합니다.

    Aggregate staffing of a facility on one date.
    """
    return await staffing_service.get_date_staffing(db, facility_id, shift_date, actor)


@router.get("/workers/{worker_id}/commitments", response_model=list[ShiftResponse])
async def get_worker_commitments(
    worker_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
) -> list[ShiftResponse]:
    return await availability_service.worker_commitments(db, worker_id, actor, date_from, date_to)

"""앱 시프트 라우터 — 직원용 시프트 조회 및 신청 API.

App Shift Router — Endpoints for workers: my committed shifts, the open
shifts I can request, and requesting or withdrawing a request.
The worker is always the one named in the token (``wid``).
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentActor
from app.database import get_db
from app.schemas.shift import ShiftRequestCreate, ShiftRequestResponse, ShiftResponse
from app.services.authorization_service import authorization_service
from app.services.availability_service import availability_service
from app.services.lifecycle_service import lifecycle_service
from app.utils.concurrency import run_command

router: APIRouter = APIRouter()


@router.get("/my/shifts", response_model=list[ShiftResponse])
async def list_my_shifts(
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
) -> list[ShiftResponse]:
    """내가 배정된 시프트 목록을 조회합니다.

    List my current commitments, ordered by start.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        actor: 인증된 수행자 (Authenticated actor)
        date_from: 시작 날짜 필터, 선택 (Optional lower date bound)
        date_to: 종료 날짜 필터, 선택 (Optional upper date bound)

    Returns:
        list[ShiftResponse]: 내 시프트 목록 (My shifts)
    """
    worker_id: UUID = authorization_service.worker_id_of(actor)
    return await availability_service.worker_commitments(db, worker_id, actor, date_from, date_to)


@router.get("/open-shifts", response_model=list[ShiftResponse])
async def list_open_shifts(
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    date_from: Annotated[date | None, Query()] = None,
) -> list[ShiftResponse]:
    """신청 가능한 열린 시프트 목록을 조회합니다.

    Open shifts I am eligible to request.
    """
    return await availability_service.open_shifts_for_worker(db, actor, date_from)


@router.post("/shifts/{shift_id}/request", response_model=ShiftRequestResponse, status_code=201)
async def request_shift(
    shift_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    data: ShiftRequestCreate | None = None,
) -> ShiftRequestResponse:
    """시프트를 신청합니다.

    Request a shift. The first request moves an open shift to requested.
    """
    worker_id: UUID = authorization_service.worker_id_of(actor)
    note: str | None = data.note if data else None
    return await run_command(db, lambda: lifecycle_service.request_shift(db, shift_id, worker_id, actor, note))


@router.post("/shifts/{shift_id}/withdraw", response_model=ShiftRequestResponse)
async def withdraw_request(
    shift_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftRequestResponse:
    """대기 중인 내 신청을 철회합니다.

    Withdraw my pending request on a shift.
    """
    worker_id: UUID = authorization_service.worker_id_of(actor)
    return await run_command(db, lambda: lifecycle_service.withdraw_request(db, shift_id, worker_id, actor))

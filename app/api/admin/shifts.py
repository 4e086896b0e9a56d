"""관리자 시프트 라우터 — 시프트 생성/조회 및 라이프사이클 명령 엔드포인트.

Admin Shift Router — Ad-hoc and block shift creation, shift queries, and
the lifecycle commands (transition, assign, unassign, cancel).
All endpoints are nested under /shifts.

Lifecycle commands run through ``run_command``: a version conflict is
retried once from a fresh read before a 409 is returned.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentActor
from app.database import get_db
from app.schemas.common import PaginatedResponse
from app.schemas.shift import (
    AssignWorkerRequest,
    BlockShiftCreate,
    CancelRequest,
    EligibleWorkerResponse,
    ShiftCreate,
    ShiftHistoryResponse,
    ShiftRequestResponse,
    ShiftResponse,
    TransitionRequest,
)
from app.services.availability_service import availability_service
from app.services.lifecycle_service import lifecycle_service
from app.services.shift_service import shift_service
from app.utils.concurrency import run_command

router: APIRouter = APIRouter()


@router.get("", response_model=PaginatedResponse)
async def list_shifts(
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    facility_id: Annotated[UUID | None, Query()] = None,
    date_from: Annotated[date | None, Query()] = None,
    date_to: Annotated[date | None, Query()] = None,
    status: Annotated[str | None, Query()] = None,
    specialty: Annotated[str | None, Query()] = None,
    origin: Annotated[str | None, Query()] = None,
    template_id: Annotated[UUID | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=200)] = 50,
) -> PaginatedResponse:
    """시프트 목록을 조회합니다 (시설/기간/상태/전문분야/출처/템플릿 필터).

    List shifts ordered by start instant.
    """
    return await shift_service.list_shifts(
        db,
        actor,
        facility_id=facility_id,
        date_from=date_from,
        date_to=date_to,
        status=status,
        specialty=specialty,
        origin=origin,
        template_id=template_id,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=ShiftResponse, status_code=201)
async def create_shift(
    data: ShiftCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftResponse:
    """단건(ad-hoc) 시프트를 생성합니다.

    Create a single ad-hoc shift in status open.
    """
    result: ShiftResponse = await shift_service.create_shift(db, data, actor)
    await db.commit()
    return result


@router.post("/blocks", response_model=list[ShiftResponse], status_code=201)
async def create_block_shifts(
    data: BlockShiftCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> list[ShiftResponse]:
    """블록 시프트를 생성합니다 (날짜별 1건, 공통 block id).

    Create one shift per date of a block; resubmitting the same block
    returns its existing shifts without duplicating them.
    """
    result: list[ShiftResponse] = await shift_service.create_block_shifts(db, data, actor)
    await db.commit()
    return result


@router.get("/{shift_id}", response_model=ShiftResponse)
async def get_shift(
    shift_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftResponse:
    return await shift_service.get_shift(db, shift_id, actor)


@router.get("/{shift_id}/history", response_model=list[ShiftHistoryResponse])
async def get_shift_history(
    shift_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> list[ShiftHistoryResponse]:
    """시프트 상태 이력을 순서대로 조회합니다.

    The append-only status history of a shift, oldest first.
    """
    return await shift_service.get_history(db, shift_id, actor)


@router.get("/{shift_id}/requests", response_model=list[ShiftRequestResponse])
async def list_shift_requests(
    shift_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    status: Annotated[str | None, Query()] = None,
) -> list[ShiftRequestResponse]:
    return await shift_service.list_requests(db, shift_id, actor, status)


@router.get("/{shift_id}/eligible-workers", response_model=list[EligibleWorkerResponse])
async def list_eligible_workers(
    shift_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> list[EligibleWorkerResponse]:
    """시프트에 배정 가능한 직원 목록을 조회합니다.

    Workers who pass every eligibility check, favorites first.
    """
    return await availability_service.eligible_workers(db, shift_id, actor)


@router.post("/{shift_id}/transition", response_model=ShiftResponse)
async def transition_shift(
    shift_id: UUID,
    data: TransitionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftResponse:
    """시프트 상태를 전이합니다.

    Move a shift to another status. Illegal moves return 409 and leave
    the shift unchanged.
    """
    return await run_command(
        db,
        lambda: lifecycle_service.transition(
            db, shift_id, data.new_status, actor, note=data.note, worker_id=data.worker_id
        ),
    )


@router.post("/{shift_id}/assign", response_model=ShiftResponse)
async def assign_worker(
    shift_id: UUID,
    data: AssignWorkerRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftResponse:
    """직원을 시프트에 배정합니다.

    Add a worker to the shift. Eligibility, overlap and capacity are
    checked against the current state; the status is not changed.
    """
    return await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, data.worker_id, actor))


@router.post("/{shift_id}/unassign", response_model=ShiftResponse)
async def unassign_worker(
    shift_id: UUID,
    data: AssignWorkerRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftResponse:
    return await run_command(db, lambda: lifecycle_service.unassign_worker(db, shift_id, data.worker_id, actor))


@router.post("/{shift_id}/cancel", response_model=ShiftResponse)
async def cancel_shift(
    shift_id: UUID,
    data: CancelRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftResponse:
    """시프트를 취소합니다 (사유 필수).

    Cancel a shift; ``facility_initiated`` ends it in facility_cancelled.
    """
    return await run_command(
        db,
        lambda: lifecycle_service.cancel_shift(
            db, shift_id, actor, data.reason, facility_initiated=data.facility_initiated
        ),
    )

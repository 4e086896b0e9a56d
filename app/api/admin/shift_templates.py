"""관리자 시프트 템플릿 라우터 — 반복 템플릿 CRUD 및 인스턴스 생성 엔드포인트.

Admin Shift Template Router — CRUD for recurring templates, plus
generation of dated shifts from them.
All endpoints are nested under /shift-templates.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import CurrentActor
from app.database import get_db, get_session_factory
from app.schemas.template import (
    BatchGenerationResult,
    GenerateRequest,
    GenerationPreview,
    GenerationResult,
    ShiftTemplateCreate,
    ShiftTemplateResponse,
    ShiftTemplateUpdate,
)
from app.services.generation_service import generation_service
from app.services.template_service import template_service

router: APIRouter = APIRouter()


@router.get("", response_model=list[ShiftTemplateResponse])
async def list_templates(
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    facility_id: Annotated[UUID | None, Query()] = None,
    is_active: Annotated[bool | None, Query()] = None,
) -> list[ShiftTemplateResponse]:
    """템플릿 목록을 조회합니다.

    List templates, optionally filtered by facility and active flag.
    """
    return await template_service.list_templates(db, actor, facility_id, is_active)


@router.post("", response_model=ShiftTemplateResponse, status_code=201)
async def create_template(
    data: ShiftTemplateCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftTemplateResponse:
    """새 반복 템플릿을 생성합니다.

    Create a recurring shift template.
    """
    result: ShiftTemplateResponse = await template_service.create_template(db, data, actor)
    await db.commit()
    return result


@router.post("/generate", response_model=BatchGenerationResult)
async def generate_all(
    actor: CurrentActor,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    as_of: Annotated[date | None, Query()] = None,
) -> BatchGenerationResult:
    """모든 활성 템플릿의 시프트를 생성합니다.

    Generate shifts for every active template. Per-template failures are
    reported in the result; the response is 200 regardless.
    """
    return await generation_service.generate_all_active(as_of, session_factory=session_factory, actor=actor)


@router.get("/{template_id}", response_model=ShiftTemplateResponse)
async def get_template(
    template_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftTemplateResponse:
    return await template_service.get_template(db, template_id, actor)


@router.put("/{template_id}", response_model=ShiftTemplateResponse)
async def update_template(
    template_id: UUID,
    data: ShiftTemplateUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftTemplateResponse:
    """템플릿을 수정합니다. 이미 생성된 시프트는 바뀌지 않습니다.

    Update a template. Existing instances keep their copied values.
    """
    result: ShiftTemplateResponse = await template_service.update_template(db, template_id, data, actor)
    await db.commit()
    return result


@router.post("/{template_id}/deactivate", response_model=ShiftTemplateResponse)
async def deactivate_template(
    template_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
) -> ShiftTemplateResponse:
    """템플릿을 비활성화합니다 (이후 생성 중단).

    Deactivate a template so no further instances are generated.
    """
    result: ShiftTemplateResponse = await template_service.deactivate_template(db, template_id, actor)
    await db.commit()
    return result


@router.post("/{template_id}/generate", response_model=GenerationResult)
async def generate_from_template(
    template_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    data: GenerateRequest | None = None,
) -> GenerationResult:
    """템플릿 하나의 시프트를 생성합니다.

    Expand one template over its horizon. Dates are committed one by one
    inside the service, so a repeat call only fills the gaps.
    """
    request: GenerateRequest = data or GenerateRequest()
    return await generation_service.generate_from_template(
        db, template_id, actor, as_of=request.as_of, horizon_days=request.horizon_days
    )


@router.get("/{template_id}/preview", response_model=GenerationPreview)
async def preview_generation(
    template_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: CurrentActor,
    as_of: Annotated[date | None, Query()] = None,
    horizon_days: Annotated[int | None, Query(ge=1)] = None,
) -> GenerationPreview:
    """생성 미리보기 — 아무것도 저장하지 않습니다.

    Dry run of a generation: dates and instance count a run would add.
    """
    return await generation_service.preview(db, template_id, actor, as_of, horizon_days)

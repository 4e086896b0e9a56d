"""시프트 템플릿 서비스 — 반복 시프트 정의 관리.

Template Store — Create, update, read and deactivate recurring shift
templates. Editing or deactivating a template never touches instances that
were already generated; they carry copied values.
"""

from datetime import time
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.template import ShiftTemplate
from app.repositories.template_repository import template_repository
from app.schemas.template import ShiftTemplateCreate, ShiftTemplateResponse, ShiftTemplateUpdate
from app.services.authorization_service import Actor, authorization_service
from app.services.directory_service import directory_service
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.shift_time import format_time, is_overnight, parse_time

# 최대 생성 기간 — Longest horizon a template may request
MAX_HORIZON_DAYS: int = 366


def validate_definition(
    days_of_week: list[int],
    start_time: time,
    end_time: time,
    min_staff: int,
    max_staff: int,
    horizon_days: int,
) -> None:
    """템플릿 정의를 검증합니다.

    Validate a template definition. ``end_time <= start_time`` is an
    overnight template; equal times are rejected.

    Args:
        days_of_week: 반복 요일 (Weekdays, 0=Sunday … 6=Saturday)
        start_time: 시작 시각 (Local start)
        end_time: 종료 시각 (Local end)
        min_staff: 최소 인원 (Minimum staff)
        max_staff: 최대 인원 (Maximum staff)
        horizon_days: 생성 기간 (Horizon in days)

    Raises:
        ValidationError: 정의가 잘못되었을 때 (Malformed definition)
    """
    if not days_of_week:
        raise ValidationError("weekday set is empty", days_of_week=[])
    invalid: list[int] = [d for d in days_of_week if not isinstance(d, int) or isinstance(d, bool) or not 0 <= d <= 6]
    if invalid:
        raise ValidationError("weekdays must be between 0 (Sunday) and 6 (Saturday)", invalid_days=invalid)
    if len(set(days_of_week)) != len(days_of_week):
        raise ValidationError("weekday set contains duplicates", days_of_week=list(days_of_week))
    if min_staff <= 0:
        raise ValidationError("minimum staff must be positive", min_staff=min_staff)
    if max_staff < min_staff:
        raise ValidationError(
            "maximum staff cannot be below minimum staff",
            min_staff=min_staff,
            max_staff=max_staff,
        )
    if start_time == end_time:
        raise ValidationError(
            "start and end time are equal",
            start_time=format_time(start_time),
            end_time=format_time(end_time),
        )
    if not 0 < horizon_days <= MAX_HORIZON_DAYS:
        raise ValidationError(
            f"horizon must be between 1 and {MAX_HORIZON_DAYS} days",
            horizon_days=horizon_days,
        )


def validate_template(template: ShiftTemplate) -> None:
    """저장된 템플릿을 검증합니다 — Re-validate a stored template before generation."""
    validate_definition(
        list(template.days_of_week or []),
        template.start_time,
        template.end_time,
        template.min_staff,
        template.max_staff,
        template.horizon_days,
    )


class TemplateService:
    """시프트 템플릿 서비스 (Shift template service)."""

    def to_response(self, template: ShiftTemplate) -> ShiftTemplateResponse:
        """템플릿 모델을 응답 스키마로 변환합니다."""
        return ShiftTemplateResponse(
            id=str(template.id),
            facility_id=str(template.facility_id),
            name=template.name,
            department=template.department,
            specialty=template.specialty,
            start_time=format_time(template.start_time),
            end_time=format_time(template.end_time),
            is_overnight=is_overnight(template.start_time, template.end_time),
            days_of_week=sorted(template.days_of_week or []),
            min_staff=template.min_staff,
            max_staff=template.max_staff,
            hourly_rate=template.hourly_rate,
            horizon_days=template.horizon_days,
            is_active=template.is_active,
            notes=template.notes,
            generated_shifts_count=template.generated_shifts_count,
            created_at=template.created_at,
            updated_at=template.updated_at,
        )

    async def load(self, db: AsyncSession, template_id: UUID) -> ShiftTemplate:
        """템플릿을 조회합니다.

        Raises:
            NotFoundError: 템플릿을 찾을 수 없을 때 (Unknown template)
        """
        template: ShiftTemplate | None = await template_repository.get_by_id(db, template_id)
        if template is None:
            raise NotFoundError("Shift template not found", template_id=str(template_id))
        return template

    async def create_template(
        self,
        db: AsyncSession,
        data: ShiftTemplateCreate,
        actor: Actor,
    ) -> ShiftTemplateResponse:
        """템플릿을 생성합니다.

        Create a recurring shift template after validating its definition.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 템플릿 생성 데이터 (Creation data)
            actor: 수행자 (Actor)

        Returns:
            ShiftTemplateResponse: 생성된 템플릿 (Created template)

        Raises:
            ValidationError: 정의 오류 (Malformed definition)
            NotFoundError: 시설을 찾을 수 없을 때 (Unknown facility)
        """
        authorization_service.require(actor, "templates:manage")
        start_time: time = parse_time(data.start_time)
        end_time: time = parse_time(data.end_time)
        horizon_days: int = data.horizon_days if data.horizon_days is not None else settings.DEFAULT_HORIZON_DAYS
        validate_definition(data.days_of_week, start_time, end_time, data.min_staff, data.max_staff, horizon_days)
        await directory_service.get_facility(db, data.facility_id)

        template: ShiftTemplate = await template_repository.create(
            db,
            {
                "facility_id": data.facility_id,
                "name": data.name,
                "department": data.department,
                "specialty": data.specialty,
                "start_time": start_time,
                "end_time": end_time,
                "days_of_week": sorted(data.days_of_week),
                "min_staff": data.min_staff,
                "max_staff": data.max_staff,
                "hourly_rate": data.hourly_rate,
                "horizon_days": horizon_days,
                "notes": data.notes,
                "is_active": True,
                "created_by": actor.id,
            },
        )
        return self.to_response(template)

    async def update_template(
        self,
        db: AsyncSession,
        template_id: UUID,
        data: ShiftTemplateUpdate,
        actor: Actor,
    ) -> ShiftTemplateResponse:
        """템플릿을 수정합니다 (이미 생성된 시프트는 변경되지 않음).

        Apply a partial update. The merged definition is validated as a
        whole; instances that already exist keep their copied values.

        Raises:
            ValidationError: 병합된 정의 오류 (Merged definition is malformed)
            NotFoundError: 템플릿을 찾을 수 없을 때 (Unknown template)
        """
        authorization_service.require(actor, "templates:manage")
        template: ShiftTemplate = await self.load(db, template_id)
        changes: dict[str, Any] = data.model_dump(exclude_unset=True)
        if "start_time" in changes:
            changes["start_time"] = parse_time(changes["start_time"])
        if "end_time" in changes:
            changes["end_time"] = parse_time(changes["end_time"])
        if changes.get("days_of_week") is not None:
            changes["days_of_week"] = list(changes["days_of_week"])

        validate_definition(
            changes["days_of_week"] if changes.get("days_of_week") is not None else list(template.days_of_week or []),
            changes.get("start_time") or template.start_time,
            changes.get("end_time") or template.end_time,
            changes["min_staff"] if changes.get("min_staff") is not None else template.min_staff,
            changes["max_staff"] if changes.get("max_staff") is not None else template.max_staff,
            changes["horizon_days"] if changes.get("horizon_days") is not None else template.horizon_days,
        )
        if changes.get("days_of_week") is not None:
            changes["days_of_week"] = sorted(changes["days_of_week"])
        # None으로 지울 수 없는 필수 필드 — Required columns ignore explicit nulls
        for field in ("name", "department", "specialty", "start_time", "end_time", "days_of_week",
                      "min_staff", "max_staff", "horizon_days", "is_active"):
            if field in changes and changes[field] is None:
                changes.pop(field)

        updated: ShiftTemplate | None = await template_repository.update(db, template.id, changes)
        return self.to_response(updated)

    async def get_template(self, db: AsyncSession, template_id: UUID, actor: Actor) -> ShiftTemplateResponse:
        authorization_service.require(actor, "templates:read")
        return self.to_response(await self.load(db, template_id))

    async def list_templates(
        self,
        db: AsyncSession,
        actor: Actor,
        facility_id: UUID | None = None,
        is_active: bool | None = None,
    ) -> list[ShiftTemplateResponse]:
        """템플릿 목록을 조회합니다 (시설/활성 필터)."""
        authorization_service.require(actor, "templates:read")
        templates: list[ShiftTemplate] = await template_repository.get_filtered(db, facility_id, is_active)
        return [self.to_response(t) for t in templates]

    async def deactivate_template(
        self,
        db: AsyncSession,
        template_id: UUID,
        actor: Actor,
    ) -> ShiftTemplateResponse:
        """템플릿을 비활성화합니다.

        Stop future generation. Already generated instances are untouched.
        """
        authorization_service.require(actor, "templates:manage")
        template: ShiftTemplate = await self.load(db, template_id)
        updated: ShiftTemplate | None = await template_repository.update(db, template.id, {"is_active": False})
        return self.to_response(updated)


# 싱글턴 인스턴스 — Singleton instance
template_service: TemplateService = TemplateService()

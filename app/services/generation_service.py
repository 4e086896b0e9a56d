"""시프트 인스턴스 생성 서비스 — 반복 템플릿을 날짜별 시프트로 확장합니다.

Instance Generator — Expands active templates into dated shifts over a
rolling horizon, idempotently.

For each date in ``[as_of, as_of + horizon_days)`` whose weekday is in the
template's set, slots ``0 .. min_staff - 1`` get the deterministic key
``tpl:{template_id}:{date}:{slot}``. Missing keys are inserted; existing
rows are never touched, so re-running after a crash or a horizon roll
forward only fills the gaps.

Each date is committed on its own. A cancelled run stops before the next
date and keeps what it already wrote. In a batch every template runs in its
own session and a failing template is reported without stopping the rest.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database import async_session
from app.models.template import ShiftTemplate
from app.repositories.shift_repository import shift_repository
from app.repositories.template_repository import template_repository
from app.schemas.template import BatchGenerationResult, GenerationPreview, GenerationResult
from app.services.authorization_service import SYSTEM_ACTOR, Actor, authorization_service
from app.services.directory_service import FacilityInfo, directory_service
from app.services.shift_service import shift_service
from app.services.template_service import template_service, validate_template
from app.utils.event_log import emit_event
from app.utils.exceptions import SchedulingError, ValidationError
from app.utils.shift_time import horizon_dates, resolve_window, template_shift_key, weekday_number


@dataclass(frozen=True)
class TemplatePlan:
    """생성 시점의 템플릿 스냅샷.

    The template values copied into every instance, captured once per run
    so later edits to the template row cannot leak into a run in progress.
    """

    template_id: UUID
    facility_id: UUID
    timezone: str
    name: str
    department: str
    specialty: str
    start_time: time
    end_time: time
    days_of_week: frozenset[int]
    min_staff: int
    max_staff: int
    hourly_rate: Decimal | None
    notes: str | None

    @classmethod
    def from_template(cls, template: ShiftTemplate, facility: FacilityInfo) -> "TemplatePlan":
        return cls(
            template_id=template.id,
            facility_id=template.facility_id,
            timezone=facility.timezone,
            name=template.name,
            department=template.department,
            specialty=template.specialty,
            start_time=template.start_time,
            end_time=template.end_time,
            days_of_week=frozenset(template.days_of_week or []),
            min_staff=template.min_staff,
            max_staff=template.max_staff,
            hourly_rate=template.hourly_rate,
            notes=template.notes,
        )

    def recurs_on(self, shift_date: date) -> bool:
        return weekday_number(shift_date) in self.days_of_week

    def keys_for(self, shift_date: date) -> list[str]:
        """날짜의 슬롯 키 목록 — Slot keys of a date, slot order."""
        return [template_shift_key(self.template_id, shift_date, slot) for slot in range(self.min_staff)]

    def instance_values(self, shift_date: date, slot_index: int) -> dict[str, Any]:
        """인스턴스 컬럼 값을 만듭니다 — Column values of one instance."""
        start_at, end_at = resolve_window(shift_date, self.start_time, self.end_time, self.timezone)
        return {
            "origin": "template",
            "shift_key": template_shift_key(self.template_id, shift_date, slot_index),
            "template_id": self.template_id,
            "slot_index": slot_index,
            "facility_id": self.facility_id,
            "title": self.name,
            "department": self.department,
            "specialty": self.specialty,
            "shift_date": shift_date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "start_at": start_at,
            "end_at": end_at,
            "required_staff": self.min_staff,
            "max_staff": self.max_staff,
            "hourly_rate": self.hourly_rate,
            "description": self.notes,
        }


def _today() -> date:
    return datetime.now(timezone.utc).date()


class GenerationService:
    """시프트 인스턴스 생성 서비스 (Instance generator)."""

    async def _materialize_date(
        self,
        db: AsyncSession,
        plan: TemplatePlan,
        shift_date: date,
        actor: Actor,
    ) -> tuple[int, int]:
        """하루치 슬롯을 생성하고 커밋합니다.

        Insert the missing slot keys of one date and commit.

        Returns:
            tuple[int, int]: (생성 수, 건너뜀 수) (created, skipped)
        """
        keys: list[str] = plan.keys_for(shift_date)
        existing: set[str] = await shift_repository.get_existing_keys(db, keys)
        created: int = 0
        for slot_index, key in enumerate(keys):
            if key in existing:
                continue
            await shift_service.insert_shift(db, plan.instance_values(shift_date, slot_index), actor)
            created += 1
        if created:
            await db.execute(
                update(ShiftTemplate)
                .where(ShiftTemplate.id == plan.template_id)
                .values(generated_shifts_count=ShiftTemplate.generated_shifts_count + created)
            )
        await db.commit()
        return created, len(keys) - created

    async def _materialize_with_retry(
        self,
        db: AsyncSession,
        plan: TemplatePlan,
        shift_date: date,
        actor: Actor,
    ) -> tuple[int, int]:
        """키 충돌 시 한 번 다시 읽고 생성합니다.

        A collision with a concurrent run is retried once against the rows
        that run wrote; a second failure propagates to the caller.
        """
        try:
            return await self._materialize_date(db, plan, shift_date, actor)
        except IntegrityError:
            await db.rollback()
            return await self._materialize_date(db, plan, shift_date, actor)

    async def generate(
        self,
        db: AsyncSession,
        template_id: UUID,
        as_of: date | None = None,
        horizon_days: int | None = None,
        cancel_event: asyncio.Event | None = None,
        actor: Actor = SYSTEM_ACTOR,
    ) -> GenerationResult:
        """템플릿 하나를 기간 동안 확장합니다.

        Expand one template over ``[as_of, as_of + horizon)``. An inactive
        template is a no-op with zero counts. A date whose insert collides
        with a concurrent run is re-read once, and the keys that run wrote
        are counted as skipped.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            template_id: 템플릿 ID (Template UUID)
            as_of: 기준 날짜, 기본 오늘 UTC (First date, defaults to today UTC)
            horizon_days: 기간 재정의 (Horizon override, defaults to the template's)
            cancel_event: 협조적 취소 신호 (Checked before every date)
            actor: 생성 이력에 기록될 수행자 (Actor recorded on creation history)

        Returns:
            GenerationResult: 생성 결과 (created, skipped, dates processed/remaining, error)

        Raises:
            NotFoundError: 템플릿 또는 시설 없음 (Unknown template or facility)
            ValidationError: 템플릿 정의 오류 (Malformed template)
        """
        template: ShiftTemplate = await template_service.load(db, template_id)
        result: GenerationResult = GenerationResult(template_id=str(template_id))
        if not template.is_active:
            return result

        validate_template(template)
        horizon: int = horizon_days if horizon_days is not None else template.horizon_days
        if horizon <= 0:
            raise ValidationError("horizon must be positive", horizon_days=horizon)
        facility: FacilityInfo = await directory_service.get_facility(db, template.facility_id)
        plan: TemplatePlan = TemplatePlan.from_template(template, facility)
        dates: list[date] = horizon_dates(as_of or _today(), horizon)

        for index, shift_date in enumerate(dates):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                result.dates_remaining = len(dates) - index
                break
            if plan.recurs_on(shift_date):
                try:
                    created, skipped = await self._materialize_with_retry(db, plan, shift_date, actor)
                except SQLAlchemyError as exc:
                    await db.rollback()
                    result.error = f"persistence failed on {shift_date.isoformat()}: {type(exc).__name__}"
                    result.error_code = "persistence_error"
                    result.dates_remaining = len(dates) - index
                    break
                result.created += created
                result.skipped += skipped
            result.dates_processed += 1

        emit_event(
            "generation_run",
            template_id=template_id,
            as_of=dates[0] if dates else None,
            horizon_days=horizon,
            created=result.created,
            skipped=result.skipped,
            dates_processed=result.dates_processed,
            dates_remaining=result.dates_remaining,
            cancelled=result.cancelled,
            error=result.error,
        )
        return result

    async def generate_from_template(
        self,
        db: AsyncSession,
        template_id: UUID,
        actor: Actor,
        as_of: date | None = None,
        horizon_days: int | None = None,
    ) -> GenerationResult:
        """권한 확인 후 템플릿 하나를 생성합니다 — GenerateFromTemplate(templateId, horizon)."""
        authorization_service.require(actor, "templates:generate")
        return await self.generate(db, template_id, as_of, horizon_days, actor=actor)

    async def generate_all_active(
        self,
        as_of: date | None = None,
        cancel_event: asyncio.Event | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        actor: Actor = SYSTEM_ACTOR,
    ) -> BatchGenerationResult:
        """모든 활성 템플릿을 병렬로 생성합니다.

        Generate every active template, at most ``GENERATION_CONCURRENCY`` at
        a time, each in its own session. A template that fails validation or
        persistence is reported in its result; the others continue.

        Args:
            as_of: 기준 날짜 (First date of every horizon)
            cancel_event: 협조적 취소 신호 (Cooperative cancellation)
            session_factory: 세션 팩토리 (Session factory, defaults to the app's)
            actor: 수행자 (Actor recorded on creation history)

        Returns:
            BatchGenerationResult: 템플릿별 결과와 합계 (Per-template results and totals)
        """
        authorization_service.require(actor, "templates:generate")
        factory: async_sessionmaker[AsyncSession] = session_factory or async_session
        run_date: date = as_of or _today()
        async with factory() as db:
            template_ids: list[UUID] = list(await template_repository.get_active_ids(db))

        semaphore: asyncio.Semaphore = asyncio.Semaphore(max(1, settings.GENERATION_CONCURRENCY))

        async def _run(template_id: UUID) -> GenerationResult:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return GenerationResult(template_id=str(template_id), cancelled=True)
                async with factory() as db:
                    try:
                        return await self.generate(db, template_id, run_date, cancel_event=cancel_event, actor=actor)
                    except SchedulingError as exc:
                        await db.rollback()
                        emit_event("generation_failed", template_id=template_id, code=exc.code, error=exc.detail)
                        return GenerationResult(template_id=str(template_id), error=exc.detail, error_code=exc.code)
                    except SQLAlchemyError as exc:
                        await db.rollback()
                        error: str = f"persistence failed: {type(exc).__name__}"
                        emit_event("generation_failed", template_id=template_id, code="persistence_error", error=error)
                        return GenerationResult(
                            template_id=str(template_id), error=error, error_code="persistence_error"
                        )

        results: list[GenerationResult] = list(await asyncio.gather(*(_run(t) for t in template_ids)))
        batch: BatchGenerationResult = BatchGenerationResult(
            results=results,
            total_created=sum(r.created for r in results),
            total_skipped=sum(r.skipped for r in results),
            failed=sum(1 for r in results if r.error is not None),
        )
        emit_event(
            "generation_batch",
            as_of=run_date,
            templates=len(results),
            total_created=batch.total_created,
            total_skipped=batch.total_skipped,
            failed=batch.failed,
        )
        return batch

    async def preview(
        self,
        db: AsyncSession,
        template_id: UUID,
        actor: Actor,
        as_of: date | None = None,
        horizon_days: int | None = None,
    ) -> GenerationPreview:
        """생성 미리보기 — 아무것도 쓰지 않습니다.

        Dry run: the horizon dates with at least one missing slot key and
        the number of instances a run would insert. An inactive template
        previews nothing.

        Raises:
            ValidationError: 템플릿 정의 오류 (Malformed template)
        """
        authorization_service.require(actor, "templates:read")
        template: ShiftTemplate = await template_service.load(db, template_id)
        run_date: date = as_of or _today()
        horizon: int = horizon_days if horizon_days is not None else template.horizon_days
        preview: GenerationPreview = GenerationPreview(
            template_id=str(template_id),
            as_of=run_date,
            horizon_days=horizon,
            missing_dates=[],
            missing_instances=0,
        )
        if not template.is_active:
            return preview

        validate_template(template)
        facility: FacilityInfo = await directory_service.get_facility(db, template.facility_id)
        plan: TemplatePlan = TemplatePlan.from_template(template, facility)
        for shift_date in horizon_dates(run_date, horizon):
            if not plan.recurs_on(shift_date):
                continue
            keys: list[str] = plan.keys_for(shift_date)
            missing: int = len(keys) - len(await shift_repository.get_existing_keys(db, keys))
            if missing:
                preview.missing_dates.append(shift_date)
                preview.missing_instances += missing
        return preview


# 싱글턴 인스턴스 — Singleton instance
generation_service: GenerationService = GenerationService()

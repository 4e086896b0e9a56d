"""시프트 서비스 — 임시/블록 시프트 생성 및 조회 비즈니스 로직.

Shift Service — Creation of ad-hoc and block shifts, shared shift
insertion (also used by the instance generator) and the shift read models.
Status changes are not made here; they belong to the lifecycle service.
"""

from collections.abc import Sequence
from datetime import date, time, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shift import Shift, ShiftHistory, ShiftRequest
from app.repositories.assignment_repository import assignment_repository
from app.repositories.history_repository import history_repository
from app.repositories.request_repository import request_repository
from app.repositories.shift_repository import shift_repository
from app.schemas.common import PaginatedResponse
from app.schemas.shift import (
    BlockShiftCreate,
    ShiftCreate,
    ShiftHistoryResponse,
    ShiftRequestResponse,
    ShiftResponse,
)
from app.services.authorization_service import Actor, authorization_service
from app.services.directory_service import FacilityInfo, directory_service
from app.services.staffing_service import staffing_service
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.shift_time import (
    block_shift_key,
    derive_block_id,
    ensure_utc,
    format_time,
    is_overnight,
    parse_time,
    resolve_window,
    shift_hours,
    time_slot,
)

URGENCY_LEVELS: tuple[str, ...] = ("low", "medium", "high", "critical")

# 블록 최대 일수 — Longest block accepted in one request
MAX_BLOCK_DAYS: int = 92


def validate_window(start_time: time, end_time: time, overnight: bool) -> None:
    """시프트 시간 창을 검증합니다.

    Raises:
        ValidationError: 시작과 종료가 같거나, 종료가 시작 이전인데
            overnight가 아닐 때 (Equal times, or end before start without the overnight flag)
    """
    if start_time == end_time:
        raise ValidationError(
            "start and end time are equal",
            start_time=format_time(start_time),
            end_time=format_time(end_time),
        )
    if end_time < start_time and not overnight:
        raise ValidationError(
            "end time is before start time, set overnight to confirm a shift ending the next day",
            start_time=format_time(start_time),
            end_time=format_time(end_time),
        )


def validate_staffing(required_staff: int, max_staff: int) -> None:
    """인원 범위를 검증합니다 — 0 < required <= max."""
    if required_staff <= 0:
        raise ValidationError("required staff must be positive", required_staff=required_staff)
    if max_staff < required_staff:
        raise ValidationError(
            "max staff cannot be below required staff",
            required_staff=required_staff,
            max_staff=max_staff,
        )


def validate_urgency(urgency: str) -> None:
    if urgency not in URGENCY_LEVELS:
        raise ValidationError(f"unknown urgency '{urgency}'", urgency=urgency)


class ShiftService:
    """시프트 생성/조회 서비스.

    Service for creating shifts and building their read models.
    """

    def to_response(self, shift: Shift, worker_ids: list[UUID]) -> ShiftResponse:
        """시프트 모델을 응답 스키마로 변환합니다.

        Convert a Shift model to a ShiftResponse including the derived
        duration, time slot and staffing projection.

        Args:
            shift: 시프트 모델 (Shift model instance)
            worker_ids: 활성 배정 직원 ID (Active worker ids)

        Returns:
            ShiftResponse: 시프트 응답 (Shift response)
        """
        return ShiftResponse(
            id=str(shift.id),
            origin=shift.origin,
            shift_key=shift.shift_key,
            template_id=str(shift.template_id) if shift.template_id else None,
            block_id=str(shift.block_id) if shift.block_id else None,
            slot_index=shift.slot_index,
            facility_id=str(shift.facility_id),
            title=shift.title,
            department=shift.department,
            specialty=shift.specialty,
            shift_date=shift.shift_date,
            start_time=format_time(shift.start_time),
            end_time=format_time(shift.end_time),
            start_at=ensure_utc(shift.start_at),
            end_at=ensure_utc(shift.end_at),
            is_overnight=is_overnight(shift.start_time, shift.end_time),
            total_hours=shift_hours(shift.start_time, shift.end_time),
            time_slot=time_slot(shift.start_time),
            required_staff=shift.required_staff,
            max_staff=shift.max_staff,
            hourly_rate=shift.hourly_rate,
            urgency=shift.urgency,
            description=shift.description,
            status=shift.status,
            assigned_worker_ids=[str(w) for w in worker_ids],
            staffing=staffing_service.for_shift(shift),
            version=shift.version,
            created_at=shift.created_at,
            updated_at=shift.updated_at,
        )

    async def build_responses(self, db: AsyncSession, shifts: Sequence[Shift]) -> list[ShiftResponse]:
        """시프트 목록의 응답을 만듭니다 (배정 직원은 한 번에 조회)."""
        worker_ids: dict[UUID, list[UUID]] = await assignment_repository.get_worker_ids(db, [s.id for s in shifts])
        return [self.to_response(s, worker_ids.get(s.id, [])) for s in shifts]

    async def build_response(self, db: AsyncSession, shift: Shift) -> ShiftResponse:
        return (await self.build_responses(db, [shift]))[0]

    async def load(self, db: AsyncSession, shift_id: UUID) -> Shift:
        """시프트를 조회합니다.

        Raises:
            NotFoundError: 시프트를 찾을 수 없을 때 (Unknown shift)
        """
        shift: Shift | None = await shift_repository.get_by_id(db, shift_id)
        if shift is None:
            raise NotFoundError("Shift not found", shift_id=str(shift_id))
        return shift

    async def insert_shift(self, db: AsyncSession, values: dict[str, Any], actor: Actor) -> Shift:
        """시프트를 저장하고 생성 이력을 기록합니다.

        Insert a shift with status ``open`` and append its creation history
        entry (previous status None), so the latest entry always matches
        the stored status.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            values: 시프트 컬럼 값 (Column values)
            actor: 수행자 (Creating actor)

        Returns:
            Shift: 생성된 시프트 (Created shift)
        """
        values = {**values, "status": "open", "assigned_count": 0, "created_by": actor.id}
        shift: Shift = await shift_repository.create(db, values)
        await history_repository.append(
            db,
            shift_id=shift.id,
            previous_status=None,
            new_status="open",
            actor_id=actor.id,
            actor_role=actor.role,
            initiated_by=actor.initiated_by,
            note=f"created ({shift.origin})",
        )
        return shift

    def _window_values(
        self,
        facility: FacilityInfo,
        shift_date: date,
        start_time: time,
        end_time: time,
    ) -> dict[str, Any]:
        start_at, end_at = resolve_window(shift_date, start_time, end_time, facility.timezone)
        return {
            "shift_date": shift_date,
            "start_time": start_time,
            "end_time": end_time,
            "start_at": start_at,
            "end_at": end_at,
        }

    async def create_shift(self, db: AsyncSession, data: ShiftCreate, actor: Actor) -> ShiftResponse:
        """임시(ad-hoc) 시프트를 생성합니다.

        Create an ad-hoc shift (origin ``adhoc``, no deterministic key).

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 시프트 생성 데이터 (Creation data)
            actor: 수행자 (Actor)

        Returns:
            ShiftResponse: 생성된 시프트 (Created shift)

        Raises:
            ValidationError: 입력 값 오류 (Malformed input)
            NotFoundError: 시설을 찾을 수 없을 때 (Unknown facility)
        """
        authorization_service.require(actor, "shifts:create")
        start_time: time = parse_time(data.start_time)
        end_time: time = parse_time(data.end_time)
        validate_window(start_time, end_time, data.overnight)
        max_staff: int = data.max_staff if data.max_staff is not None else data.required_staff
        validate_staffing(data.required_staff, max_staff)
        validate_urgency(data.urgency)

        facility: FacilityInfo = await directory_service.get_facility(db, data.facility_id)
        shift: Shift = await self.insert_shift(
            db,
            {
                "origin": "adhoc",
                "facility_id": facility.id,
                "title": data.title,
                "department": data.department,
                "specialty": data.specialty,
                "required_staff": data.required_staff,
                "max_staff": max_staff,
                "hourly_rate": data.hourly_rate,
                "urgency": data.urgency,
                "description": data.description,
                **self._window_values(facility, data.shift_date, start_time, end_time),
            },
            actor,
        )
        return self.to_response(shift, [])

    async def create_block_shifts(
        self,
        db: AsyncSession,
        data: BlockShiftCreate,
        actor: Actor,
    ) -> list[ShiftResponse]:
        """블록 시프트를 생성합니다.

        Create one shift per date from ``start_date`` to ``end_date``
        inclusive (origin ``block``), all sharing one block id. The block id
        is the caller's ``block_id`` or is derived from the block definition,
        so resubmitting a block only fills in dates that are still missing
        and returns the whole block.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 블록 생성 데이터 (Block creation data)
            actor: 수행자 (Actor)

        Returns:
            list[ShiftResponse]: 블록의 시프트 목록 (All shifts of the block in date order)
        """
        authorization_service.require(actor, "shifts:create")
        start_time: time = parse_time(data.start_time)
        end_time: time = parse_time(data.end_time)
        validate_window(start_time, end_time, data.overnight)
        validate_staffing(data.quantity, data.quantity)
        validate_urgency(data.urgency)
        if data.end_date < data.start_date:
            raise ValidationError(
                "block end date is before its start date",
                start_date=data.start_date.isoformat(),
                end_date=data.end_date.isoformat(),
            )
        days: int = (data.end_date - data.start_date).days + 1
        if days > MAX_BLOCK_DAYS:
            raise ValidationError(f"a block may span at most {MAX_BLOCK_DAYS} days", days=days)

        facility: FacilityInfo = await directory_service.get_facility(db, data.facility_id)
        block_id: UUID = data.block_id or derive_block_id(
            facility.id,
            data.specialty,
            data.department,
            data.title,
            data.start_date.isoformat(),
            data.end_date.isoformat(),
            format_time(start_time),
            format_time(end_time),
        )
        dates: list[date] = [data.start_date + timedelta(days=i) for i in range(days)]
        keys: list[str] = [block_shift_key(block_id, d) for d in dates]
        existing: dict[str, Shift] = {s.shift_key: s for s in await shift_repository.get_by_keys(db, keys)}

        shifts: list[Shift] = []
        for shift_date, key in zip(dates, keys):
            if key in existing:
                shifts.append(existing[key])
                continue
            shift: Shift = await self.insert_shift(
                db,
                {
                    "origin": "block",
                    "shift_key": key,
                    "block_id": block_id,
                    "facility_id": facility.id,
                    "title": data.title,
                    "department": data.department,
                    "specialty": data.specialty,
                    "required_staff": data.quantity,
                    "max_staff": data.quantity,
                    "hourly_rate": data.hourly_rate,
                    "urgency": data.urgency,
                    "description": data.description,
                    **self._window_values(facility, shift_date, start_time, end_time),
                },
                actor,
            )
            shifts.append(shift)
        return await self.build_responses(db, shifts)

    async def get_shift(self, db: AsyncSession, shift_id: UUID, actor: Actor) -> ShiftResponse:
        """시프트 상세를 조회합니다."""
        authorization_service.require(actor, "shifts:read")
        shift: Shift = await self.load(db, shift_id)
        return await self.build_response(db, shift)

    async def list_shifts(
        self,
        db: AsyncSession,
        actor: Actor,
        facility_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: str | None = None,
        specialty: str | None = None,
        origin: str | None = None,
        template_id: UUID | None = None,
        page: int = 1,
        per_page: int = 50,
    ) -> PaginatedResponse:
        """필터 조건으로 시프트 목록을 조회합니다.

        List shifts by facility, date range, status, specialty, origin or
        template, ordered by start instant.

        Returns:
            PaginatedResponse: 페이지네이션된 시프트 목록 (Paginated shifts)
        """
        authorization_service.require(actor, "shifts:read")
        if date_from is not None and date_to is not None and date_to < date_from:
            raise ValidationError("date_to is before date_from")
        query: Select = shift_repository.build_list_query(
            facility_id=facility_id,
            date_from=date_from,
            date_to=date_to,
            status=status,
            specialty=specialty,
            origin=origin,
            template_id=template_id,
        )
        shifts, total = await shift_repository.get_paginated(db, query, page, per_page)
        return PaginatedResponse(
            items=await self.build_responses(db, shifts),
            total=total,
            page=page,
            per_page=per_page,
        )

    async def get_history(self, db: AsyncSession, shift_id: UUID, actor: Actor) -> list[ShiftHistoryResponse]:
        """시프트 상태 이력을 조회합니다 (오래된 순)."""
        authorization_service.require(actor, "shifts:read")
        await self.load(db, shift_id)
        entries: list[ShiftHistory] = await history_repository.get_by_shift(db, shift_id)
        return [
            ShiftHistoryResponse(
                id=str(e.id),
                shift_id=str(e.shift_id),
                sequence=e.sequence,
                actor_id=str(e.actor_id) if e.actor_id else None,
                actor_role=e.actor_role,
                initiated_by=e.initiated_by,
                previous_status=e.previous_status,
                new_status=e.new_status,
                note=e.note,
                created_at=e.created_at,
            )
            for e in entries
        ]

    def request_to_response(self, request: ShiftRequest) -> ShiftRequestResponse:
        return ShiftRequestResponse(
            id=str(request.id),
            shift_id=str(request.shift_id),
            worker_id=str(request.worker_id),
            status=request.status,
            note=request.note,
            requested_at=request.requested_at,
            processed_by=str(request.processed_by) if request.processed_by else None,
            processed_at=request.processed_at,
        )

    async def list_requests(
        self,
        db: AsyncSession,
        shift_id: UUID,
        actor: Actor,
        status: str | None = None,
    ) -> list[ShiftRequestResponse]:
        """시프트의 근무 신청 목록을 조회합니다."""
        authorization_service.require(actor, "shifts:assign")
        await self.load(db, shift_id)
        requests: list[ShiftRequest] = await request_repository.get_by_shift(db, shift_id, status)
        return [self.request_to_response(r) for r in requests]


# 싱글턴 인스턴스 — Singleton instance
shift_service: ShiftService = ShiftService()

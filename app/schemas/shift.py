"""시프트 관련 Pydantic 요청/응답 스키마 정의.

Shift request/response schemas: ad-hoc and block creation, lifecycle
commands (request, assign, transition, cancel) and read models for shifts,
requests, history and eligible workers.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from app.schemas.staffing import StaffingResponse


# === 시프트 생성 (Shift creation) 스키마 ===

class ShiftCreate(BaseModel):
    """임시(ad-hoc) 시프트 생성 요청 스키마.

    Ad-hoc shift creation request. When ``end_time`` is not after
    ``start_time`` the shift must be flagged ``overnight``.
    """

    facility_id: UUID  # 시설 ID (Facility)
    title: str  # 제목 (Title)
    department: str  # 부서 (Department)
    specialty: str  # 전문 분야 (Specialty)
    shift_date: date  # 근무 날짜 (Calendar date the shift starts on)
    start_time: str  # 시작 시각 "HH:MM" (Local start)
    end_time: str  # 종료 시각 "HH:MM" (Local end)
    overnight: bool = False  # 자정 넘김 확인 (Confirms an end on the following day)
    required_staff: int = 1  # 필요 인원 (Required staff)
    max_staff: int | None = None  # 최대 인원, 없으면 필요 인원 (Defaults to required_staff)
    hourly_rate: Decimal | None = None
    urgency: str = "medium"  # low / medium / high / critical
    description: str | None = None


class BlockShiftCreate(BaseModel):
    """블록 시프트 생성 요청 스키마.

    Multi-day block: one shift per date from ``start_date`` to ``end_date``
    inclusive, sharing one block id. ``quantity`` is the staff needed per day.
    ``block_id`` is optional; when omitted it is derived from the block
    definition, so the same request never creates the block twice.
    """

    block_id: UUID | None = None  # 블록 ID, 선택 (Client-supplied block id)
    facility_id: UUID
    title: str
    department: str
    specialty: str
    start_date: date  # 블록 시작일 (First date, inclusive)
    end_date: date  # 블록 종료일 (Last date, inclusive)
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    overnight: bool = False
    quantity: int = 1  # 일별 필요 인원 (Staff needed each day)
    hourly_rate: Decimal | None = None
    urgency: str = "medium"
    description: str | None = None


# === 라이프사이클 명령 (Lifecycle commands) 스키마 ===

class AssignWorkerRequest(BaseModel):
    """직원 배정/해제 요청 스키마 (Assign or unassign one worker)."""

    worker_id: UUID  # 대상 직원 (Target worker)


class TransitionRequest(BaseModel):
    """상태 전이 요청 스키마.

    ``worker_id`` names the requester to approve on ``requested → assigned``
    (oldest pending request when omitted; with no pending request the
    workers already assigned are confirmed) or the worker to request for
    on ``open → requested``.
    """

    new_status: str  # 목표 상태 (Target status)
    note: str | None = None  # 메모 (Note)
    worker_id: UUID | None = None  # 대상 직원, 선택 (Worker, optional)


class CancelRequest(BaseModel):
    """시프트 취소 요청 스키마 (Cancel a shift)."""

    reason: str  # 취소 사유 (Cancellation reason, stored as the history note)
    facility_initiated: bool = False  # 시설 측 취소 여부 (Facility-initiated → facility_cancelled)


class ShiftRequestCreate(BaseModel):
    """직원 근무 신청 요청 스키마 (Worker request body)."""

    note: str | None = None


# === 응답 (Responses) 스키마 ===

class ShiftResponse(BaseModel):
    """시프트 응답 스키마.

    Shift read model. ``status`` is the authoritative workflow state;
    ``staffing`` is the derived projection from the assignment set.
    """

    id: str  # 시프트 UUID 문자열 (Shift UUID as string)
    origin: str  # template / adhoc / block
    shift_key: str | None = None  # 결정적 키 (Deterministic key, None for ad-hoc)
    template_id: str | None = None
    block_id: str | None = None
    slot_index: int | None = None
    facility_id: str
    title: str
    department: str
    specialty: str
    shift_date: date
    start_time: str  # "HH:MM" 현지 (Local)
    end_time: str  # "HH:MM" 현지 (Local)
    start_at: datetime  # 시작 시점 UTC (Start instant)
    end_at: datetime  # 종료 시점 UTC (End instant)
    is_overnight: bool
    total_hours: float  # 근무 시간 (Duration in hours, overnight-aware)
    time_slot: str  # morning / afternoon / evening / night
    required_staff: int
    max_staff: int
    hourly_rate: Decimal | None = None
    urgency: str
    description: str | None = None
    status: str  # 워크플로 상태 (Workflow status)
    assigned_worker_ids: list[str] = []  # 배정 직원 (Active assignments in order)
    staffing: StaffingResponse
    version: int  # 낙관적 동시성 버전 (Optimistic concurrency version)
    created_at: datetime
    updated_at: datetime


class ShiftHistoryResponse(BaseModel):
    """시프트 상태 이력 응답 스키마 (One audit trail entry)."""

    id: str
    shift_id: str
    sequence: int  # 순번 (1-based position)
    actor_id: str | None = None
    actor_role: str | None = None
    initiated_by: str  # worker / scheduler / facility / system
    previous_status: str | None = None  # 생성 시 None (None on creation)
    new_status: str
    note: str | None = None
    created_at: datetime


class ShiftRequestResponse(BaseModel):
    """근무 신청 응답 스키마 (Worker request)."""

    id: str
    shift_id: str
    worker_id: str
    status: str  # pending / approved / withdrawn
    note: str | None = None
    requested_at: datetime
    processed_by: str | None = None
    processed_at: datetime | None = None


class EligibleWorkerResponse(BaseModel):
    """배정 가능 직원 응답 스키마.

    Eligible candidate; list order is favorite first, then reliability
    score descending, then worker id.
    """

    worker_id: str
    full_name: str
    specialty: str
    reliability_score: float | None = None
    is_favorite: bool = False

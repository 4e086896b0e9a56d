"""시프트 템플릿 및 생성 결과 Pydantic 스키마.

Shift template request/response schemas and instance generation results.
Times are "HH:MM" strings in the facility's local clock; weekdays use
0 = Sunday … 6 = Saturday.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class ShiftTemplateCreate(BaseModel):
    """시프트 템플릿 생성 요청 스키마.

    Shift template creation request. Bounds and weekday set are validated by
    the template service so that malformed input is reported as a
    ``validation_error`` with context.
    """

    facility_id: UUID  # 시설 ID (Owning facility)
    name: str  # 템플릿 이름 (Template name)
    department: str  # 부서 (Department)
    specialty: str  # 전문 분야 (Required specialty)
    start_time: str  # 시작 시각 "HH:MM" (Local start)
    end_time: str  # 종료 시각 "HH:MM", 시작 이전이면 익일 (Local end; before start means overnight)
    days_of_week: list[int]  # 반복 요일 0=일 … 6=토 (Recurrence weekdays)
    min_staff: int = 1  # 최소 인원 (Minimum staff)
    max_staff: int = 1  # 최대 인원 (Maximum staff)
    hourly_rate: Decimal | None = None  # 시급 (Hourly rate)
    horizon_days: int | None = None  # 생성 기간, 없으면 기본값 (Horizon; defaults to DEFAULT_HORIZON_DAYS)
    notes: str | None = None  # 메모 (Notes)


class ShiftTemplateUpdate(BaseModel):
    """시프트 템플릿 수정 요청 스키마 (부분 업데이트).

    Partial update. Already generated instances keep their copied values.
    """

    name: str | None = None
    department: str | None = None
    specialty: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    days_of_week: list[int] | None = None
    min_staff: int | None = None
    max_staff: int | None = None
    hourly_rate: Decimal | None = None
    horizon_days: int | None = None
    notes: str | None = None
    is_active: bool | None = None


class ShiftTemplateResponse(BaseModel):
    """시프트 템플릿 응답 스키마 (Shift template response)."""

    id: str  # 템플릿 UUID 문자열 (Template UUID as string)
    facility_id: str  # 시설 UUID 문자열 (Facility UUID as string)
    name: str
    department: str
    specialty: str
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    is_overnight: bool  # 자정 넘김 여부 (End on the following day)
    days_of_week: list[int]
    min_staff: int
    max_staff: int
    hourly_rate: Decimal | None = None
    horizon_days: int
    is_active: bool
    notes: str | None = None
    generated_shifts_count: int  # 누적 생성 수 (Running total of generated instances)
    created_at: datetime
    updated_at: datetime


class GenerateRequest(BaseModel):
    """템플릿 인스턴스 생성 요청 스키마.

    Generation request. Both fields default: ``as_of`` to today (UTC) and
    ``horizon_days`` to the template's own horizon.
    """

    as_of: date | None = None  # 기준 날짜 (First date of the horizon)
    horizon_days: int | None = None  # 생성 기간 재정의 (Horizon override)


class GenerationResult(BaseModel):
    """템플릿 하나의 생성 결과 스키마.

    Result of expanding one template. ``error`` is set when the template
    failed validation or persistence; the other templates of a batch are
    unaffected. ``cancelled`` means the run stopped before ``dates_remaining``
    dates were processed; everything in ``created`` is committed.

    Attributes:
        template_id: 템플릿 ID (Template id)
        created: 새로 생성된 시프트 수 (Instances inserted)
        skipped: 이미 존재해 건너뛴 수 (Keys that already existed)
        dates_processed: 처리한 날짜 수 (Horizon dates processed)
        dates_remaining: 남은 날짜 수 (Horizon dates left unprocessed)
        cancelled: 취소 여부 (Stopped by cooperative cancellation)
        error: 오류 설명 (Error sentence, None on success)
        error_code: 오류 코드 (Engine error code, None on success)
    """

    template_id: str
    created: int = 0
    skipped: int = 0
    dates_processed: int = 0
    dates_remaining: int = 0
    cancelled: bool = False
    error: str | None = None
    error_code: str | None = None


class BatchGenerationResult(BaseModel):
    """전체 활성 템플릿 생성 결과 스키마 (Result of a batch over all active templates)."""

    results: list[GenerationResult]  # 템플릿별 결과 (Per-template results)
    total_created: int  # 총 생성 수 (Sum of created)
    total_skipped: int  # 총 건너뜀 수 (Sum of skipped)
    failed: int  # 실패한 템플릿 수 (Templates that reported an error)


class GenerationPreview(BaseModel):
    """생성 미리보기 응답 스키마.

    Dry run: the horizon dates on which at least one slot key is not yet
    materialized, and how many instances a run would insert.
    """

    template_id: str
    as_of: date
    horizon_days: int
    missing_dates: list[date]  # 생성될 날짜 (Dates a run would fill)
    missing_instances: int  # 생성될 시프트 수 (Instances a run would insert)

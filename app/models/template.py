"""시프트 템플릿 SQLAlchemy ORM 모델 정의.

Shift template ORM model definition.
A template is a recurring shift definition (weekdays + local time window +
staffing bounds) that the instance generator expands into dated shifts.

Tables:
    - shift_templates: 반복 시프트 정의 (Recurring shift definitions)
"""

import uuid
from datetime import datetime, time, timezone
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Time, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ShiftTemplate(Base):
    """시프트 템플릿 모델 — 반복 근무 패턴.

    Shift template model — A recurring shift pattern owned by a facility.
    Deactivating a template stops future generation but never retracts
    instances that were already generated.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        facility_id: 시설 FK (Owning facility)
        name: 템플릿 이름 (Template name, copied to instance titles)
        department: 부서 (Department, e.g. "ICU")
        specialty: 전문 분야 (Required specialty, e.g. "RN")
        start_time: 시작 시각, 현지 시간 (Local start clock time)
        end_time: 종료 시각, 현지 시간 (Local end clock time; end <= start means overnight)
        days_of_week: 반복 요일 목록 (Recurrence weekdays, 0=Sunday … 6=Saturday)
        min_staff: 최소 인원 = 시프트별 필요 인원 (Minimum staff, becomes required_staff)
        max_staff: 최대 인원 (Maximum staff)
        hourly_rate: 시급 (Hourly rate, informational)
        horizon_days: 생성 기간(일) (Rolling generation horizon in days)
        is_active: 활성 여부 (Active flag)
        notes: 메모 (Free-text notes, copied to instance descriptions)
        generated_shifts_count: 누적 생성 시프트 수 (Running total of generated instances)
        created_by: 작성자 ID (Creating actor id)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)
    """

    __tablename__ = "shift_templates"

    # 템플릿 고유 식별자 — Template unique identifier (UUID v4)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 시설 FK — Owning facility
    facility_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False)
    # 템플릿 이름 — Template display name
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # 부서 — Department
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    # 전문 분야 — Required specialty
    specialty: Mapped[str] = mapped_column(String(50), nullable=False)
    # 시작/종료 시각 — Local clock window (may cross midnight)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    # 반복 요일 — JSON list of weekday numbers (0=Sunday)
    days_of_week: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    # 인원 범위 — Staffing bounds
    min_staff: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_staff: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # 시급 — Hourly rate (informational, no rate computation here)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    # 생성 기간 — Rolling horizon in days
    horizon_days: Mapped[int] = mapped_column(Integer, nullable=False, default=14)
    # 활성 여부 — Inactive templates generate nothing
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 메모 — Free-text notes
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    # 누적 생성 수 — Incremented by each generation run
    generated_shifts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 작성자 — Creating actor id (auth is external, no FK)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # 수정 일시 — Last modification timestamp (UTC, auto-updated)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_shift_templates_facility_active", "facility_id", "is_active"),
    )

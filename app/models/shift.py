"""시프트 관련 SQLAlchemy ORM 모델 정의.

Shift-related SQLAlchemy ORM model definitions.
A single tagged shift type covers template instances, ad-hoc shifts and
block shifts. Assignments are normalized into their own join entity and
every status transition is recorded in an append-only history table.

Tables:
    - shifts: 시프트 (Dated shifts, origin = template | adhoc | block)
    - shift_assignments: 배정 (Worker ↔ shift assignments with revocation)
    - shift_requests: 근무 신청 (Worker requests awaiting approval)
    - shift_history: 상태 이력 (Append-only status transition audit trail)
"""

import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Time, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Shift(Base):
    """시프트 모델 — 날짜가 확정된 근무 단위.

    Shift model — A concrete, dated shift. Created by the instance generator
    (origin "template"), by a scheduler (origin "adhoc") or as part of a
    multi-day block (origin "block"). Never deleted: cancellation is a status.

    Status Flow:
        open → requested → assigned → in_progress → completed
        open|requested|assigned → cancelled
        assigned → no_show
        any non-terminal → facility_cancelled

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        origin: 생성 출처 (Origin discriminator: template / adhoc / block)
        shift_key: 결정적 고유 키 (Deterministic unique key; null for ad-hoc)
        template_id: 템플릿 FK (Source template, origin "template")
        block_id: 블록 그룹 ID (Shared id of a block, origin "block")
        slot_index: 슬롯 번호 (Slot position within a template date)
        facility_id: 시설 FK (Facility, copied from template)
        title: 제목 (Title)
        department: 부서 (Department, copied)
        specialty: 전문 분야 (Specialty, copied)
        shift_date: 근무 날짜 (Calendar date the shift starts on)
        start_time: 시작 시각, 현지 (Local start clock time)
        end_time: 종료 시각, 현지 (Local end clock time)
        start_at: 시작 시점 UTC (Resolved start instant)
        end_at: 종료 시점 UTC (Resolved end instant; next day for overnight)
        required_staff: 필요 인원 (Required staff, copied at creation)
        max_staff: 최대 인원 (Maximum staff, copied at creation)
        hourly_rate: 시급 (Hourly rate, informational)
        urgency: 긴급도 (low / medium / high / critical)
        description: 설명 (Description)
        status: 워크플로 상태 (Authoritative workflow status)
        assigned_count: 활성 배정 수 (Denormalized count of active assignments)
        version: 낙관적 동시성 버전 (Optimistic concurrency version counter)
        created_by: 작성자 ID (Creating actor id)
        created_at: 생성 일시 UTC (Creation timestamp)
        updated_at: 수정 일시 UTC (Last update timestamp)
    """

    __tablename__ = "shifts"

    # 시프트 고유 식별자 — Shift unique identifier (UUID v4)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 생성 출처 — "template" / "adhoc" / "block"
    origin: Mapped[str] = mapped_column(String(20), nullable=False, default="adhoc")
    # 결정적 키 — Pure function of (template id, date, slot); unique
    shift_key: Mapped[str | None] = mapped_column(String(120), unique=True, nullable=True)
    # 템플릿 FK — Source template (SET NULL keeps posted shifts intact)
    template_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("shift_templates.id", ondelete="SET NULL"), nullable=True)
    # 블록 그룹 ID — Shared by every day of a block
    block_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 슬롯 번호 — Slot index within the template date
    slot_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # 시설 FK — Facility
    facility_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False)
    # 제목/부서/전문 분야 — Copied, not referenced live
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    specialty: Mapped[str] = mapped_column(String(50), nullable=False)
    # 근무 날짜 및 현지 시각 — Calendar date and local clock window
    shift_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    # 확정 시점 — Resolved UTC instants
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # 인원 — Staffing bounds copied at creation
    required_staff: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_staff: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # 시급 — Hourly rate
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    # 긴급도 — Urgency label
    urgency: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    # 설명 — Description
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # 상태 — Authoritative workflow status, never inferred from counts
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="open")
    # 활성 배정 수 — Bumped with every assign/unassign so racing writers collide on version
    assigned_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 버전 — Compare-and-swap counter managed by SQLAlchemy
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    # 작성자 — Creating actor id
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # 수정 일시 — Last modification timestamp (UTC, auto-updated)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_shifts_facility_date", "facility_id", "shift_date"),
        Index("ix_shifts_template_date", "template_id", "shift_date"),
        Index("ix_shifts_status", "status"),
    )

    __mapper_args__ = {"version_id_col": version}


class ShiftAssignment(Base):
    """시프트 배정 모델 — 직원과 시프트의 연결.

    Shift assignment join entity keyed by (shift_id, worker_id).
    Unassigning sets ``revoked_at``; rows are never deleted, so the table
    doubles as the assignment audit trail.

    Constraints:
        uq_shift_assignment_active: 활성 배정은 시프트+직원당 하나
            (At most one active assignment per shift and worker)
    """

    __tablename__ = "shift_assignments"

    # 배정 고유 식별자 — Assignment unique identifier
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 시프트 FK — Target shift
    shift_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False)
    # 직원 FK — Assigned worker
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)
    # 배정자 — Actor who assigned
    assigned_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    # 배정 일시 — Assignment timestamp (UTC)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # 해제자/해제 일시 — Revocation actor and timestamp (null while active)
    revoked_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "uq_shift_assignment_active",
            "shift_id",
            "worker_id",
            unique=True,
            postgresql_where=text("revoked_at IS NULL"),
            sqlite_where=text("revoked_at IS NULL"),
        ),
        Index("ix_shift_assignments_worker", "worker_id"),
    )


class ShiftRequest(Base):
    """근무 신청 모델 — 직원이 시프트를 요청한 기록.

    Shift request model. Status: pending → approved | withdrawn.
    """

    __tablename__ = "shift_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shift_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False)
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)
    # 상태 — "pending" / "approved" / "withdrawn"
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    # 처리자/처리 일시 — Processing actor and timestamp
    processed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_shift_requests_shift_status", "shift_id", "status"),
    )


class ShiftHistory(Base):
    """시프트 상태 이력 모델 — 상태 전이의 감사 추적 기록.

    Shift status history — One append-only row per status transition
    (plus the creation row with ``previous_status`` null). Never updated
    or deleted; the latest row always matches ``shifts.status``.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        shift_id: 시프트 FK (Target shift)
        sequence: 시프트 내 순번 (1-based position within the shift's history)
        actor_id: 수행자 ID (Actor who performed the transition)
        actor_role: 수행자 역할 (Actor role at the time)
        initiated_by: 주체 구분 (Initiating party: worker / scheduler / facility / system)
        previous_status: 이전 상태 (Prior status, null on creation)
        new_status: 새 상태 (New status)
        note: 메모 (Free-text note or cancellation reason)
        created_at: 기록 일시 UTC (Transition timestamp)
    """

    __tablename__ = "shift_history"

    # 이력 고유 식별자 — History entry unique identifier
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 시프트 FK — Target shift
    shift_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False)
    # 순번 — Unique per shift, so two racing transitions cannot both append
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    # 수행자 — Actor id and role
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String(30), nullable=True)
    # 주체 구분 — Which party initiated the change
    initiated_by: Mapped[str] = mapped_column(String(20), nullable=False, default="scheduler")
    # 상태 전이 — Prior and new status
    previous_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    new_status: Mapped[str] = mapped_column(String(30), nullable=False)
    # 메모 — Free-text note
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    # 기록 일시 — Transition timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("shift_id", "sequence", name="uq_shift_history_sequence"),
    )

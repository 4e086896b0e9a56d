"""시설/직원 디렉터리 SQLAlchemy ORM 모델 정의.

Facility and staff directory ORM model definitions.
These tables belong to the surrounding staffing platform; the scheduling
engine only reads them to resolve worker eligibility profiles and facility
timezones. Profile CRUD lives outside this service.

Tables:
    - facilities: 시설 (Facilities with their local timezone)
    - workers: 직원 자격 프로필 (Worker eligibility profiles)
    - worker_facilities: 직원-시설 연결 (Worker ↔ facility association with favorite flag)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Facility(Base):
    """시설 모델 — 시프트가 배치되는 의료 시설.

    Facility model — A healthcare facility where shifts are posted.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        name: 시설 이름 (Facility display name)
        timezone: IANA 시간대 이름 (IANA timezone name, e.g. "America/Chicago")
        is_active: 활성 여부 (Active flag)
        created_at: 생성 일시 UTC (Creation timestamp)
    """

    __tablename__ = "facilities"

    # 시설 고유 식별자 — Facility unique identifier (UUID v4)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 시설 이름 — Facility display name
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # 시간대 — Local clock for resolving shift start/end instants
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    # 활성 여부 — Active flag
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class Worker(Base):
    """직원 모델 — 배정 자격 판단에 필요한 최소 프로필.

    Worker model — The eligibility profile consumed by the availability resolver.
    The row is also the per-worker lock target when assignments are made.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        full_name: 표시 이름 (Display name)
        specialty: 전문 분야 (Specialty, e.g. "RN", "LPN", "CNA")
        is_active: 활성 여부 (Active flag)
        reliability_score: 신뢰도 점수 0~100 (Reliability score, nullable)
    """

    __tablename__ = "workers"

    # 직원 고유 식별자 — Worker unique identifier (UUID v4)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 표시 이름 — Display name
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    # 전문 분야 — Specialty matched against shift specialty
    specialty: Mapped[str] = mapped_column(String(50), nullable=False)
    # 활성 여부 — Inactive workers are never eligible
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 신뢰도 점수 — Used only to order eligible candidates
    reliability_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class WorkerFacility(Base):
    """직원-시설 연결 모델.

    Worker ↔ facility association. A worker may only be placed on shifts of
    facilities listed here. ``is_favorite`` marks facility-favorited staff.
    """

    __tablename__ = "worker_facilities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 직원 FK — Worker (CASCADE)
    worker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("workers.id", ondelete="CASCADE"), nullable=False)
    # 시설 FK — Facility (CASCADE)
    facility_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False)
    # 즐겨찾기 — Facility favorited this worker
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("worker_id", "facility_id", name="uq_worker_facility"),
    )

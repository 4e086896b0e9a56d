"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for Alembic migrations and
``Base.metadata.create_all``.

Modules:
    directory: 시설, 직원, 직원-시설 연결 (Facility, Worker, WorkerFacility — read-only directory)
    template: 시프트 템플릿 (Recurring shift templates)
    shift: 시프트, 배정, 신청, 상태 이력 (Shifts, assignments, requests, status history)
"""

from app.models.directory import Facility, Worker, WorkerFacility
from app.models.template import ShiftTemplate
from app.models.shift import Shift, ShiftAssignment, ShiftRequest, ShiftHistory

__all__ = [
    "Facility", "Worker", "WorkerFacility",
    "ShiftTemplate",
    "Shift", "ShiftAssignment", "ShiftRequest", "ShiftHistory",
]

"""테스트 인프라 — 임시 SQLite DB, 세션, httpx 클라이언트 픽스처.

Test infrastructure — Temporary SQLite DB, session, and httpx client fixtures.
Every test gets its own database file under ``tmp_path``; the schema is
created from the ORM metadata. API requests run in their own sessions, the
way they do in production.
"""

import os

# 앱 임포트 전에 설정 — Settings are read when app.database is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import uuid
from collections.abc import AsyncGenerator
from datetime import date
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.database import Base, get_db, get_session_factory
from app.main import app
from app.models import *  # noqa: F401,F403 — register all models with metadata
from app.models import Facility, Worker, WorkerFacility
from app.schemas.shift import ShiftCreate
from app.services.authorization_service import Actor
from app.services.shift_service import shift_service
from app.utils.jwt import create_access_token


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진. 테스트마다 새 DB 파일에 스키마를 생성합니다."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 — 요청마다 테스트 DB 세션을 엽니다."""
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 디렉터리 데이터
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def directory(db: AsyncSession) -> SimpleNamespace:
    """시설 2곳과 직원들을 생성하고 ID만 반환합니다.

    - facility (UTC): rn_a(80), rn_b(70, favorite), rn_c(점수 없음), cna, inactive_rn
    - other_facility: rn_other
    """
    facility = Facility(name="Riverside", timezone="UTC")
    other_facility = Facility(name="Lakeside", timezone="UTC")
    db.add_all([facility, other_facility])
    await db.flush()

    ids: dict[str, uuid.UUID] = {"facility_id": facility.id, "other_facility_id": other_facility.id}
    workers = [
        ("rn_a", "RN", 80.0, True, facility.id, False),
        ("rn_b", "RN", 70.0, True, facility.id, True),
        ("rn_c", "RN", None, True, facility.id, False),
        ("cna", "CNA", 90.0, True, facility.id, False),
        ("inactive_rn", "RN", 99.0, False, facility.id, False),
        ("rn_other", "RN", 85.0, True, other_facility.id, False),
    ]
    for key, specialty, score, active, facility_id, favorite in workers:
        worker = Worker(full_name=key, specialty=specialty, reliability_score=score, is_active=active)
        db.add(worker)
        await db.flush()
        db.add(WorkerFacility(worker_id=worker.id, facility_id=facility_id, is_favorite=favorite))
        ids[key] = worker.id

    await db.commit()
    return SimpleNamespace(**ids)


@pytest.fixture
def scheduler() -> Actor:
    return Actor(id=uuid.uuid4(), role="scheduler", level=2)


@pytest.fixture
def facility_manager() -> Actor:
    return Actor(id=uuid.uuid4(), role="facility_manager", level=3)


def worker_actor(worker_id: uuid.UUID) -> Actor:
    """직원 수행자를 만듭니다 — Worker actor acting for itself."""
    return Actor(id=worker_id, role="worker", level=4, worker_id=worker_id)


async def make_shift(
    db: AsyncSession,
    actor: Actor,
    facility_id: uuid.UUID,
    shift_date: date,
    start: str,
    end: str,
    specialty: str = "RN",
    required_staff: int = 1,
) -> uuid.UUID:
    """임시 시프트를 생성하고 커밋한 뒤 ID를 반환합니다. 종료가 시작 이전이면 overnight."""
    data = ShiftCreate(
        facility_id=facility_id,
        title=f"{specialty} {start}-{end}",
        department="Med-Surg",
        specialty=specialty,
        shift_date=shift_date,
        start_time=start,
        end_time=end,
        overnight=end <= start,
        required_staff=required_staff,
    )
    created = await shift_service.create_shift(db, data, actor)
    await db.commit()
    return uuid.UUID(created.id)


def make_token(actor: Actor) -> str:
    """테스트용 JWT 액세스 토큰을 생성합니다."""
    payload = {"sub": str(actor.id), "role": actor.role, "level": actor.level}
    if actor.worker_id is not None:
        payload["wid"] = str(actor.worker_id)
    return create_access_token(payload)


@pytest.fixture
def scheduler_token(scheduler) -> str:
    return make_token(scheduler)


@pytest.fixture
def manager_token(facility_manager) -> str:
    return make_token(facility_manager)


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}

"""초기 데이터 시드 스크립트 — 데모 시설, 직원, 반복 템플릿 생성.

Seed script — Creates a demo facility, workers and a recurring template,
and prints a scheduler token for local use.

Usage:
    python -m app.seed

Creates:
    - 1개 시설: "Riverside Care Center" (America/Chicago)
    - 4명 직원: RN 3명, CNA 1명 (4 workers)
    - 1개 템플릿: 평일 RN 야간 근무 19:00-07:00, 2명 (1 overnight weekday template)
"""

import asyncio
from datetime import time

from sqlalchemy import select

from app.database import async_session, engine, Base
from app.models import Facility, ShiftTemplate, Worker, WorkerFacility
from app.utils.jwt import create_access_token


async def seed() -> None:
    """데이터베이스를 데모 데이터로 시드합니다.

    Seed the database with demo data.
    Creates tables if they don't exist, then inserts the demo facility,
    its workers and one template.

    Idempotent: 이미 시드된 경우 건너뜁니다 (Skips if already seeded).
    """
    # 테이블 생성 — DDL 실행 (Create all tables from ORM metadata)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        # 시설이 하나라도 있으면 건너뜀 (Skip when any facility exists)
        result = await db.execute(select(Facility).limit(1))
        if result.scalar_one_or_none():
            print("Already seeded. Skipping.")
            return

        facility: Facility = Facility(name="Riverside Care Center", timezone="America/Chicago")
        db.add(facility)
        await db.flush()  # flush로 facility.id 생성 (Flush to generate facility.id)

        workers_data: list[tuple[str, str, float | None, bool]] = [
            ("Dana Whitfield", "RN", 96.0, True),
            ("Sam Okafor", "RN", 88.5, False),
            ("Jordan Lee", "RN", None, False),
            ("Riley Tran", "CNA", 91.0, False),
        ]
        for full_name, specialty, score, is_favorite in workers_data:
            worker: Worker = Worker(full_name=full_name, specialty=specialty, reliability_score=score)
            db.add(worker)
            await db.flush()
            db.add(WorkerFacility(worker_id=worker.id, facility_id=facility.id, is_favorite=is_favorite))

        template: ShiftTemplate = ShiftTemplate(
            facility_id=facility.id,
            name="Weekday RN Night",
            department="Med-Surg",
            specialty="RN",
            start_time=time(19, 0),
            end_time=time(7, 0),
            days_of_week=[1, 2, 3, 4, 5],
            min_staff=2,
            max_staff=3,
            horizon_days=14,
        )
        db.add(template)
        await db.commit()

        token: str = create_access_token({"sub": str(facility.id), "role": "scheduler", "level": 2})
        print(f"Seeded: facility={facility.id}, template={template.id}")
        print(f"Scheduler token: {token}")


if __name__ == "__main__":
    asyncio.run(seed())

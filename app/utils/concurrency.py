"""낙관적 동시성 명령 실행 유틸리티.

Optimistic concurrency command runner.
Shift rows carry a SQLAlchemy ``version_id_col``; a write against a stale
version raises ``StaleDataError`` at flush time. A duplicate active
assignment or history sequence raises ``IntegrityError``. Both mean another
writer got there first: the session is rolled back and the command re-run
from a fresh read, at most ``CONFLICT_RETRY_LIMIT`` times.

Usage:
    result = await run_command(db, lambda: lifecycle_service.assign_worker(db, shift_id, worker_id, actor))
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.utils.event_log import emit_event
from app.utils.exceptions import ConflictError, SchedulingError

T = TypeVar("T")


async def run_command(
    db: AsyncSession,
    command: Callable[[], Awaitable[T]],
    retries: int | None = None,
) -> T:
    """명령을 실행하고 커밋합니다. 버전 충돌 시 재시도합니다.

    Execute a command and commit. On a version or uniqueness conflict the
    session is rolled back and the command retried; when the retries are
    used up a ``ConflictError`` is raised. Engine errors roll back and
    propagate unchanged.

    Args:
        db: 비동기 DB 세션 (Async database session)
        command: 세션에 변경을 적용하는 코루틴 팩토리 (Coroutine factory applying the change)
        retries: 재시도 횟수, None이면 설정값 (Retry count, defaults to CONFLICT_RETRY_LIMIT)

    Returns:
        T: 명령 결과 (The command's result)

    Raises:
        ConflictError: 재시도 후에도 충돌 (Conflict persisted after the retries)
    """
    limit: int = settings.CONFLICT_RETRY_LIMIT if retries is None else retries
    attempt: int = 0
    while True:
        try:
            result: T = await command()
            await db.commit()
            return result
        except SchedulingError:
            await db.rollback()
            raise
        except (StaleDataError, IntegrityError) as exc:
            await db.rollback()
            attempt += 1
            emit_event("concurrency_conflict", attempt=attempt, error=type(exc).__name__)
            if attempt > limit:
                raise ConflictError(
                    "the shift was changed by another request, reload and try again",
                    reason="version_mismatch",
                    attempts=attempt,
                )

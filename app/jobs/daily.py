"""일일 배치 작업 — 활성 템플릿 생성 후 시작 시각이 지난 시프트 시작 처리.

Daily job — Rolls every active template's horizon forward, then moves
assigned shifts whose start has passed to in_progress.

Usage:
    python -m app.jobs.daily [--as-of YYYY-MM-DD]

SIGINT/SIGTERM set the cancellation event: templates stop before their
next date and everything already committed is kept.
"""

import argparse
import asyncio
import signal
from datetime import date

from app.database import async_session
from app.schemas.template import BatchGenerationResult
from app.services.generation_service import generation_service
from app.services.lifecycle_service import lifecycle_service


async def run(as_of: date | None = None) -> int:
    """일일 작업을 실행합니다.

    Returns:
        int: 종료 코드, 실패한 템플릿이 있으면 1 (Exit code, 1 when any template failed)
    """
    cancel_event: asyncio.Event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel_event.set)
        except NotImplementedError:
            # Windows 이벤트 루프 — Signal handlers are unavailable on this loop
            pass

    batch: BatchGenerationResult = await generation_service.generate_all_active(as_of, cancel_event)
    for result in batch.results:
        line: str = f"template={result.template_id} created={result.created} skipped={result.skipped}"
        if result.cancelled:
            line += f" cancelled remaining={result.dates_remaining}"
        if result.error:
            line += f" error={result.error_code}: {result.error}"
        print(line)
    print(f"Generated: created={batch.total_created}, skipped={batch.total_skipped}, failed={batch.failed}")

    if not cancel_event.is_set():
        async with async_session() as db:
            started: int = await lifecycle_service.start_due_shifts(db)
        print(f"Started: {started} shift(s)")

    return 1 if batch.failed else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate template shifts and start due shifts.")
    parser.add_argument("--as-of", type=date.fromisoformat, default=None, help="first horizon date (YYYY-MM-DD)")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(run(args.as_of)))


if __name__ == "__main__":
    main()

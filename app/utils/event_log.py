"""도메인 이벤트 Axiom 로깅 모듈.

Domain event logging to Axiom.
The HTTP middleware records every API call; this module records what the
engine did inside a call: generation runs and failures, status transitions
and concurrency conflicts. Events go to the same Axiom dataset.

Usage:
    from app.utils.event_log import emit_event
    emit_event("shift_transition", shift_id=shift.id, previous_status="open", new_status="requested")
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from axiom_py import Client as AxiomClient

from app.config import settings

_client: AxiomClient | None = None


def _get_client() -> AxiomClient | None:
    """Axiom 클라이언트를 지연 생성합니다 (미설정 시 None)."""
    global _client
    if _client is None and settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
        _client = AxiomClient(token=settings.AXIOM_API_TOKEN)
    return _client


def _serialize(value: Any) -> Any:
    """JSON 직렬화 가능한 값으로 변환 — Convert ids, dates and decimals to strings."""
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(v) for v in value]
    return value


def emit_event(event_type: str, **fields: Any) -> None:
    """도메인 이벤트를 Axiom에 전송합니다.

    Ingest one domain event. A no-op when Axiom is not configured.

    Args:
        event_type: 이벤트 종류 (Event name, e.g. "generation_run")
        **fields: 이벤트 속성 (Event attributes; None values are dropped)
    """
    client: AxiomClient | None = _get_client()
    if client is None:
        return

    event: dict[str, Any] = {
        "_time": datetime.now(timezone.utc).isoformat(),
        "event": event_type,
    }
    event.update({k: _serialize(v) for k, v in fields.items() if v is not None})

    try:
        client.ingest_events(settings.AXIOM_DATASET, [event])
    except Exception:
        pass  # 로깅 실패가 명령 처리에 영향주지 않도록 — Never break a command on log failure

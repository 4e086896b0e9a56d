"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Sends one structured event per API call to Axiom: endpoint, route template,
method, status code, duration, the scheduling identifiers the call touched
(shift, template, facility, worker, block, target status) as first-class
fields, and for failures the engine error detail and code.
Sensitive fields (password, token, secret) are automatically masked.
"""

import time
import json
import re
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from axiom_py import Client as AxiomClient

from app.config import settings

# 마스킹 대상 필드 패턴 — Fields to mask in request/response bodies
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_key|apikey|access_token|refresh_token|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

# 이벤트 최상위로 올리는 스케줄링 식별자 — Scheduling identifiers promoted to top-level fields
_DOMAIN_KEYS: tuple[str, ...] = (
    "shift_id",
    "template_id",
    "facility_id",
    "worker_id",
    "block_id",
    "new_status",
)


def _mask_dict(data: Any, depth: int = 0) -> Any:
    """민감 필드 자동 마스킹 — Recursively mask sensitive fields in dicts/lists."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(k) else _mask_dict(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_mask_dict(item, depth + 1) for item in data[:20]]
    return data


def _truncate(value: Any, max_len: int = 2000) -> Any:
    """로그 크기 제한 — Truncate large values to prevent oversized logs."""
    if isinstance(value, str) and len(value) > max_len:
        return value[:max_len] + "...(truncated)"
    return value


def _domain_fields(*sources: dict[str, Any] | None) -> dict[str, str]:
    """경로/쿼리/본문에서 스케줄링 식별자를 추출합니다.

    Take each of ``_DOMAIN_KEYS`` from the first source that has it, in
    the order given (path params win over query params and the body).
    """
    fields: dict[str, str] = {}
    for source in sources:
        if not isinstance(source, dict):
            continue
        for key in _DOMAIN_KEYS:
            if key not in fields and source.get(key) is not None:
                fields[key] = str(source[key])
    return fields


async def _read_error(response: Response) -> tuple[Response, str | None, str | None]:
    """에러 응답 body에서 사유와 엔진 오류 코드를 꺼냅니다.

    The streamed body is consumed, so a new response carrying the same
    bytes is returned along with the detail and code.
    """
    resp_body = b""
    async for chunk in response.body_iterator:
        resp_body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

    error_detail: str | None
    error_code: str | None = None
    try:
        error_data = json.loads(resp_body)
        error_detail = error_data.get("detail", str(error_data))
        # 엔진 오류 코드 — Engine error code (conflict, capacity_exceeded ...)
        error_code = error_data.get("code")
        if isinstance(error_detail, str) and len(error_detail) > 500:
            error_detail = error_detail[:500] + "..."
    except (json.JSONDecodeError, UnicodeDecodeError, AttributeError):
        error_detail = resp_body.decode("utf-8", errors="replace")[:500]

    rewrapped = Response(
        content=resp_body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
    )
    return rewrapped, error_detail, error_code


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 Axiom에 로깅하는 미들웨어.

    Middleware that logs every scheduling API call to Axiom.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._client: AxiomClient | None = None
        self._dataset: str = settings.AXIOM_DATASET

        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 제외 경로 스킵 — Skip excluded paths
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        # Axiom 미설정시 패스스루 — Pass through if Axiom not configured
        if not self._client:
            return await call_next(request)

        start_time = time.time()
        method = request.method
        query_params = dict(request.query_params) if request.query_params else None

        # Request body 읽기 — Read request body (only for methods with body)
        request_body: Any = None
        if method in ("POST", "PUT", "PATCH"):
            try:
                body_bytes = await request.body()
                if body_bytes:
                    request_body = _truncate(_mask_dict(json.loads(body_bytes)))
            except (json.JSONDecodeError, UnicodeDecodeError):
                request_body = "(non-json body)"

        error_detail: str | None = None
        error_code: str | None = None
        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            if status_code >= 400:
                response, error_detail, error_code = await _read_error(response)
        except Exception as exc:
            error_detail = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            # 라우팅 이후에 채워지는 경로 파라미터 — Path params are set once the route matched
            path_params: dict[str, Any] = dict(request.scope.get("path_params") or {})
            route_path: str | None = getattr(request.scope.get("route"), "path", None)

            log_event: dict[str, Any] = {
                "method": method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            }
            if route_path:
                log_event["route"] = route_path
            log_event.update(_domain_fields(path_params, query_params, request_body))

            if query_params:
                log_event["query_params"] = _mask_dict(query_params)
            if request_body is not None:
                log_event["request_body"] = request_body
            if error_detail:
                log_event["error"] = error_detail
            if error_code:
                log_event["error_code"] = error_code

            # Axiom 전송 (비동기 ingest) — Send to Axiom
            try:
                self._client.ingest_events(self._dataset, [log_event])
            except Exception:
                pass  # 로깅 실패가 요청 처리에 영향주지 않도록 — Never break request on log failure

        return response

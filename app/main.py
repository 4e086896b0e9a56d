"""FastAPI 애플리케이션 엔트리포인트 — 미들웨어, 예외 처리기 및 라우터 등록.

FastAPI application entry point — Middleware, error handler and router
registration. Configures CORS, health check, and includes the admin
(scheduler/facility) and app (worker) routers.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.middleware.axiom_logging import AxiomLoggingMiddleware
from app.schemas.common import ErrorResponse
from app.utils.exceptions import SchedulingError

app: FastAPI = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Axiom API 로깅 미들웨어 — Axiom API request/response logging
# CORS보다 먼저 등록하여 모든 요청을 캡처 (Registered before CORS to capture all requests)
app.add_middleware(AxiomLoggingMiddleware)

# CORS 미들웨어 — Cross-Origin Resource Sharing middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """엔진 오류를 구조화된 JSON으로 반환합니다.

    Render an engine error as ``{"detail", "code", "context"}`` so callers
    can tell a retryable conflict from a terminal rejection.
    """
    body: ErrorResponse = ErrorResponse(detail=exc.detail, code=exc.code, context=exc.context)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body))


@app.get("/health")
async def health_check() -> dict[str, str]:
    """서버 상태 확인 엔드포인트.

    Health check endpoint for load balancers and monitoring.
    """
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# 라우터 등록 — Router registration
# ---------------------------------------------------------------------------
# admin_router: 템플릿, 시프트 라이프사이클, 충원 현황 (Templates, lifecycle, staffing)
# app_router: 직원용 내 시프트 및 신청 (Worker shifts and requests)
from app.api.admin import admin_router  # noqa: E402
from app.api.app import app_router  # noqa: E402

app.include_router(admin_router, prefix="/api/v1/admin")
app.include_router(app_router, prefix="/api/v1/app")

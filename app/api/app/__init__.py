"""앱 API 라우터 패키지 — 모든 앱(직원용) 엔드포인트 통합.

App API Router package — Aggregates all worker-facing endpoints into a
single router for inclusion in the FastAPI application.

Included routers:
    - shifts: 내 시프트, 열린 시프트, 신청/철회 (My shifts, open shifts, request/withdraw)
"""

from fastapi import APIRouter

from app.api.app.shifts import router as shifts_router

app_router: APIRouter = APIRouter()

# 내 시프트: /my/shifts, /open-shifts, /shifts/{id}/request|withdraw
app_router.include_router(shifts_router, tags=["My Shifts"])

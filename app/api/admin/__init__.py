"""관리자 API 라우터 패키지 — 모든 관리자(스케줄러/시설) 엔드포인트 통합.

Admin API Router package — Aggregates the scheduler and facility facing
endpoints into a single router for inclusion in the FastAPI application.

Included routers:
    - shift_templates: 반복 템플릿 관리 및 생성 (Recurring templates & generation)
    - shifts: 시프트 생성/조회 및 라이프사이클 명령 (Shifts & lifecycle commands)
    - staffing: 충원 현황 및 직원 약속 (Staffing projections & worker commitments)
"""

from fastapi import APIRouter

from app.api.admin.shift_templates import router as shift_templates_router
from app.api.admin.shifts import router as shifts_router
from app.api.admin.staffing import router as staffing_router

admin_router: APIRouter = APIRouter()

# 템플릿: /shift-templates 하위 (Recurring templates)
admin_router.include_router(shift_templates_router, prefix="/shift-templates", tags=["Shift Templates"])
# 시프트: /shifts 하위 (Shifts & lifecycle)
admin_router.include_router(shifts_router, prefix="/shifts", tags=["Shifts"])
# 충원 현황: /shifts/{id}/staffing, /facilities/{id}/staffing, /workers/{id}/commitments
admin_router.include_router(staffing_router, tags=["Staffing"])

"""공통 Pydantic 요청/응답 스키마 정의.

Common Pydantic response schema definitions shared by every API domain:
pagination and the engine error body.
"""

from typing import Any

from pydantic import BaseModel


class PaginatedResponse(BaseModel):
    """페이지네이션 응답 스키마.

    Paginated response wrapper schema.
    Wraps a list of items with pagination metadata.

    Attributes:
        items: 항목 목록 (List of result items)
        total: 전체 항목 수 (Total count across all pages)
        page: 현재 페이지 번호 (Current page number, 1-based)
        per_page: 페이지당 항목 수 (Items per page)
    """

    items: list[Any]  # 결과 항목 목록 (List of items for the current page)
    total: int  # 전체 항목 수 (Total item count)
    page: int  # 현재 페이지 — 1부터 시작 (Current page, 1-indexed)
    per_page: int  # 페이지당 항목 수 (Items per page)


class ErrorResponse(BaseModel):
    """엔진 오류 응답 스키마.

    Body of every rejected engine command. ``detail`` is one sentence,
    ``code`` is stable, ``context`` carries ids and statuses for retry decisions.
    """

    detail: str  # 한 문장 설명 (One-sentence explanation)
    code: str  # 오류 코드 (Stable error code, e.g. "capacity_exceeded")
    context: dict[str, Any] = {}  # 부가 정보 (shift_id, current_status, attempted_status ...)

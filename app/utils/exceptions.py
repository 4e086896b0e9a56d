"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Provides pre-configured HTTPException subclasses for the scheduling engine's
error taxonomy. Each error carries a stable ``code`` and a ``context`` dict
(shift id, attempted/current status, worker id ...) so callers can decide
whether to retry or escalate, and a one-sentence ``detail`` for the actor.

Usage:
    from app.utils.exceptions import NotFoundError, CapacityError
    raise NotFoundError("Shift not found", shift_id=str(shift_id))
    raise CapacityError("cannot assign: shift already has 2 of 2 workers")
"""

from typing import Any

from fastapi import HTTPException, status


class SchedulingError(HTTPException):
    """스케줄링 엔진 예외의 공통 부모 클래스.

    Common parent of all engine errors.
    The exception handler in ``app.main`` renders it as
    ``{"detail": ..., "code": ..., "context": {...}}``.

    Args:
        status_code: HTTP 상태 코드 (HTTP status code)
        detail: 한 문장 설명 (One-sentence explanation)
        context: 재시도 판단용 부가 정보 (Extra context for the caller)
    """

    code: str = "scheduling_error"

    def __init__(self, status_code: int, detail: str, **context: Any) -> None:
        super().__init__(status_code=status_code, detail=detail)
        self.context: dict[str, Any] = {k: v for k, v in context.items() if v is not None}


class ValidationError(SchedulingError):
    """400 Bad Request — 템플릿/시프트 입력 값이 잘못되었을 때 사용.

    Raised for malformed template or shift input (bad weekday set,
    non-positive staff bounds, end before start without the overnight flag)
    and for commands whose preconditions are not met.
    """

    code = "validation_error"

    def __init__(self, detail: str = "Invalid input", **context: Any) -> None:
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, **context)


class NotFoundError(SchedulingError):
    """404 Not Found — 템플릿/시프트/직원/시설을 찾을 수 없을 때 사용."""

    code = "not_found"

    def __init__(self, detail: str = "Resource not found", **context: Any) -> None:
        super().__init__(status.HTTP_404_NOT_FOUND, detail, **context)


class ForbiddenError(SchedulingError):
    """403 Forbidden 예외 — 권한 부족 시 사용.

    Raised when the authorization collaborator denies an action.
    """

    code = "forbidden"

    def __init__(self, detail: str = "Insufficient permissions", **context: Any) -> None:
        super().__init__(status.HTTP_403_FORBIDDEN, detail, **context)


class UnauthorizedError(SchedulingError):
    """401 Unauthorized 예외 — 인증 실패 시 사용 (missing, invalid or expired token)."""

    code = "unauthorized"

    def __init__(self, detail: str = "Authentication required", **context: Any) -> None:
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail, **context)


class IneligibleWorkerError(SchedulingError):
    """422 — 직원이 시프트 자격 조건을 충족하지 못할 때 사용.

    Raised on an active-status, specialty, facility or duplicate-assignment
    mismatch. ``reason`` is the machine-readable failing check.
    """

    code = "ineligible_worker"

    def __init__(self, detail: str = "Worker is not eligible for this shift", **context: Any) -> None:
        super().__init__(422, detail, **context)


class ConflictError(SchedulingError):
    """409 Conflict — 시간 중복 또는 낙관적 동시성 버전 불일치.

    Raised when the worker already holds an overlapping shift, or when a
    compare-and-swap on the shift version failed after the internal retry.
    """

    code = "conflict"

    def __init__(self, detail: str = "Conflicting change", **context: Any) -> None:
        super().__init__(status.HTTP_409_CONFLICT, detail, **context)


class CapacityError(SchedulingError):
    """409 Conflict — 배정 시 필요 인원(required_staff)을 초과할 때 사용."""

    code = "capacity_exceeded"

    def __init__(self, detail: str = "Shift is already fully staffed", **context: Any) -> None:
        super().__init__(status.HTTP_409_CONFLICT, detail, **context)


class StateTransitionError(SchedulingError):
    """409 Conflict — 허용되지 않는 상태 전이.

    Raised for a status change that is not in the lifecycle table.
    The shift is left unchanged.
    """

    code = "invalid_transition"

    def __init__(
        self,
        current_status: str,
        attempted_status: str,
        detail: str | None = None,
        **context: Any,
    ) -> None:
        super().__init__(
            status.HTTP_409_CONFLICT,
            detail or f"cannot move shift from '{current_status}' to '{attempted_status}'",
            current_status=current_status,
            attempted_status=attempted_status,
            **context,
        )

"""시프트 상태 전이표.

Shift lifecycle transition table.

    open → requested → assigned → in_progress → completed
    open → assigned (confirming workers placed directly)
    open | requested | assigned → cancelled
    assigned → no_show
    any non-terminal → facility_cancelled

``completed``, ``cancelled``, ``facility_cancelled`` and ``no_show`` are
terminal. ``completed → completed`` is accepted as a no-op.
"""

from app.utils.exceptions import StateTransitionError, ValidationError

STATUSES: tuple[str, ...] = (
    "open",
    "requested",
    "assigned",
    "in_progress",
    "completed",
    "cancelled",
    "facility_cancelled",
    "no_show",
)

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "cancelled", "facility_cancelled", "no_show"})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "open": frozenset({"requested", "assigned", "cancelled", "facility_cancelled"}),
    "requested": frozenset({"assigned", "cancelled", "facility_cancelled"}),
    "assigned": frozenset({"in_progress", "cancelled", "no_show", "facility_cancelled"}),
    "in_progress": frozenset({"completed", "facility_cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
    "facility_cancelled": frozenset(),
    "no_show": frozenset(),
}

# 배정 집합 변경이 허용되는 상태 — Statuses in which the assignment set may change
ASSIGNABLE_STATUSES: frozenset[str] = frozenset({"open", "requested", "assigned"})

# 직원 신청이 허용되는 상태 — Statuses that accept worker requests
REQUESTABLE_STATUSES: frozenset[str] = frozenset({"open", "requested"})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def is_allowed(current: str, target: str) -> bool:
    """전이표에 있는 전이인지 확인합니다."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def is_noop(current: str, target: str) -> bool:
    """완료 상태에 대한 반복 완료 요청 — Repeated completion is a no-op."""
    return current == "completed" and target == "completed"


def check_transition(current: str, target: str, **context: str) -> None:
    """전이 가능 여부를 검사합니다.

    Raises:
        ValidationError: 알 수 없는 상태 (Unknown target status)
        StateTransitionError: 전이표에 없는 전이 (Transition not in the table)
    """
    if target not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"unknown shift status '{target}'", status=target)
    if not is_allowed(current, target):
        raise StateTransitionError(current, target, **context)

"""권한 검사 서비스 — 수행자(Actor)와 동작 권한 판단.

Authorization Service — Actor model and the "may this actor perform this
action" check consulted before every engine mutation.

The engine holds no role logic of its own: services only call
``authorization_service.require(actor, action)``. The default decision
comes from ``RoleLevelAuthorizer``, a level table where a lower number
means more authority. Another ``Authorizer`` can be installed with
``authorization_service.use(...)``.

Level hierarchy:
    0 = system (배치 작업, batch jobs)
    1 = admin
    2 = scheduler
    3 = facility_manager
    4 = worker
"""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from app.utils.exceptions import ForbiddenError

# 동작별 허용 최대 레벨 — Maximum level allowed per action (inclusive)
ACTION_LEVELS: dict[str, int] = {
    "templates:read": 3,
    "templates:manage": 2,
    "templates:generate": 2,
    "shifts:read": 4,
    "shifts:create": 2,
    "shifts:request": 4,
    "shifts:assign": 2,
    "shifts:transition": 3,
    "shifts:cancel": 2,
    "shifts:facility_cancel": 3,
    "staffing:read": 3,
}

# 직원 레벨 — Level at which an actor may only act for itself
WORKER_LEVEL: int = 4


@dataclass(frozen=True)
class Actor:
    """요청 수행자.

    The authenticated party behind a command, decoded from the bearer token.

    Attributes:
        id: 수행자 ID, 시스템이면 None (Actor id, None for the system actor)
        role: 역할 이름 (Role name)
        level: 역할 레벨 (Role level, lower = more authority)
        worker_id: 직원으로서의 ID (Worker id the actor acts as, if any)
    """

    id: UUID | None
    role: str
    level: int
    worker_id: UUID | None = None

    @property
    def initiated_by(self) -> str:
        """이력에 기록될 주체 구분 — Party recorded in the history entry."""
        if self.level <= 0:
            return "system"
        if self.level >= WORKER_LEVEL:
            return "worker"
        if self.role == "facility_manager":
            return "facility"
        return "scheduler"


# 시스템 수행자 — Actor used by the daily job
SYSTEM_ACTOR: Actor = Actor(id=None, role="system", level=0)


class Authorizer(Protocol):
    """권한 판단 협력자 인터페이스 (Authorization collaborator)."""

    def authorize(self, actor: Actor, action: str) -> bool:
        ...


class RoleLevelAuthorizer:
    """역할 레벨 기반 기본 권한 판단기.

    Default authorizer: an action is allowed when the actor's level is at
    or below the action's maximum level. Unknown actions are denied.
    """

    def __init__(self, levels: dict[str, int] | None = None) -> None:
        self.levels: dict[str, int] = dict(ACTION_LEVELS if levels is None else levels)

    def authorize(self, actor: Actor, action: str) -> bool:
        max_level: int | None = self.levels.get(action)
        if max_level is None:
            return False
        return actor.level <= max_level


class AuthorizationService:
    """권한 검사 서비스.

    Wraps the installed ``Authorizer`` and turns a denial into a
    ``ForbiddenError``.
    """

    def __init__(self, authorizer: Authorizer | None = None) -> None:
        self.authorizer: Authorizer = authorizer or RoleLevelAuthorizer()

    def use(self, authorizer: Authorizer) -> None:
        """권한 판단기를 교체합니다 — Install another authorizer."""
        self.authorizer = authorizer

    def require(self, actor: Actor, action: str) -> None:
        """동작 권한을 확인합니다.

        Raises:
            ForbiddenError: 권한 없음 (The authorizer denied the action)
        """
        if not self.authorizer.authorize(actor, action):
            raise ForbiddenError(
                f"role '{actor.role}' may not perform '{action}'",
                action=action,
                actor_role=actor.role,
            )

    def require_self(self, actor: Actor, worker_id: UUID) -> None:
        """직원 레벨 수행자는 본인만 대상으로 할 수 있습니다.

        A worker-level actor may only request or withdraw for its own worker id.

        Raises:
            ForbiddenError: 다른 직원을 대상으로 함 (Worker acting for someone else)
        """
        if actor.level >= WORKER_LEVEL and actor.worker_id != worker_id:
            raise ForbiddenError(
                "workers may only act for themselves",
                worker_id=str(worker_id),
            )

    def worker_id_of(self, actor: Actor) -> UUID:
        """수행자의 직원 ID를 반환합니다.

        Raises:
            ForbiddenError: 직원으로 행동하지 않는 수행자 (Actor has no worker id)
        """
        if actor.worker_id is None:
            raise ForbiddenError("actor does not act as a worker", actor_role=actor.role)
        return actor.worker_id


# 싱글턴 인스턴스 — Singleton instance
authorization_service: AuthorizationService = AuthorizationService()

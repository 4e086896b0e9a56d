"""권한 판단 테스트.

Authorization tests — level table, self-only worker actions and a
replaced authorizer.
"""

import uuid

import pytest

from app.services.authorization_service import (
    SYSTEM_ACTOR,
    Actor,
    RoleLevelAuthorizer,
    authorization_service,
)
from app.utils.exceptions import ForbiddenError


class DenyCancelAuthorizer(RoleLevelAuthorizer):
    """취소만 막는 테스트용 판단기."""

    def authorize(self, actor: Actor, action: str) -> bool:
        if action == "shifts:cancel":
            return False
        return super().authorize(actor, action)


class TestRoleLevels:
    @pytest.mark.parametrize(
        ("level", "action", "allowed"),
        [
            (1, "shifts:cancel", True),
            (2, "shifts:assign", True),
            (3, "shifts:assign", False),
            (3, "shifts:facility_cancel", True),
            (4, "shifts:request", True),
            (4, "shifts:read", True),
            (4, "templates:read", False),
            (2, "payroll:export", False),
        ],
    )
    def test_level_table(self, level, action, allowed):
        actor = Actor(id=uuid.uuid4(), role="any", level=level)
        assert RoleLevelAuthorizer().authorize(actor, action) is allowed

    def test_system_actor(self):
        assert SYSTEM_ACTOR.initiated_by == "system"
        authorization_service.require(SYSTEM_ACTOR, "templates:generate")

    def test_initiated_by(self):
        assert Actor(id=uuid.uuid4(), role="facility_manager", level=3).initiated_by == "facility"
        assert Actor(id=uuid.uuid4(), role="scheduler", level=2).initiated_by == "scheduler"
        assert Actor(id=uuid.uuid4(), role="worker", level=4).initiated_by == "worker"

    def test_require_self(self):
        me = uuid.uuid4()
        worker = Actor(id=me, role="worker", level=4, worker_id=me)
        authorization_service.require_self(worker, me)
        with pytest.raises(ForbiddenError):
            authorization_service.require_self(worker, uuid.uuid4())

        # 관리자는 다른 직원을 대신할 수 있습니다
        scheduler = Actor(id=uuid.uuid4(), role="scheduler", level=2)
        authorization_service.require_self(scheduler, me)


class TestReplacedAuthorizer:
    def test_installed_authorizer_is_consulted(self):
        scheduler = Actor(id=uuid.uuid4(), role="scheduler", level=2)
        original = authorization_service.authorizer
        authorization_service.use(DenyCancelAuthorizer())
        try:
            authorization_service.require(scheduler, "shifts:assign")
            with pytest.raises(ForbiddenError) as exc_info:
                authorization_service.require(scheduler, "shifts:cancel")
            assert exc_info.value.context["action"] == "shifts:cancel"
        finally:
            authorization_service.use(original)

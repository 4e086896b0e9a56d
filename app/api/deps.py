"""FastAPI 의존성 주입 모듈 — 인증 및 수행자 추출.

FastAPI dependency injection module — Authentication.
Turns the bearer token into an ``Actor``. Role decisions are not made here:
every service call consults ``authorization_service`` with the action it is
about to perform.

Authentication Flow:
    1. 클라이언트가 Authorization: Bearer <token> 헤더를 전송
       (Client sends Authorization: Bearer <token> header)
    2. HTTPBearer가 토큰을 추출 (HTTPBearer extracts the token)
    3. decode_token()이 JWT를 검증하고 페이로드를 반환
       (decode_token verifies JWT and returns payload)
    4. 페이로드의 sub/role/level/wid 필드로 Actor를 구성
       (Actor is built from the payload's sub, role, level and wid fields)
"""

from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.services.authorization_service import Actor
from app.utils.exceptions import UnauthorizedError
from app.utils.jwt import decode_token

# HTTP Bearer 토큰 추출기 — 헤더가 없으면 None (None when the header is missing)
security: HTTPBearer = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Actor:
    """JWT 토큰에서 현재 수행자를 추출합니다.

    Decode the JWT from the Authorization header and return the actor.

    Args:
        credentials: HTTP Bearer 토큰 자격 증명 (Bearer token credentials from header)

    Returns:
        Actor: 인증된 수행자 (Authenticated actor)

    Raises:
        UnauthorizedError: 토큰 누락, 유효하지 않거나 만료됨 (Missing, invalid or expired token)
    """
    if credentials is None:
        raise UnauthorizedError("Authentication required")
    try:
        payload: dict = decode_token(credentials.credentials)
        # 토큰 타입 검증 — Only access tokens are accepted
        if payload.get("type") != "access":
            raise UnauthorizedError("Invalid token type")
        actor_id: str | None = payload.get("sub")
        if actor_id is None or payload.get("role") is None:
            raise UnauthorizedError("Invalid token")
        worker_id: str | None = payload.get("wid")
        return Actor(
            id=UUID(actor_id),
            role=str(payload["role"]),
            level=max(1, int(payload.get("level", 4))),  # 0은 배치 작업 전용 (level 0 is reserved for jobs)
            worker_id=UUID(worker_id) if worker_id else None,
        )
    except UnauthorizedError:
        raise
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid or expired token")


# 편의 타입 — Annotated dependency used by every router
CurrentActor = Annotated[Actor, Depends(get_current_actor)]

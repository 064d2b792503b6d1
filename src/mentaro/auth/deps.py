"""
mentaro.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a `Principal` backed by the current user row.
- Enforce role gates via reusable dependency factories.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from mentaro.api.deps import db_session, settings_dep
from mentaro.auth.jwt import JwtConfig, JwtExpiredError, JwtValidationError, decode_and_validate
from mentaro.auth.models import Principal
from mentaro.db.models import UserRole
from mentaro.db.repositories.users import UserRepo
from mentaro.settings import Settings

_bearer = HTTPBearer(auto_error=False)


async def _resolve(token: str, settings: Settings, session: AsyncSession) -> Principal:
    try:
        payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=token)
    except JwtExpiredError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Token expired.") from e
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token.") from e

    try:
        user_id = uuid.UUID(str(payload.get("sub", "")))
    except ValueError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token.") from e

    user = await UserRepo(session).get(user_id)
    if user is None:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token. User not found."
        )
    if not user.is_active:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Account is deactivated.")

    structlog.contextvars.bind_contextvars(user_id=str(user.id), role=str(user.role))
    return Principal(user=user)


async def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED, detail="Access denied. No token provided."
        )
    return await _resolve(creds.credentials, settings, session)


async def optional_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
) -> Principal | None:
    # Public endpoints: a bad or missing token degrades to anonymous access.
    if creds is None or not creds.credentials:
        return None
    try:
        return await _resolve(creds.credentials, settings, session)
    except HTTPException:
        return None


def require_roles(*required: UserRole):
    allowed = frozenset(required)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed:
            names = " or ".join(sorted(str(r) for r in allowed))
            raise HTTPException(
                status_code=HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {names}. Your role: {principal.role}",
            )
        return principal

    return _dep


def require_approved_instructor(principal: Principal = Depends(get_principal)) -> Principal:
    # Admins pass; instructors must have been approved by an admin.
    if principal.is_admin:
        return principal
    if principal.role != UserRole.instructor:
        raise HTTPException(
            status_code=HTTP_403_FORBIDDEN, detail="Access denied. Instructor role required."
        )
    if not principal.user.is_approved:
        raise HTTPException(
            status_code=HTTP_403_FORBIDDEN, detail="Instructor account not approved yet."
        )
    return principal


require_admin = require_roles(UserRole.admin)
require_student = require_roles(UserRole.student)


# --- Module Notes -----------------------------------------------------------
# Unlike a claims-only check, every dependency here hits the users table once per request.

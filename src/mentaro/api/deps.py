"""
mentaro.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Provide shared pagination query parameters.
- Encapsulate app.state access patterns (engine/sessionmaker).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mentaro.settings import Settings, get_settings


def settings_dep(request: Request) -> Settings:
    # `create_app` stores the Settings it was built with; fall back to the environment.
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on app startup in `mentaro.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Handlers commit once; anything uncommitted is rolled back
    # when the session closes.
    async with session_factory() as session:
        yield session


@dataclass(frozen=True, slots=True)
class PageParams:
    page: int
    limit: int


def page_params(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> PageParams:
    return PageParams(page=page, limit=limit)


# --- Module Notes -----------------------------------------------------------
# Settings are resolved through `settings_dep`, so an app built with explicit Settings
# (tests, the admin CLI) never reads the process environment.

"""
mentaro.api.app

FastAPI app factory for the Mentaro course marketplace API.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mentaro import __version__
from mentaro.api.errors import register_exception_handlers
from mentaro.api.routers import admin, auth, courses, discounts, enrollments, health, payments
from mentaro.db.init_db import init_db
from mentaro.db.session import create_engine, create_sessionmaker
from mentaro.observability.logging import configure_logging, get_logger
from mentaro.observability.middleware import RequestContextMiddleware
from mentaro.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json_logs=settings.log_json
    )

    app = FastAPI(
        title="Mentaro Course Marketplace API",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router)
    app.include_router(courses.router)
    app.include_router(enrollments.router)
    app.include_router(payments.router)
    app.include_router(discounts.router)
    app.include_router(discounts.instructor_router)
    app.include_router(admin.router)

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env)
        # Routers obtain sessions via dependencies (see `mentaro.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Prod runs Alembic migrations instead.
            await init_db(engine)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
        log.info("shutdown")

    return app

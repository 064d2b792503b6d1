"""
mentaro.api.errors

Exception -> JSON response mapping.

Responsibilities:
- Render domain errors (`mentaro.errors`) with their HTTP status.
- Render request validation failures as 400 with per-field messages.
- Log and hide anything unexpected behind a generic 500.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from mentaro.errors import MentaroError
from mentaro.observability.logging import get_logger

log = get_logger(__name__)


def _field(loc: tuple) -> str:
    # ("body", "email") -> "email"; ("query", "page") -> "page"
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def _domain_error(_: Request, exc: MentaroError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("domain_error", error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, **exc.extra})


async def _validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field(tuple(e.get("loc", ()))), "message": e.get("msg", "")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"message": "Validation failed", "errors": errors},
    )


async def _http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MentaroError, _domain_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled)


# --- Module Notes -----------------------------------------------------------
# Every error body carries a top-level "message"; clients never see stack traces.

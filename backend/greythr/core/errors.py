"""Application error taxonomy and its translation to HTTP responses.

Services raise these errors and never catch them; the handlers registered by
``register_exception_handlers`` are the single place where they become JSON.
"""
from __future__ import annotations

import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from greythr.core.config import settings
from greythr.core.logging import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation Error"


class InvalidCredentials(AppError):
    status_code = 400
    default_message = "Invalid credentials"


class DuplicateKey(AppError):
    status_code = 400
    default_message = "Duplicate field value entered"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Not authorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Access denied"


def error_body(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "message": message, **extra}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code in (401, 403):
        logger.warning("request_denied", path=request.url.path, status=exc.status_code, detail=exc.message)
    else:
        logger.info("request_failed", path=request.url.path, status=exc.status_code, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.info("duplicate_key", path=request.url.path, detail=str(exc.orig))
    return JSONResponse(status_code=DuplicateKey.status_code, content=error_body(DuplicateKey.default_message))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request_invalid", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_body(ValidationError.default_message, errors=jsonable_encoder(exc.errors())),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "API endpoint not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    extra: dict[str, Any] = {}
    if not settings.is_production:
        extra["stack"] = "".join(traceback.format_exception(exc))
    return JSONResponse(status_code=500, content=error_body(AppError.default_message, **extra))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

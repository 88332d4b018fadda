"""
===============================================================================
TARJETA CRC — app/api/exception_handlers.py (Excepciones -> problem+json)
===============================================================================

Responsabilidades:
  - AppError: usar el status/código que declara la excepción.
  - RequestValidationError: VALIDATION_ERROR con la lista de campos.
  - Cualquier otra excepción: INTERNAL_ERROR genérico (stacktrace solo al log).
  - 401 siempre con el challenge WWW-Authenticate: Bearer.

Colaboradores:
  - crosscutting.error_responses
  - crosscutting.exceptions
===============================================================================
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    app_exception_handler,
    internal_error,
    validation_error,
)
from ..crosscutting.exceptions import AppError, UnauthorizedError
from ..crosscutting.logger import logger

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    try:
        code = ErrorCode(exc.error_code)
    except ValueError:
        code = ErrorCode.INTERNAL_ERROR

    # R: 4xx es flujo de negocio (warning); 5xx es falla (error).
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        exc.message,
        extra={
            "error_code": code.value,
            "error_id": exc.error_id,
            "status_code": exc.status_code,
        },
    )

    http_exc = AppHTTPException(
        status_code=exc.status_code,
        code=code,
        detail=exc.message,
        errors=[{"error_id": exc.error_id, "request_id": _request_id(request)}],
        headers=_BEARER_CHALLENGE if isinstance(exc, UnauthorizedError) else None,
    )
    return await app_exception_handler(request, http_exc)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "msg": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return await app_exception_handler(
        request, validation_error("Request validation failed", fields)
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = _request_id(request)
    logger.error("Excepción no controlada", exc_info=exc)

    try:
        detail = "Internal error." if get_settings().is_production() else str(exc)
    except ValidationError:
        detail = "Internal error."
    return await app_exception_handler(request, internal_error(detail, request_id))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(AppHTTPException, app_exception_handler)
    # R: fallback genérico al final.
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["register_exception_handlers"]

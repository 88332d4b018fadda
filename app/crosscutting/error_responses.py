"""
===============================================================================
TARJETA CRC — crosscutting/error_responses.py (Problem Details RFC 7807)
===============================================================================

Responsabilidades:
  - Catálogo estable de códigos (ErrorCode) que el cliente puede switchear:
    el frontend distingue TOKEN_EXPIRED (pedir reenvío) de UNAUTHORIZED.
  - Payload problem+json (ErrorDetail) con "detail" como mensaje humano.
  - Excepción HTTP con código y headers (WWW-Authenticate en 401).
  - Respuestas OpenAPI reutilizables por los routers.

Colaboradores:
  - api/exception_handlers.py (traduce AppError / validación / no tipadas)
  - crosscutting/middleware.py (request_id en request.state)
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class ErrorCode(str, Enum):
    """Códigos de error del servicio de identidad."""

    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    REGISTRATION_FAILED = "REGISTRATION_FAILED"
    MAIL_DELIVERY_ERROR = "MAIL_DELIVERY_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").capitalize()


class ErrorDetail(BaseModel):
    """Cuerpo problem+json. `errors` lleva campos inválidos o ids de correlación."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    errors: list[dict[str, Any]] | None = None


class AppHTTPException(HTTPException):
    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code
        self.errors = errors


def validation_error(
    detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return AppHTTPException(422, ErrorCode.VALIDATION_ERROR, detail, errors)


def internal_error(
    detail: str = "Internal error.", request_id: str | None = None
) -> AppHTTPException:
    errors = [{"request_id": request_id}] if request_id else None
    return AppHTTPException(500, ErrorCode.INTERNAL_ERROR, detail, errors)


# =============================================================================
# Serialización
# =============================================================================
def build_problem(request: Request, exc: AppHTTPException) -> ErrorDetail:
    errors = list(exc.errors or [])
    request_id = getattr(request.state, "request_id", None)
    # R: el request_id viaja una sola vez aunque el handler ya lo haya puesto.
    if request_id and not any(item.get("request_id") for item in errors):
        errors.append({"request_id": request_id})

    return ErrorDetail(
        type=f"urn:store-rating:error:{exc.code.value.lower()}",
        title=exc.code.title,
        status=exc.status_code,
        detail=str(exc.detail),
        code=exc.code,
        instance=request.url.path,
        errors=errors or None,
    )


async def app_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    problem = build_problem(request, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(mode="json", exclude_none=True),
        headers=exc.headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )


def _documented(description: str) -> dict[str, Any]:
    return {
        "description": description,
        "model": ErrorDetail,
        "content": {
            PROBLEM_JSON_MEDIA_TYPE: {
                "schema": {"$ref": "#/components/schemas/ErrorDetail"}
            }
        },
    }


OPENAPI_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: _documented("Token inválido, expirado o ya usado"),
    401: _documented("Credenciales o token ausentes/inválidos"),
    403: _documented("Cuenta inactiva o rol insuficiente"),
    404: _documented("Recurso inexistente"),
    409: _documented("Email ya registrado"),
    422: _documented("Body inválido"),
}

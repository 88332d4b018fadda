"""
TARJETA CRC — crosscutting/middleware.py

RequestContextMiddleware:
  - Acepta el X-Request-Id del cliente (si es razonable) o genera uno.
  - Carga request_id/method/path en ContextVars para que cada log del
    request los lleve sin pasarlos a mano.
  - Devuelve el X-Request-Id y registra status + duración al terminar.
"""

from __future__ import annotations

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..context import clear_context, set_request_context
from .logger import logger

REQUEST_ID_HEADER = "X-Request-Id"

# Probes de orquestador: no ensucian el access log.
_UNLOGGED_PATHS = frozenset({"/healthz", "/readyz"})


def _resolve_request_id(raw: str | None) -> str:
    candidate = (raw or "").strip()
    if 0 < len(candidate) <= 128 and candidate.isprintable():
        return candidate
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = _resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(
            request_id=request_id, method=request.method, path=request.url.path
        )

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            if request.url.path not in _UNLOGGED_PATHS:
                logger.info(
                    "%s %s -> %s",
                    request.method,
                    request.url.path,
                    status_code,
                    extra={
                        "status_code": status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    },
                )
            clear_context()

"""
===============================================================================
TARJETA CRC — crosscutting/logger.py (Logging estructurado)
===============================================================================

Responsabilidades:
  - Emitir una línea JSON por evento (parseable por el colector de logs).
  - Adjuntar contexto de request (request_id, method, path, user_id).
  - Garantizar que credenciales nunca lleguen al output: passwords, hashes,
    JWT, tokens de verificación, secretos y códigos TOTP.

Colaboradores:
  - app/context.py (ContextVars)
  - crosscutting/config.py (log_level / log_json)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from ..context import get_context_dict
from .config import get_settings

LOGGER_NAME = "store-rating-api"

REDACTED = "[redacted]"

# R: una clave es sensible si CONTIENE alguno de estos fragmentos.
_SENSITIVE_FRAGMENTS: tuple[str, ...] = (
    "password",
    "secret",
    "token",
    "authorization",
    "otp",
)
_SENSITIVE_EXACT: frozenset[str] = frozenset({"code", "cookie"})
# Identificadores y tipos no son secretos (token_id, token_type).
_SAFE_SUFFIXES: tuple[str, ...] = ("_id", "_type", "_kind")

_MAX_STRING = 2_000
_MAX_DEPTH = 4

# Atributos propios de LogRecord: no son "extra".
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "taskName"}


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    if lowered in _SENSITIVE_EXACT:
        return True
    if lowered.endswith(_SAFE_SUFFIXES):
        return False
    return any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)


def redact(value: Any, key: str | None = None, depth: int = 0) -> Any:
    """Copia JSON-segura de `value` con claves sensibles reemplazadas."""
    if key is not None and is_sensitive_key(key):
        return REDACTED
    if depth > _MAX_DEPTH:
        return "[depth limit]"

    if isinstance(value, dict):
        return {str(k): redact(v, str(k), depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [redact(v, key, depth + 1) for v in value]
    if isinstance(value, str):
        return value if len(value) <= _MAX_STRING else value[:_MAX_STRING] + "..."
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return str(value)


class JSONFormatter(logging.Formatter):
    """LogRecord -> una línea JSON con contexto y extras redactados."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
            "pid": os.getpid(),
        }
        entry.update(get_context_dict())

        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                entry[name] = redact(value, name)

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "stacktrace": "".join(traceback.format_exception(exc_type, exc, tb)),
            }

        return json.dumps(entry, ensure_ascii=False, default=str)


def _level_and_format() -> tuple[int, bool]:
    # Settings puede no cargar en tooling (scripts, alembic sin env completo).
    try:
        settings = get_settings()
    except ValidationError:
        return logging.INFO, True
    return logging.getLevelName((settings.log_level or "INFO").upper()), settings.log_json


def setup_logger(name: str = LOGGER_NAME) -> logging.Logger:
    log = logging.getLogger(name)
    level, as_json = _level_and_format()
    log.setLevel(level if isinstance(level, int) else logging.INFO)

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            JSONFormatter()
            if as_json
            else logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        log.addHandler(handler)
    return log


logger = setup_logger()

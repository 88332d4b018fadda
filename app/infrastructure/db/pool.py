"""
CRC CARD — infrastructure/db/pool.py

Pool psycopg único por proceso. Lo abre el lifespan de la API (o el script
de admin) y lo toman los repositorios Postgres y la unidad de trabajo.

  - Cada conexión nace con statement_timeout y application_name vía
    opciones libpq, sin round-trip extra.
  - init doble o uso sin init fallan con errores tipados (503 en la API).
"""

from __future__ import annotations

import threading
from typing import Optional

from psycopg_pool import ConnectionPool

from ...crosscutting.logger import logger
from .errors import (
    DatabaseConnectionError,
    PoolAlreadyInitializedError,
    PoolNotInitializedError,
)

APPLICATION_NAME = "store-rating-auth"

_lock = threading.Lock()
_pool: Optional[ConnectionPool] = None


def _libpq_options() -> str:
    from ...crosscutting.config import get_settings

    timeout_ms = get_settings().db_statement_timeout_ms
    return f"-c statement_timeout={int(timeout_ms)}" if timeout_ms > 0 else ""


def init_pool(database_url: str, min_size: int, max_size: int) -> ConnectionPool:
    global _pool
    with _lock:
        if _pool is not None:
            raise PoolAlreadyInitializedError("Connection pool already initialized")

        connect_kwargs = {"application_name": APPLICATION_NAME}
        if options := _libpq_options():
            connect_kwargs["options"] = options

        _pool = ConnectionPool(
            conninfo=database_url,
            min_size=min_size,
            max_size=max_size,
            kwargs=connect_kwargs,
            open=True,
        )
        logger.info("Pool DB abierto", extra={"min_size": min_size, "max_size": max_size})
        return _pool


def get_pool() -> ConnectionPool:
    pool = _pool
    if pool is None:
        raise PoolNotInitializedError("Connection pool not initialized")
    return pool


def ping() -> bool:
    """True si SELECT 1 responde; False sin pool; DatabaseConnectionError si la DB falla."""
    try:
        pool = get_pool()
    except PoolNotInitializedError:
        return False
    try:
        with pool.connection() as conn:
            conn.execute("SELECT 1")
    except Exception as exc:
        raise DatabaseConnectionError(f"Database ping failed: {exc}") from exc
    return True


def _take_pool() -> Optional[ConnectionPool]:
    global _pool
    with _lock:
        pool, _pool = _pool, None
    return pool


def close_pool() -> None:
    pool = _take_pool()
    if pool is not None:
        pool.close()
        logger.info("Pool DB cerrado")


def reset_pool() -> None:
    """Como close_pool pero tolera errores al cerrar (fixtures de tests)."""
    pool = _take_pool()
    if pool is None:
        return
    try:
        pool.close()
    except Exception as exc:
        logger.warning("Error cerrando pool", extra={"error": str(exc)})

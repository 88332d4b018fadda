"""Acceso a Postgres: pool de conexiones y sus errores."""

from .errors import DatabaseConnectionError, PoolNotInitializedError
from .pool import close_pool, get_pool, init_pool, ping

__all__ = [
    "DatabaseConnectionError",
    "PoolNotInitializedError",
    "close_pool",
    "get_pool",
    "init_pool",
    "ping",
]

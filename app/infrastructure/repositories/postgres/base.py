"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/base.py
============================================================
Class: PostgresRepositoryBase

Responsibilities:
  - Resolver la conexión a usar: la de una UnitOfWork (transacción abierta)
    o una nueva del pool global (autocommit al salir del bloque).
  - Ejecutar SQL parametrizado con manejo consistente de errores:
      - UniqueViolation -> ConflictError (mensaje provisto por el repo)
      - cualquier otra falla del driver -> DatabaseError + logger.exception

Collaborators:
  - psycopg / psycopg_pool
  - infrastructure.db.pool.get_pool
  - crosscutting.exceptions (ConflictError / DatabaseError)

Constraints:
  - SQL siempre parametrizado (nunca interpolar input de usuario).
  - AppError ya tipados se propagan sin envolver.
============================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator

from psycopg import Connection
from psycopg.errors import UniqueViolation
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import AppError, ConflictError, DatabaseError
from ....crosscutting.logger import logger


class PostgresRepositoryBase:
    """Helpers DRY compartidos por los repositorios Postgres."""

    # R: mensaje de Conflict cuando una constraint UNIQUE se viola.
    conflict_message: str = "Resource already exists"

    def __init__(
        self,
        pool: ConnectionPool | None = None,
        connection: Connection | None = None,
    ) -> None:
        self._pool = pool
        self._connection = connection

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool
        from ...db.pool import get_pool

        return get_pool()

    @contextmanager
    def _conn(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
            return
        with self._get_pool().connection() as conn:
            yield conn

    def _run(
        self,
        *,
        query: str,
        params: Iterable[object],
        mode: str,
        log_msg: str,
        log_extra: dict[str, object],
    ):
        try:
            with self._conn() as conn:
                cursor = conn.execute(query, tuple(params))
                if mode == "one":
                    return cursor.fetchone()
                if mode == "all":
                    return cursor.fetchall()
                return cursor.rowcount
        except UniqueViolation as exc:
            logger.warning(log_msg, extra={**log_extra, "error": "unique_violation"})
            raise ConflictError(self.conflict_message, original_error=exc) from exc
        except AppError:
            raise
        except Exception as exc:
            logger.exception(log_msg, extra={**log_extra, "error": str(exc)})
            raise DatabaseError(f"{log_msg}: {exc}", original_error=exc) from exc

    def _fetchone(self, **kwargs) -> tuple | None:
        return self._run(mode="one", **kwargs)

    def _fetchall(self, **kwargs) -> list[tuple]:
        return self._run(mode="all", **kwargs)

    def _execute(self, **kwargs) -> int:
        return self._run(mode="rowcount", **kwargs)

"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/unit_of_work.py
============================================================
Class: PostgresUnitOfWork

Responsibilities:
  - Abrir UNA conexión del pool y UNA transacción (conn.transaction()).
  - Exponer repositorios atados a esa conexión (users / stores / tokens).
  - Commit al salir normalmente; rollback ante cualquier excepción.

Collaborators:
  - psycopg_pool.ConnectionPool
  - PostgresUserRepository / PostgresStoreRepository /
    PostgresVerificationTokenRepository (modo "connection")

Notes:
  - Usada por el registro (user + store + token + mail: todo o nada).
============================================================
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import Optional

from psycopg_pool import ConnectionPool

from ....crosscutting.logger import logger
from .store import PostgresStoreRepository
from .user import PostgresUserRepository
from .verification_token import PostgresVerificationTokenRepository


class PostgresUnitOfWork:
    def __init__(self, pool: ConnectionPool | None = None) -> None:
        self._pool = pool
        self._stack: ExitStack | None = None

    def __enter__(self) -> "PostgresUnitOfWork":
        if self._pool is None:
            from ...db.pool import get_pool

            self._pool = get_pool()

        stack = ExitStack()
        try:
            conn = stack.enter_context(self._pool.connection())
            stack.enter_context(conn.transaction())
        except Exception:
            stack.close()
            raise
        self._stack = stack

        self.users = PostgresUserRepository(connection=conn)
        self.stores = PostgresStoreRepository(connection=conn)
        self.tokens = PostgresVerificationTokenRepository(connection=conn)
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        stack, self._stack = self._stack, None
        if exc_type is not None:
            logger.warning(
                "UnitOfWork: rollback",
                extra={"error_type": exc_type.__name__},
            )
        # R: conn.transaction() hace rollback si recibe la excepción.
        return stack.__exit__(exc_type, exc, tb) if stack else None

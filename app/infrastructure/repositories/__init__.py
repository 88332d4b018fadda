"""
============================================================
TARJETA CRC
============================================================
Class: app.infrastructure.repositories (Package exports)

Responsibilities:
- Exponer implementaciones concretas de repositorios (Postgres e InMemory)
  en un único punto de importación para el composition root.

Collaborators:
- Repositorios Postgres (SQL crudo, psycopg)
- Repositorios InMemory (testing / APP_ENV=test)
============================================================
"""

from .in_memory import (
    InMemoryIdentityStore,
    InMemoryStoreRepository,
    InMemoryUnitOfWork,
    InMemoryUserRepository,
    InMemoryVerificationTokenRepository,
)
from .postgres import (
    PostgresStoreRepository,
    PostgresUnitOfWork,
    PostgresUserRepository,
    PostgresVerificationTokenRepository,
)

__all__ = [
    # Postgres
    "PostgresStoreRepository",
    "PostgresUnitOfWork",
    "PostgresUserRepository",
    "PostgresVerificationTokenRepository",
    # In-memory
    "InMemoryIdentityStore",
    "InMemoryStoreRepository",
    "InMemoryUnitOfWork",
    "InMemoryUserRepository",
    "InMemoryVerificationTokenRepository",
]

"""
PostgreSQL Repository Implementations.

Raw parameterized SQL over psycopg 3 + psycopg_pool.
"""

from .store import PostgresStoreRepository
from .unit_of_work import PostgresUnitOfWork
from .user import PostgresUserRepository
from .verification_token import PostgresVerificationTokenRepository

__all__ = [
    "PostgresStoreRepository",
    "PostgresUnitOfWork",
    "PostgresUserRepository",
    "PostgresVerificationTokenRepository",
]

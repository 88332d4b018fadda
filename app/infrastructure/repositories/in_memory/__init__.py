"""
In-memory repository implementations (tests / APP_ENV=test).
"""

from .identity import (
    InMemoryIdentityStore,
    InMemoryStoreRepository,
    InMemoryUnitOfWork,
    InMemoryUserRepository,
    InMemoryVerificationTokenRepository,
)

__all__ = [
    "InMemoryIdentityStore",
    "InMemoryStoreRepository",
    "InMemoryUnitOfWork",
    "InMemoryUserRepository",
    "InMemoryVerificationTokenRepository",
]

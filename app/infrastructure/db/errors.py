"""
CRC CARD — infrastructure/db/errors.py

Errores tipados del pool de conexiones. Heredan de DatabaseError para que la
capa HTTP los mapee a 503 sin casos especiales.
"""

from ...crosscutting.exceptions import DatabaseError


class DatabasePoolError(DatabaseError):
    """Base de errores del pool."""


class PoolAlreadyInitializedError(DatabasePoolError):
    """init_pool() llamado dos veces en el mismo proceso."""


class PoolNotInitializedError(DatabasePoolError):
    """Uso del pool antes de init_pool()."""


class DatabaseConnectionError(DatabasePoolError):
    """No se pudo adquirir o validar una conexión."""

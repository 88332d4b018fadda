"""
===============================================================================
TARJETA CRC — identity/passwords.py
===============================================================================

Módulo:
    Hashing de passwords (Argon2id)

Responsabilidades:
    - Hashear secretos con salt aleatorio y costo adaptativo (Argon2id).
    - Verificar secretos contra hash en tiempo constante.
    - Nunca lanzar por mismatch o hash corrupto: devuelve False.

Colaboradores:
    - argon2-cffi (PasswordHasher)
    - crosscutting.config.get_settings: time_cost / memory_cost

Notas:
    - Se usa también para el hash del refresh token (JWT largo): Argon2 no
      trunca la entrada, a diferencia de bcrypt (72 bytes).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from pydantic import ValidationError

from ..crosscutting.config import get_settings


@lru_cache(maxsize=1)
def _password_hasher() -> PasswordHasher:
    try:
        s = get_settings()
    except ValidationError:
        # R: tooling sin DATABASE_URL (scripts) usa los defaults de argon2.
        return PasswordHasher()
    return PasswordHasher(
        time_cost=s.password_hash_time_cost,
        memory_cost=s.password_hash_memory_cost,
    )


def hash_password(plaintext: str) -> str:
    """Hashea un secreto usando Argon2id (salt nuevo por llamada)."""
    return _password_hasher().hash(plaintext)


def verify_password(plaintext: str, password_hash: str | None) -> bool:
    """Verifica secreto vs hash almacenado."""
    if not password_hash:
        return False
    try:
        return _password_hasher().verify(password_hash, plaintext)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    """True si el hash fue creado con parámetros distintos a los actuales."""
    try:
        return _password_hasher().check_needs_rehash(password_hash)
    except InvalidHashError:
        return True

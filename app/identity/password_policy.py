"""
Política de passwords para registro y reseteo.

Una sola fuente de verdad: la usan los modelos HTTP (pydantic -> 422) y los
casos de uso (BadRequestError) antes de cualquier persistencia.
"""

from __future__ import annotations

import re

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 100
SPECIAL_CHARACTERS = "!@#$%^&*"

_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"\d"), "one number"),
    (re.compile(f"[{re.escape(SPECIAL_CHARACTERS)}]"), "one special character"),
)


def password_policy_violation(password: str) -> str | None:
    """Retorna un mensaje legible si el password no cumple la política."""
    if not MIN_PASSWORD_LENGTH <= len(password or "") <= MAX_PASSWORD_LENGTH:
        return (
            f"Password must be between {MIN_PASSWORD_LENGTH} and "
            f"{MAX_PASSWORD_LENGTH} characters"
        )
    missing = [label for pattern, label in _RULES if not pattern.search(password)]
    if missing:
        return "Password must contain at least " + ", ".join(missing)
    return None

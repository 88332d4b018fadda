"""
===============================================================================
TARJETA CRC — identity/guards.py
===============================================================================

Módulo:
    Guardas de autorización por request (dependencias FastAPI)

Responsabilidades:
    - Extraer el access token (Authorization: Bearer o cookie).
    - Validar firma/exp/typ, cargar el usuario y chequear estado actual:
        * usuario existente y activo
        * 2FA habilitado => claim is_second_factor_authenticated requerido
        * email verificado (opcional, por ruta)
    - Chequear allow-list de roles (Forbidden si no corresponde).
    - Guardia separada para el refresh token (secreto propio; BadRequest si falta).

Colaboradores:
    - identity.tokens.TokenService (decodificación)
    - container: get_token_service / get_user_repository
    - context.set_user_context (correlación en logs)

Notas:
    - Dependencias sync: FastAPI las corre en el threadpool (repos bloqueantes).
    - Todos los rechazos de autenticación son Unauthorized; solo el rol da Forbidden.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from fastapi import Header, Request
from pydantic import ValidationError

from ..container import get_token_service, get_user_repository
from ..context import set_user_context
from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import (
    BadRequestError,
    ForbiddenError,
    UnauthorizedError,
)
from ..domain.entities import TwoFactorState, User, UserRole

DEFAULT_ACCESS_TOKEN_COOKIE: str = "access_token"


@dataclass(frozen=True, slots=True)
class RefreshCredentials:
    user_id: UUID
    refresh_token: str


# ---------------------------------------------------------------------------
# Extracción de token (header/cookie)
# ---------------------------------------------------------------------------


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extrae token desde `Authorization: Bearer <token>`."""
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def extract_access_token(request: Request, authorization: str | None) -> str | None:
    token = extract_bearer_token(authorization)
    if token:
        return token

    try:
        cookie_name = get_settings().jwt_cookie_name.strip()
    except ValidationError:
        cookie_name = ""
    return request.cookies.get(cookie_name or DEFAULT_ACCESS_TOKEN_COOKIE)


# ---------------------------------------------------------------------------
# Resolución del usuario actual
# ---------------------------------------------------------------------------


def authenticate_access_token(
    token: str, *, require_verified_email: bool = False
) -> User:
    """Token -> User aplicando todas las reglas de la guardia de acceso."""
    claims = get_token_service().decode_access_token(token)

    user = get_user_repository().get_by_id(claims.user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise UnauthorizedError("Account is disabled")

    if (
        user.two_factor_state == TwoFactorState.ENABLED
        and not claims.is_second_factor_authenticated
    ):
        raise UnauthorizedError("Two-factor authentication required")

    if require_verified_email and not user.is_email_verified:
        raise UnauthorizedError("Email not verified")

    return user


# ---------------------------------------------------------------------------
# Dependencias FastAPI
# ---------------------------------------------------------------------------


def require_user(*, require_verified_email: bool = False) -> Callable:
    """Dependency FastAPI: requiere usuario autenticado por access token."""

    def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> User:
        token = extract_access_token(request, authorization)
        if not token:
            raise UnauthorizedError("Missing bearer token")

        user = authenticate_access_token(
            token, require_verified_email=require_verified_email
        )
        request.state.user = user
        set_user_context(str(user.id))
        return user

    return dependency


def require_roles(
    *roles: UserRole | str, require_verified_email: bool = True
) -> Callable:
    """Dependency FastAPI: usuario autenticado con rol dentro del allow-list."""
    allowed = frozenset(UserRole(role) for role in roles)
    if not allowed:
        raise ValueError("require_roles needs at least one role")

    authenticate = require_user(require_verified_email=require_verified_email)

    def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> User:
        user = authenticate(request, authorization)
        if user.role not in allowed:
            raise ForbiddenError("Insufficient role")
        return user

    return dependency


def require_refresh_token() -> Callable:
    """Dependency FastAPI exclusiva de /auth/refresh-token."""

    def dependency(
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> RefreshCredentials:
        if not authorization or not authorization.strip():
            raise BadRequestError("Authorization header is missing")

        token = extract_bearer_token(authorization)
        if not token:
            raise BadRequestError("Refresh token is missing")

        user_id = get_token_service().decode_refresh_token(token)
        set_user_context(str(user_id))
        return RefreshCredentials(user_id=user_id, refresh_token=token)

    return dependency

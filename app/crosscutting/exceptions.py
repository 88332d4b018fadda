"""
TARJETA CRC — crosscutting/exceptions.py (Errores tipados)

Cada AppError declara su status HTTP y un error_code estable; el handler
de la API los traduce a problem+json sin conocer casos de uso concretos.
Los mensajes nunca revelan si un email existe ni contienen secretos.

Los lanzan: identity/*, application/usecases/*, infrastructure/*.
"""

from __future__ import annotations

from uuid import uuid4


class AppError(Exception):
    """Base: message + error_code + status_code + error_id (correlación con logs)."""

    error_code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


# =============================================================================
# Errores de cliente (4xx): se propagan sin recuperación local
# =============================================================================


class BadRequestError(AppError):
    """Input inválido: passwords distintos, header/token faltante, 2FA no habilitado."""

    error_code: str = "BAD_REQUEST"
    status_code: int = 400


class UnauthorizedError(AppError):
    """Credenciales o tokens inválidos/expirados, 2FA requerido y ausente."""

    error_code: str = "UNAUTHORIZED"
    status_code: int = 401


class ForbiddenError(AppError):
    """Rol no permitido o cuenta deshabilitada."""

    error_code: str = "FORBIDDEN"
    status_code: int = 403


class NotFoundError(AppError):
    """Token o usuario inexistente."""

    error_code: str = "NOT_FOUND"
    status_code: int = 404


class ConflictError(AppError):
    """Email duplicado."""

    error_code: str = "CONFLICT"
    status_code: int = 409


class TokenExpiredError(AppError):
    """Token de verificación vencido (distinto de NotFound para UX del cliente)."""

    error_code: str = "TOKEN_EXPIRED"
    status_code: int = 400


# =============================================================================
# Errores de servidor (5xx)
# =============================================================================


class RegistrationFailedError(AppError):
    """Falla no-cliente durante la transacción de registro (ya revertida)."""

    error_code: str = "REGISTRATION_FAILED"
    status_code: int = 500


class DatabaseError(AppError):
    """Errores de DB (conexión, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"
    status_code: int = 503


class MailDeliveryError(AppError):
    """Falla al entregar un email (SMTP)."""

    error_code: str = "MAIL_DELIVERY_ERROR"
    status_code: int = 502

"""
===============================================================================
AUTH USE CASES PACKAGE (Public API / Exports)
===============================================================================

Expone los casos de uso de identidad y sus DTOs de entrada/salida:
  - registro (estándar / store owner) en una unidad de trabajo
  - login + segundo paso 2FA
  - rotación de refresh token y logout
  - perfil, verificación de email, reseteo de password
  - ciclo de vida 2FA y moderación de cuentas (admin)
===============================================================================
"""

from __future__ import annotations

from .admin_users import ListUsersUseCase, SetUserActiveUseCase
from .email_verification import (
    RESEND_VERIFICATION_MESSAGE,
    ResendVerificationUseCase,
    VerifyEmailUseCase,
)
from .login import (
    INVALID_CREDENTIALS,
    LoginChallenge,
    LoginResult,
    LoginSession,
    LoginUseCase,
    VerifyTwoFactorLoginUseCase,
)
from .password_reset import (
    FORGOT_PASSWORD_MESSAGE,
    RESET_PASSWORD_MESSAGE,
    RequestPasswordResetUseCase,
    ResetPasswordUseCase,
)
from .profile import GetProfileUseCase
from .registration import (
    REGISTRATION_MESSAGE,
    Registration,
    RegistrationResult,
    RegisterUseCase,
    StandardRegistration,
    StoreOwnerRegistration,
)
from .session import LogoutUseCase, RefreshTokensUseCase
from .two_factor import (
    DisableTwoFactorUseCase,
    EnableTwoFactorUseCase,
    GenerateTwoFactorSecretUseCase,
    VerifyTwoFactorCodeUseCase,
)

__all__ = [
    # Registration
    "REGISTRATION_MESSAGE",
    "Registration",
    "RegistrationResult",
    "RegisterUseCase",
    "StandardRegistration",
    "StoreOwnerRegistration",
    # Login / session
    "INVALID_CREDENTIALS",
    "LoginChallenge",
    "LoginResult",
    "LoginSession",
    "LoginUseCase",
    "VerifyTwoFactorLoginUseCase",
    "RefreshTokensUseCase",
    "LogoutUseCase",
    # Profile / verification / reset
    "GetProfileUseCase",
    "RESEND_VERIFICATION_MESSAGE",
    "VerifyEmailUseCase",
    "ResendVerificationUseCase",
    "FORGOT_PASSWORD_MESSAGE",
    "RESET_PASSWORD_MESSAGE",
    "RequestPasswordResetUseCase",
    "ResetPasswordUseCase",
    # 2FA
    "GenerateTwoFactorSecretUseCase",
    "EnableTwoFactorUseCase",
    "DisableTwoFactorUseCase",
    "VerifyTwoFactorCodeUseCase",
    # Admin
    "ListUsersUseCase",
    "SetUserActiveUseCase",
]

"""
===============================================================================
USE CASE: Register (standard + store owner)
===============================================================================

Name:
    Register Use Case

Business Goal:
    Dar de alta una cuenta nueva (CUSTOMER / ADMIN, o STORE_OWNER + Store)
    de forma all-or-nothing: usuario, store, token de verificación y mail
    se confirman juntos o no queda nada persistido.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    RegisterUseCase

Responsibilities:
    - Validar exhaustivamente la variante de registro ANTES de persistir.
    - Rechazar emails en uso (Conflict) y passwords distintos (BadRequest).
    - Ejecutar la unidad de trabajo: user (+ store) + token + mail.
    - Traducir fallas inesperadas a RegistrationFailedError (500).
    - Emitir un access token de privilegio limitado (email no verificado).

Collaborators:
    - UnitOfWorkFactory (transacción inyectada)
    - UserRepository (chequeo previo de email)
    - identity.passwords / identity.password_policy
    - identity.verification.VerificationTokenService
    - identity.tokens.TokenService
    - domain.services.MailSender

Error Mapping:
    - BAD_REQUEST: variante inválida / passwords distintos / política
    - CONFLICT: email ya registrado (pre-check o unique violation)
    - REGISTRATION_FAILED: cualquier otra falla dentro de la transacción
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Union
from uuid import uuid4

from ....crosscutting.exceptions import (
    BadRequestError,
    ConflictError,
    RegistrationFailedError,
)
from ....crosscutting.logger import logger
from ....domain.entities import (
    Store,
    StoreStatus,
    User,
    UserRole,
    VerificationTokenType,
)
from ....domain.repositories import UnitOfWorkFactory, UserRepository
from ....domain.services import MailSender
from ....identity.password_policy import password_policy_violation
from ....identity.passwords import hash_password
from ....identity.tokens import TokenService
from ....identity.verification import VerificationTokenService

REGISTRATION_MESSAGE = (
    "Registration successful. Please check your email to verify your account."
)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 60
ADDRESS_MAX_LENGTH = 400
STORE_NAME_MIN_LENGTH = 2
STORE_NAME_MAX_LENGTH = 100
STORE_DESCRIPTION_MAX_LENGTH = 1000

STANDARD_ROLES = frozenset({UserRole.CUSTOMER, UserRole.ADMIN})


# -----------------------------------------------------------------------------
# Variantes de entrada (tagged union)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class StandardRegistration:
    name: str
    email: str
    password: str
    confirm_password: str
    role: UserRole = UserRole.CUSTOMER
    phone: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class StoreOwnerRegistration:
    name: str
    email: str
    password: str
    confirm_password: str
    store_name: str
    store_email: str | None = None
    store_address: str | None = None
    store_description: str | None = None
    phone: str | None = None
    address: str | None = None


Registration = Union[StandardRegistration, StoreOwnerRegistration]


@dataclass(frozen=True)
class RegistrationResult:
    user: User
    access_token: str
    expires_in: int
    message: str = REGISTRATION_MESSAGE
    store: Store | None = None


# -----------------------------------------------------------------------------
# Validación
# -----------------------------------------------------------------------------
def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _check_length(label: str, value: str, lo: int, hi: int) -> None:
    if not lo <= len(value) <= hi:
        raise BadRequestError(f"{label} must be between {lo} and {hi} characters")


def _validate_common(reg: Registration) -> str:
    """Valida campos compartidos; retorna el email normalizado."""
    _check_length("Name", reg.name.strip(), NAME_MIN_LENGTH, NAME_MAX_LENGTH)

    email = reg.email.strip()
    if not email or "@" not in email:
        raise BadRequestError("A valid email is required")

    if reg.password != reg.confirm_password:
        raise BadRequestError("Passwords do not match")
    violation = password_policy_violation(reg.password)
    if violation:
        raise BadRequestError(violation)

    address = _optional(reg.address)
    if address and len(address) > ADDRESS_MAX_LENGTH:
        raise BadRequestError(
            f"Address must be at most {ADDRESS_MAX_LENGTH} characters"
        )
    return email


def _validate_store(reg: StoreOwnerRegistration) -> None:
    _check_length(
        "Store name",
        reg.store_name.strip(),
        STORE_NAME_MIN_LENGTH,
        STORE_NAME_MAX_LENGTH,
    )
    store_address = _optional(reg.store_address)
    if store_address and len(store_address) > ADDRESS_MAX_LENGTH:
        raise BadRequestError(
            f"Store address must be at most {ADDRESS_MAX_LENGTH} characters"
        )
    description = _optional(reg.store_description)
    if description and len(description) > STORE_DESCRIPTION_MAX_LENGTH:
        raise BadRequestError(
            "Store description must be at most "
            f"{STORE_DESCRIPTION_MAX_LENGTH} characters"
        )


# -----------------------------------------------------------------------------
# Use case
# -----------------------------------------------------------------------------
class RegisterUseCase:
    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        users: UserRepository,
        tokens: TokenService,
        mail: MailSender,
        verification_ttls: dict[VerificationTokenType, timedelta] | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._users = users
        self._tokens = tokens
        self._mail = mail
        self._verification_ttls = verification_ttls

    def register(self, registration: StandardRegistration) -> RegistrationResult:
        if not isinstance(registration, StandardRegistration):
            raise BadRequestError("Expected a standard registration")
        return self.execute(registration)

    def register_store_owner(
        self, registration: StoreOwnerRegistration
    ) -> RegistrationResult:
        if not isinstance(registration, StoreOwnerRegistration):
            raise BadRequestError("Expected a store-owner registration")
        return self.execute(registration)

    def execute(self, registration: Registration) -> RegistrationResult:
        # ---------------------------------------------------------------------
        # 1) Validación exhaustiva por variante (sin tocar la base).
        # ---------------------------------------------------------------------
        if isinstance(registration, StoreOwnerRegistration):
            role = UserRole.STORE_OWNER
            email = _validate_common(registration)
            _validate_store(registration)
        elif isinstance(registration, StandardRegistration):
            role = UserRole(registration.role)
            if role not in STANDARD_ROLES:
                raise BadRequestError(
                    "Use the store-owner registration to create a store owner"
                )
            email = _validate_common(registration)
        else:
            raise BadRequestError("Unsupported registration type")

        if self._users.get_by_email(email) is not None:
            raise ConflictError("Email already exists")

        user = User(
            id=uuid4(),
            name=registration.name.strip(),
            email=email,
            password_hash=hash_password(registration.password),
            role=role,
            is_active=True,
            is_email_verified=False,
            phone=_optional(registration.phone),
            address=_optional(registration.address),
        )

        # ---------------------------------------------------------------------
        # 2) Unidad de trabajo: user (+ store) + token + mail.
        # ---------------------------------------------------------------------
        store: Store | None = None
        try:
            with self._uow_factory() as uow:
                created = uow.users.create(user)

                if isinstance(registration, StoreOwnerRegistration):
                    store = uow.stores.create(
                        Store(
                            id=uuid4(),
                            name=registration.store_name.strip(),
                            email=_optional(registration.store_email) or email,
                            owner_id=created.id,
                            address=_optional(registration.store_address),
                            description=_optional(registration.store_description),
                            status=StoreStatus.PENDING,
                        )
                    )

                verification = VerificationTokenService(
                    uow.tokens, uow.users, self._verification_ttls
                )
                raw_token = verification.issue(
                    created, VerificationTokenType.EMAIL_VERIFICATION
                )
                self._mail.send_verification_email(
                    to=created.email, name=created.name, token=raw_token
                )
        except (ConflictError, BadRequestError):
            raise
        except Exception as exc:
            logger.error(
                "Registro falló: rollback aplicado",
                extra={"role": role.value, "error": str(exc)},
            )
            raise RegistrationFailedError(
                "Registration failed", original_error=exc
            ) from exc

        # ---------------------------------------------------------------------
        # 3) Token de privilegio limitado (is_email_verified=False).
        # ---------------------------------------------------------------------
        access_token, expires_in = self._tokens.issue_access_token(created)
        logger.info(
            "Usuario registrado",
            extra={"user_id": str(created.id), "role": role.value},
        )
        return RegistrationResult(
            user=created,
            access_token=access_token,
            expires_in=expires_in,
            store=store,
        )

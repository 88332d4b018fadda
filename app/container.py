"""
===============================================================================
TARJETA CRC — app/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer dependencias (repositorios, servicios, adapters) siguiendo DIP.
  - Exponer factories para FastAPI (Depends) y para scripts.
  - Mantener singletons con caching (lru_cache) para recursos compartidos.
  - Centralizar decisiones runtime basadas en Settings (config).

Colaboradores:
  - app.crosscutting.config.get_settings
  - app.domain.repositories.* / app.domain.services.* (puertos)
  - app.infrastructure.* (implementaciones)
  - app.identity.* (servicios de credenciales)
  - app.application.usecases.auth (casos de uso)

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Este archivo NO importa app.identity.guards (guards depende de acá).
  - En APP_ENV=test todo el estado de identidad vive en UN store en memoria
    compartido por repos y unidad de trabajo.
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.usecases.auth import (
    DisableTwoFactorUseCase,
    EnableTwoFactorUseCase,
    GenerateTwoFactorSecretUseCase,
    GetProfileUseCase,
    ListUsersUseCase,
    LoginUseCase,
    LogoutUseCase,
    RefreshTokensUseCase,
    RegisterUseCase,
    RequestPasswordResetUseCase,
    ResendVerificationUseCase,
    ResetPasswordUseCase,
    SetUserActiveUseCase,
    VerifyEmailUseCase,
    VerifyTwoFactorCodeUseCase,
    VerifyTwoFactorLoginUseCase,
)
from .crosscutting.config import get_settings
from .domain.repositories import (
    StoreRepository,
    UnitOfWorkFactory,
    UserRepository,
    VerificationTokenRepository,
)
from .domain.services import MailSender
from .identity.tokens import TokenService
from .identity.two_factor import TwoFactorService
from .identity.verification import VerificationTokenService
from .infrastructure.cache import ProfileCache
from .infrastructure.mail import FakeMailSender, SmtpMailSender
from .infrastructure.repositories import (
    InMemoryIdentityStore,
    InMemoryStoreRepository,
    InMemoryUnitOfWork,
    InMemoryUserRepository,
    InMemoryVerificationTokenRepository,
    PostgresStoreRepository,
    PostgresUnitOfWork,
    PostgresUserRepository,
    PostgresVerificationTokenRepository,
)

# =============================================================================
# Helpers internos
# =============================================================================


def is_test_env() -> bool:
    """
    Determina si estamos en entorno de test.

    Regla:
      - app_env ∈ {"test", "testing", "ci"} => se favorecen in-memory adapters.
    """
    env = get_settings().app_env.strip().lower()
    return env in {"test", "testing", "ci"}


# =============================================================================
# Repositorios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_identity_store() -> InMemoryIdentityStore:
    """Tablas en memoria compartidas (solo APP_ENV=test)."""
    return InMemoryIdentityStore()


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """Repositorio de usuarios (in-memory en test; Postgres en runtime)."""
    if is_test_env():
        return InMemoryUserRepository(get_identity_store())
    return PostgresUserRepository()


@lru_cache(maxsize=1)
def get_store_repository() -> StoreRepository:
    if is_test_env():
        return InMemoryStoreRepository(get_identity_store())
    return PostgresStoreRepository()


@lru_cache(maxsize=1)
def get_verification_token_repository() -> VerificationTokenRepository:
    if is_test_env():
        return InMemoryVerificationTokenRepository(get_identity_store())
    return PostgresVerificationTokenRepository()


def get_uow_factory() -> UnitOfWorkFactory:
    """Factory de unidades de trabajo (una transacción por registro)."""
    if is_test_env():
        store = get_identity_store()
        return lambda: InMemoryUnitOfWork(store)
    return PostgresUnitOfWork


# =============================================================================
# Servicios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    return TokenService(get_user_repository())


@lru_cache(maxsize=1)
def get_two_factor_service() -> TwoFactorService:
    return TwoFactorService(get_user_repository(), issuer=get_settings().app_name)


@lru_cache(maxsize=1)
def get_verification_service() -> VerificationTokenService:
    return VerificationTokenService(
        get_verification_token_repository(),
        get_user_repository(),
        uow_factory=get_uow_factory(),
    )


@lru_cache(maxsize=1)
def get_mail_sender() -> MailSender:
    """
    Mail transaccional.

    Regla:
      - FAKE_MAIL=1 o entorno de test => outbox en memoria.
      - Caso contrario => SMTP.
    """
    settings = get_settings()
    if settings.fake_mail or is_test_env():
        return FakeMailSender(
            frontend_url=settings.frontend_url, app_name=settings.app_name
        )
    return SmtpMailSender(
        host=settings.mail_host,
        port=settings.mail_port,
        sender=settings.mail_from,
        sender_name=settings.mail_from_name,
        frontend_url=settings.frontend_url,
        app_name=settings.app_name,
        username=settings.mail_user,
        password=settings.mail_password,
        use_tls=settings.mail_use_tls,
    )


@lru_cache(maxsize=1)
def get_profile_cache() -> ProfileCache:
    """Redis si REDIS_URL responde; memoria en caso contrario (y en test)."""
    settings = get_settings()
    return ProfileCache.from_settings(
        redis_url="" if is_test_env() else settings.redis_url,
        ttl_seconds=settings.profile_cache_ttl_seconds,
    )


# =============================================================================
# Casos de uso (factory por request)
# =============================================================================


def get_register_use_case() -> RegisterUseCase:
    return RegisterUseCase(
        uow_factory=get_uow_factory(),
        users=get_user_repository(),
        tokens=get_token_service(),
        mail=get_mail_sender(),
    )


def get_login_use_case() -> LoginUseCase:
    return LoginUseCase(
        users=get_user_repository(),
        tokens=get_token_service(),
        profile_cache=get_profile_cache(),
    )


def get_verify_two_factor_login_use_case() -> VerifyTwoFactorLoginUseCase:
    return VerifyTwoFactorLoginUseCase(
        users=get_user_repository(),
        tokens=get_token_service(),
        two_factor=get_two_factor_service(),
        profile_cache=get_profile_cache(),
    )


def get_refresh_tokens_use_case() -> RefreshTokensUseCase:
    return RefreshTokensUseCase(
        tokens=get_token_service(), profile_cache=get_profile_cache()
    )


def get_logout_use_case() -> LogoutUseCase:
    return LogoutUseCase(tokens=get_token_service(), profile_cache=get_profile_cache())


def get_profile_use_case() -> GetProfileUseCase:
    return GetProfileUseCase(
        users=get_user_repository(), profile_cache=get_profile_cache()
    )


def get_verify_email_use_case() -> VerifyEmailUseCase:
    return VerifyEmailUseCase(
        verification=get_verification_service(), profile_cache=get_profile_cache()
    )


def get_resend_verification_use_case() -> ResendVerificationUseCase:
    return ResendVerificationUseCase(
        users=get_user_repository(),
        verification=get_verification_service(),
        mail=get_mail_sender(),
    )


def get_request_password_reset_use_case() -> RequestPasswordResetUseCase:
    return RequestPasswordResetUseCase(
        users=get_user_repository(),
        verification=get_verification_service(),
        mail=get_mail_sender(),
    )


def get_reset_password_use_case() -> ResetPasswordUseCase:
    return ResetPasswordUseCase(
        verification=get_verification_service(),
        tokens=get_token_service(),
        profile_cache=get_profile_cache(),
    )


def get_generate_two_factor_use_case() -> GenerateTwoFactorSecretUseCase:
    return GenerateTwoFactorSecretUseCase(
        users=get_user_repository(),
        two_factor=get_two_factor_service(),
        profile_cache=get_profile_cache(),
    )


def get_enable_two_factor_use_case() -> EnableTwoFactorUseCase:
    return EnableTwoFactorUseCase(
        two_factor=get_two_factor_service(),
        tokens=get_token_service(),
        profile_cache=get_profile_cache(),
    )


def get_disable_two_factor_use_case() -> DisableTwoFactorUseCase:
    return DisableTwoFactorUseCase(
        two_factor=get_two_factor_service(), profile_cache=get_profile_cache()
    )


def get_verify_two_factor_code_use_case() -> VerifyTwoFactorCodeUseCase:
    return VerifyTwoFactorCodeUseCase(two_factor=get_two_factor_service())


def get_list_users_use_case() -> ListUsersUseCase:
    return ListUsersUseCase(users=get_user_repository(), stores=get_store_repository())


def get_set_user_active_use_case() -> SetUserActiveUseCase:
    return SetUserActiveUseCase(
        users=get_user_repository(),
        stores=get_store_repository(),
        tokens=get_token_service(),
        profile_cache=get_profile_cache(),
    )


# =============================================================================
# Reset (tests)
# =============================================================================


def reset_container() -> None:
    """Limpia todos los singletons (tests que cambian Settings entre casos)."""
    for factory in (
        get_identity_store,
        get_user_repository,
        get_store_repository,
        get_verification_token_repository,
        get_token_service,
        get_two_factor_service,
        get_verification_service,
        get_mail_sender,
        get_profile_cache,
    ):
        factory.cache_clear()

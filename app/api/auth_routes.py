"""
===============================================================================
TARJETA CRC — app/api/auth_routes.py (Autenticación, sesión y moderación)
===============================================================================

Responsabilidades:
  - Exponer registro (estándar / store owner), login + 2FA, refresh, logout.
  - Exponer verificación de email, reenvío y reseteo de password.
  - Exponer perfil y endpoints administrativos (listar / habilitar / deshabilitar).
  - Gestionar cookie httpOnly del access token de forma consistente.

Patrones aplicados:
  - Adapter / Presentation Layer: traduce HTTP ↔ caso de uso.
  - Fail-safe security: si la autenticación falla, se deniega por defecto.

Colaboradores:
  - container: factories de casos de uso
  - identity.guards: require_user / require_roles / require_refresh_token
  - application.views: proyecciones de respuesta (allow-list)
===============================================================================
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    RootModel,
    Tag,
    field_validator,
)
from pydantic.alias_generators import to_camel

from ..application.usecases.auth import (
    GetProfileUseCase,
    ListUsersUseCase,
    LoginChallenge,
    LoginUseCase,
    LogoutUseCase,
    RefreshTokensUseCase,
    RegisterUseCase,
    RequestPasswordResetUseCase,
    ResendVerificationUseCase,
    ResetPasswordUseCase,
    SetUserActiveUseCase,
    StandardRegistration,
    StoreOwnerRegistration,
    VerifyEmailUseCase,
    VerifyTwoFactorLoginUseCase,
)
from ..application.views import to_profile_view
from ..container import (
    get_list_users_use_case,
    get_login_use_case,
    get_logout_use_case,
    get_profile_use_case,
    get_refresh_tokens_use_case,
    get_register_use_case,
    get_request_password_reset_use_case,
    get_resend_verification_use_case,
    get_reset_password_use_case,
    get_set_user_active_use_case,
    get_verify_email_use_case,
    get_verify_two_factor_login_use_case,
)
from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ..crosscutting.exceptions import BadRequestError
from ..domain.entities import User, UserRole
from ..identity.guards import (
    DEFAULT_ACCESS_TOKEN_COOKIE,
    RefreshCredentials,
    require_refresh_token,
    require_roles,
    require_user,
)
from ..identity.password_policy import password_policy_violation
from ..identity.tokens import TokenPair

router = APIRouter(responses=OPENAPI_ERROR_RESPONSES)

LOGOUT_MESSAGE = "Logged out successfully"
EMAIL_VERIFIED_MESSAGE = "Email verified successfully"


# -----------------------------------------------------------------------------
# Modelos HTTP (DTOs)
# -----------------------------------------------------------------------------


class _RequestModel(BaseModel):
    """Acepta snake_case y camelCase (clientes JS)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _PasswordPair(_RequestModel):
    password: str = Field(..., min_length=1, max_length=512)
    confirm_password: str = Field(..., min_length=1, max_length=512)

    @field_validator("password")
    @classmethod
    def politica_password(cls, v: str) -> str:
        violation = password_policy_violation(v)
        if violation:
            raise ValueError(violation)
        return v


class StandardRegisterRequest(_PasswordPair):
    user_type: Literal["standard"] = "standard"
    name: str = Field(..., min_length=2, max_length=60)
    email: str = Field(..., min_length=3, max_length=320)
    role: Literal["customer", "admin"] = "customer"
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=400)

    def to_registration(self) -> StandardRegistration:
        return StandardRegistration(
            name=self.name,
            email=self.email,
            password=self.password,
            confirm_password=self.confirm_password,
            role=UserRole(self.role),
            phone=self.phone,
            address=self.address,
        )


class StoreOwnerRegisterRequest(_PasswordPair):
    user_type: Literal["store_owner"] = "store_owner"
    name: str = Field(..., min_length=2, max_length=60)
    email: str = Field(..., min_length=3, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=400)
    store_name: str = Field(..., min_length=2, max_length=100)
    store_email: Optional[str] = Field(default=None, max_length=320)
    store_address: Optional[str] = Field(default=None, max_length=400)
    store_description: Optional[str] = Field(default=None, max_length=1000)

    def to_registration(self) -> StoreOwnerRegistration:
        return StoreOwnerRegistration(
            name=self.name,
            email=self.email,
            password=self.password,
            confirm_password=self.confirm_password,
            phone=self.phone,
            address=self.address,
            store_name=self.store_name,
            store_email=self.store_email,
            store_address=self.store_address,
            store_description=self.store_description,
        )


def _registration_tag(value: Any) -> str:
    if isinstance(value, dict):
        tag = value.get("user_type", value.get("userType"))
        if tag is None and ("store_name" in value or "storeName" in value):
            return "store_owner"
        return tag or "standard"
    return getattr(value, "user_type", "standard")


class RegisterRequest(
    RootModel[
        Annotated[
            Union[
                Annotated[StandardRegisterRequest, Tag("standard")],
                Annotated[StoreOwnerRegisterRequest, Tag("store_owner")],
            ],
            Discriminator(_registration_tag),
        ]
    ]
):
    """Unión discriminada por `user_type` (default: standard)."""


class LoginRequest(_RequestModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=512)

    @field_validator("email")
    @classmethod
    def normalizar_email(cls, v: str) -> str:
        return v.strip()


class LoginTwoFactorRequest(_RequestModel):
    code: str = Field(..., min_length=6, max_length=10)
    temp_token: str = Field(..., min_length=1)


class EmailRequest(_RequestModel):
    email: str = Field(..., min_length=3, max_length=320)


class ResetPasswordRequest(_RequestModel):
    token: str = Field(..., min_length=1, max_length=256)
    new_password: str = Field(..., min_length=1, max_length=512)
    confirm_new_password: str = Field(..., min_length=1, max_length=512)


class TokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _cookie_name() -> str:
    return get_settings().jwt_cookie_name.strip() or DEFAULT_ACCESS_TOKEN_COOKIE


def _set_auth_cookie(response: Response, token: str, expires_in: int) -> None:
    """Setea cookie httpOnly de acceso."""
    response.set_cookie(
        key=_cookie_name(),
        value=token,
        httponly=True,
        secure=get_settings().jwt_cookie_secure,
        samesite="lax",
        max_age=expires_in,
        path="/",
    )


def _clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=_cookie_name(),
        path="/",
        samesite="lax",
        secure=get_settings().jwt_cookie_secure,
    )


def _pair_payload(pair: TokenPair) -> dict[str, Any]:
    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
    ).model_dump()


# -----------------------------------------------------------------------------
# Registro
# -----------------------------------------------------------------------------


def _register(
    request: StandardRegisterRequest | StoreOwnerRegisterRequest,
    response: Response,
    use_case: RegisterUseCase,
) -> dict[str, Any]:
    result = use_case.execute(request.to_registration())
    _set_auth_cookie(response, result.access_token, result.expires_in)

    payload: dict[str, Any] = {
        "message": result.message,
        "access_token": result.access_token,
        "token_type": "bearer",
        "expires_in": result.expires_in,
        "user": to_profile_view(result.user),
    }
    if result.store is not None:
        payload["store"] = {
            "id": str(result.store.id),
            "name": result.store.name,
            "status": result.store.status.value,
        }
    return payload


@router.post("/auth/register", status_code=201, tags=["auth"])
def register(
    req: RegisterRequest,
    response: Response,
    use_case: RegisterUseCase = Depends(get_register_use_case),
):
    """Registra CUSTOMER/ADMIN (o STORE_OWNER si `user_type=store_owner`)."""
    return _register(req.root, response, use_case)


@router.post("/auth/register/store-owner", status_code=201, tags=["auth"])
def register_store_owner(
    req: StoreOwnerRegisterRequest,
    response: Response,
    use_case: RegisterUseCase = Depends(get_register_use_case),
):
    """Registra STORE_OWNER + Store (status PENDING) en una transacción."""
    return _register(req, response, use_case)


# -----------------------------------------------------------------------------
# Login / sesión
# -----------------------------------------------------------------------------


@router.post("/auth/login", tags=["auth"])
def login(
    req: LoginRequest,
    response: Response,
    use_case: LoginUseCase = Depends(get_login_use_case),
):
    """
    Inicia sesión.

    - 2FA habilitado: devuelve `{requires_2fa: true, temp_token}`.
    - Caso contrario: par de tokens + usuario (y cookie httpOnly).
    """
    result = use_case.execute(req.email, req.password)
    if isinstance(result, LoginChallenge):
        return {"requires_2fa": True, "temp_token": result.temp_token}

    _set_auth_cookie(response, result.tokens.access_token, result.tokens.expires_in)
    return {**_pair_payload(result.tokens), "user": to_profile_view(result.user)}


@router.post("/auth/login/2fa", tags=["auth"])
def login_two_factor(
    req: LoginTwoFactorRequest,
    response: Response,
    use_case: VerifyTwoFactorLoginUseCase = Depends(
        get_verify_two_factor_login_use_case
    ),
):
    """Segundo paso del login: temp token + código TOTP -> sesión."""
    session = use_case.execute(req.code, req.temp_token)
    _set_auth_cookie(response, session.tokens.access_token, session.tokens.expires_in)
    return {**_pair_payload(session.tokens), "user": to_profile_view(session.user)}


@router.post(
    "/auth/refresh-token", response_model=TokenPairResponse, tags=["auth"]
)
def refresh_token(
    response: Response,
    credentials: RefreshCredentials = Depends(require_refresh_token()),
    use_case: RefreshTokensUseCase = Depends(get_refresh_tokens_use_case),
):
    """Rota el par de tokens (el refresh anterior deja de ser válido)."""
    pair = use_case.execute(credentials.user_id, credentials.refresh_token)
    _set_auth_cookie(response, pair.access_token, pair.expires_in)
    return _pair_payload(pair)


@router.post("/auth/logout", tags=["auth"])
def logout(
    response: Response,
    user: User = Depends(require_user()),
    use_case: LogoutUseCase = Depends(get_logout_use_case),
):
    """Revoca la sesión persistida y borra la cookie."""
    use_case.execute(user.id)
    _clear_auth_cookie(response)
    return {"message": LOGOUT_MESSAGE}


# -----------------------------------------------------------------------------
# Verificación de email / reseteo de password
# -----------------------------------------------------------------------------


@router.get("/auth/verify-email", tags=["auth"])
def verify_email(
    token: Optional[str] = Query(default=None),
    use_case: VerifyEmailUseCase = Depends(get_verify_email_use_case),
):
    if not token or not token.strip():
        raise BadRequestError("Verification token is required")
    user = use_case.execute(token)
    return {"message": EMAIL_VERIFIED_MESSAGE, "user": to_profile_view(user)}


@router.post("/auth/resend-verification", tags=["auth"])
def resend_verification(
    req: EmailRequest,
    use_case: ResendVerificationUseCase = Depends(get_resend_verification_use_case),
):
    return {"message": use_case.execute(req.email)}


@router.post("/auth/forgot-password", tags=["auth"])
def forgot_password(
    req: EmailRequest,
    use_case: RequestPasswordResetUseCase = Depends(
        get_request_password_reset_use_case
    ),
):
    return {"message": use_case.execute(req.email)}


@router.post("/auth/reset-password", tags=["auth"])
def reset_password(
    req: ResetPasswordRequest,
    use_case: ResetPasswordUseCase = Depends(get_reset_password_use_case),
):
    message = use_case.execute(req.token, req.new_password, req.confirm_new_password)
    return {"message": message}


# -----------------------------------------------------------------------------
# Perfil
# -----------------------------------------------------------------------------


@router.get("/auth/profile", tags=["auth"])
def profile(
    user: User = Depends(require_user()),
    use_case: GetProfileUseCase = Depends(get_profile_use_case),
):
    """Devuelve el perfil sin hash de password, secreto 2FA ni hash de refresh."""
    return use_case.execute(user.id)


# -----------------------------------------------------------------------------
# Endpoints administrativos (usuarios)
# -----------------------------------------------------------------------------


@router.get("/auth/users", tags=["auth"])
def list_users_admin(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    _admin: User = Depends(require_roles(UserRole.ADMIN)),
    use_case: ListUsersUseCase = Depends(get_list_users_use_case),
):
    """Lista usuarios (admin con email verificado)."""
    return use_case.execute(limit=limit, offset=offset)


@router.post("/auth/users/{user_id}/disable", tags=["auth"])
def disable_user_admin(
    user_id: UUID,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    use_case: SetUserActiveUseCase = Depends(get_set_user_active_use_case),
):
    """Deshabilita una cuenta y revoca su sesión."""
    return use_case.execute(actor_id=admin.id, user_id=user_id, is_active=False)


@router.post("/auth/users/{user_id}/enable", tags=["auth"])
def enable_user_admin(
    user_id: UUID,
    admin: User = Depends(require_roles(UserRole.ADMIN)),
    use_case: SetUserActiveUseCase = Depends(get_set_user_active_use_case),
):
    return use_case.execute(actor_id=admin.id, user_id=user_id, is_active=True)

"""
Name: Two-Factor Routes (/2fa/*)

Responsibilities:
  - Expose the TOTP lifecycle for the authenticated user:
      generate -> enable(code) -> verify(code) -> disable(code)
  - Return the provisioning payload (secret, otpauth URL, QR data URL) once

Collaborators:
  - container: 2FA use case factories
  - identity.guards.require_user

Notes:
  - generate/enable only need an authenticated user (email verification does
    not gate the 2FA lifecycle).
  - disable requires a valid code while 2FA is enabled.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..application.usecases.auth import (
    DisableTwoFactorUseCase,
    EnableTwoFactorUseCase,
    GenerateTwoFactorSecretUseCase,
    VerifyTwoFactorCodeUseCase,
)
from ..container import (
    get_disable_two_factor_use_case,
    get_enable_two_factor_use_case,
    get_generate_two_factor_use_case,
    get_verify_two_factor_code_use_case,
)
from ..crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from ..domain.entities import User
from ..identity.guards import require_user

router = APIRouter(prefix="/2fa", tags=["2fa"], responses=OPENAPI_ERROR_RESPONSES)


class TwoFactorCodeRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=10)


class TwoFactorDisableRequest(BaseModel):
    code: Optional[str] = Field(default=None, max_length=10)


class TwoFactorSetupResponse(BaseModel):
    secret: str
    otpauth_url: str
    qr_code_url: str


@router.post("/generate", response_model=TwoFactorSetupResponse)
def generate(
    user: User = Depends(require_user()),
    use_case: GenerateTwoFactorSecretUseCase = Depends(
        get_generate_two_factor_use_case
    ),
):
    setup = use_case.execute(user.id)
    return TwoFactorSetupResponse(
        secret=setup.secret,
        otpauth_url=setup.otpauth_url,
        qr_code_url=setup.qr_code_url,
    )


@router.post("/enable")
def enable(
    req: TwoFactorCodeRequest,
    user: User = Depends(require_user()),
    use_case: EnableTwoFactorUseCase = Depends(get_enable_two_factor_use_case),
):
    updated = use_case.execute(user.id, req.code)
    return {
        "message": "2FA enabled successfully",
        "is_two_factor_enabled": updated.is_two_factor_enabled,
    }


@router.post("/disable")
def disable(
    req: Optional[TwoFactorDisableRequest] = None,
    user: User = Depends(require_user()),
    use_case: DisableTwoFactorUseCase = Depends(get_disable_two_factor_use_case),
):
    updated = use_case.execute(user.id, req.code if req else None)
    return {
        "message": "2FA disabled successfully",
        "is_two_factor_enabled": updated.is_two_factor_enabled,
    }


@router.post("/verify")
def verify(
    req: TwoFactorCodeRequest,
    user: User = Depends(require_user()),
    use_case: VerifyTwoFactorCodeUseCase = Depends(
        get_verify_two_factor_code_use_case
    ),
):
    return {"valid": use_case.execute(user.id, req.code)}

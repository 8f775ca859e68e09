"""Authentication API router."""

from fastapi import APIRouter, Depends

from labgate.audit.service import RequestMeta
from labgate.auth.authorizer import AuthenticatedIdentity
from labgate.auth.schemas import (
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    VerifyResponse,
)
from labgate.common.schemas import MessageResponse
from labgate.common.security import get_current_identity, get_request_meta

router = APIRouter(prefix="/auth")

RESET_MESSAGE = "If the email exists, a new password will be sent"


def _get_service():
    from labgate.deps import get_auth_service
    return get_auth_service()


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, meta: RequestMeta = Depends(get_request_meta)):
    result = await _get_service().login(body.email, body.password, meta=meta)
    return LoginResponse(
        token=result.token,
        user=IdentityResponse(**result.identity.as_dict()),
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify(identity: AuthenticatedIdentity = Depends(get_current_identity)):
    return VerifyResponse(user=IdentityResponse(**identity.as_dict()))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    meta: RequestMeta = Depends(get_request_meta),
):
    await _get_service().logout(identity, meta=meta)
    return MessageResponse(message="Logged out")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: PasswordResetRequest, meta: RequestMeta = Depends(get_request_meta),
):
    await _get_service().request_password_reset(body.email, meta=meta)
    return MessageResponse(message=RESET_MESSAGE)

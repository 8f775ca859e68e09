"""Bearer-token authentication and role-check dependencies."""

from typing import Optional

from fastapi import Depends, Header, Request

from labgate.audit.service import RequestMeta
from labgate.auth.authorizer import AuthenticatedIdentity, Decision, Role, authorize
from labgate.common.exceptions import AuthError, Forbidden
from labgate.common.logging import get_logger

logger = get_logger("security")


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def get_request_meta(request: Request) -> RequestMeta:
    return RequestMeta(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> AuthenticatedIdentity:
    """FastAPI dependency that authenticates the request's bearer token."""
    from labgate.deps import get_auth_service

    try:
        identity = await get_auth_service().authenticate(bearer_token(authorization))
    except AuthError as exc:
        logger.warning(
            "Request authentication failed: %s %s", request.method, request.url.path,
            extra={
                "reason": exc.code,
                "ip_address": request.client.host if request.client else None,
            },
        )
        raise
    request.state.identity = identity
    return identity


def require_roles(*roles: Role | str):
    """Build a dependency admitting only identities whose role is listed."""
    allowed = frozenset(Role(r) for r in roles)

    async def dependency(
        request: Request,
        identity: AuthenticatedIdentity = Depends(get_current_identity),
    ) -> AuthenticatedIdentity:
        if authorize(identity, allowed) is Decision.DENIED:
            logger.warning(
                "Role %s denied on %s %s", identity.role, request.method, request.url.path,
                extra={"reason": "forbidden", "user_id": identity.id},
            )
            raise Forbidden()
        return identity

    return dependency

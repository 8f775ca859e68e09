"""User management API router.

Every successful mutation appends one audit entry after it has committed.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from labgate.audit.service import RequestMeta
from labgate.auth.authorizer import AuthenticatedIdentity, Role
from labgate.auth.passwords import generate_temporary_password
from labgate.common.exceptions import (
    Forbidden,
    InvalidPasswordError,
    NotificationError,
    OperationNotAllowed,
)
from labgate.common.schemas import MessageResponse
from labgate.common.security import get_current_identity, get_request_meta, require_roles
from labgate.users.models import UserModel
from labgate.users.schemas import (
    PasswordChange,
    UserCreate,
    UserCreateResponse,
    UserResponse,
    UserUpdate,
)

router = APIRouter(prefix="/users")

_ADMIN = Role.ADMINISTRATOR.value


def _get_service():
    from labgate.deps import get_user_service
    return get_user_service()


def _get_audit():
    from labgate.deps import get_audit_service
    return get_audit_service()


def _get_email():
    from labgate.deps import get_email_sender
    return get_email_sender()


def _get_db():
    from labgate.deps import get_db
    return get_db()


def _settings():
    from labgate.common.config import get_settings
    return get_settings()


def _to_response(user: UserModel) -> UserResponse:
    return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    search: Optional[str] = Query(None),
    role: Optional[Role] = Query(None),
    status: Optional[str] = Query(None),
    _=Depends(require_roles(Role.ADMINISTRATOR)),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        users = await svc.list_users(
            session, search=search, role=role.value if role else None, status=status,
        )
        return [_to_response(u) for u in users]


@router.post("", response_model=UserCreateResponse, status_code=201)
async def create_user(
    body: UserCreate,
    identity: AuthenticatedIdentity = Depends(require_roles(Role.ADMINISTRATOR)),
    meta: RequestMeta = Depends(get_request_meta),
):
    svc = _get_service()
    db = _get_db()
    password = body.password or generate_temporary_password(
        _settings().temporary_password_length
    )
    async with db.get_session() as session:
        user = await svc.create_user(session, body.email, body.name, body.role, password)

    email_sent = False
    if body.password is None:
        email_sent = await _get_email().send_welcome(
            user.email, user.name, user.role, password,
        )

    await _get_audit().record_best_effort(
        db, identity.id, "CREATE", "users",
        record_id=user.id, after=user.snapshot(),
        ip_address=meta.ip_address, user_agent=meta.user_agent,
    )
    return UserCreateResponse(
        **_to_response(user).model_dump(), email_sent=email_sent,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
):
    if user_id != identity.id and identity.role == Role.CUSTOMER.value:
        raise Forbidden()
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.get_or_raise(session, user_id)
        return _to_response(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    meta: RequestMeta = Depends(get_request_meta),
):
    is_admin = identity.role == _ADMIN
    if not is_admin and user_id != identity.id:
        raise Forbidden()
    # Only administrators change roles or account status
    if not is_admin and (body.role is not None or body.status is not None):
        raise Forbidden()

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user, before = await svc.update_user(
            session, user_id,
            name=body.name,
            email=body.email,
            role=body.role.value if body.role else None,
            status=body.status,
        )

    await _get_audit().record_best_effort(
        db, identity.id, "UPDATE", "users",
        record_id=user.id, before=before, after=user.snapshot(),
        ip_address=meta.ip_address, user_agent=meta.user_agent,
    )
    return _to_response(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(require_roles(Role.ADMINISTRATOR)),
    meta: RequestMeta = Depends(get_request_meta),
):
    if user_id == identity.id:
        raise OperationNotAllowed("You cannot delete your own user")

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user, before = await svc.deactivate_user(session, user_id)

    await _get_audit().record_best_effort(
        db, identity.id, "DELETE", "users",
        record_id=user.id, before=before, after=user.snapshot(),
        ip_address=meta.ip_address, user_agent=meta.user_agent,
    )
    return MessageResponse(message="User deactivated")


@router.put("/{user_id}/password", response_model=MessageResponse)
async def change_password(
    user_id: str,
    body: PasswordChange,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    meta: RequestMeta = Depends(get_request_meta),
):
    own = user_id == identity.id
    if not own and identity.role != _ADMIN:
        raise Forbidden()
    if own and not body.current_password:
        raise InvalidPasswordError("Current password is required")

    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        await svc.change_password(
            session, user_id, body.new_password,
            current_password=body.current_password if own else None,
        )

    await _get_audit().record_best_effort(
        db, identity.id, "PASSWORD_CHANGE", "users",
        record_id=user_id,
        ip_address=meta.ip_address, user_agent=meta.user_agent,
    )
    return MessageResponse(message="Password changed")


@router.post("/{user_id}/reset-password", response_model=MessageResponse)
async def reset_user_password(
    user_id: str,
    identity: AuthenticatedIdentity = Depends(require_roles(Role.ADMINISTRATOR)),
    meta: RequestMeta = Depends(get_request_meta),
):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        user = await svc.get_or_raise(session, user_id)
        new_password = generate_temporary_password(_settings().temporary_password_length)
        if not await _get_email().send_password_reset(user.email, new_password):
            raise NotificationError()
        await svc.set_password(session, user, new_password)

    await _get_audit().record_best_effort(
        db, identity.id, "PASSWORD_RESET_ADMIN", "users",
        record_id=user_id,
        ip_address=meta.ip_address, user_agent=meta.user_agent,
    )
    return MessageResponse(message="A new password was sent by email")

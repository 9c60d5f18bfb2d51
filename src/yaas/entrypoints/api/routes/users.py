"""User management routes. Platform administrators only."""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field

from yaas.core.auth.password import hash_password, validate_password
from yaas.core.auth.repository import IdentityStore
from yaas.core.auth.service import user_to_dict
from yaas.core.auth.types import UserStatus
from yaas.core.exceptions import AuthorizationDenied, NotFound
from yaas.entrypoints.api.deps import get_identity_store
from yaas.entrypoints.api.middleware.session_auth import PlatformAdminDep
from yaas.entrypoints.api.pagination import PageDep

logger = structlog.get_logger()

router = APIRouter(prefix="/users", tags=["users"])

IdentityDep = Annotated[IdentityStore, Depends(get_identity_store)]


class CreateUserRequest(BaseModel):
    """Request to create a user."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str | None = None
    status: UserStatus = UserStatus.ACTIVE


class UpdateUserRequest(BaseModel):
    """Request to update a user."""

    name: str | None = Field(None, min_length=1, max_length=100)
    status: UserStatus | None = None


class SetPasswordRequest(BaseModel):
    """Request to set a user's password."""

    password: str


@router.get("")
async def list_users(
    admin: PlatformAdminDep,
    identity: IdentityDep,
    paging: PageDep,
) -> dict[str, Any]:
    """List all users."""
    users = await identity.list_users(paging.per_page, paging.offset)
    total = await identity.count_users()
    return paging.envelope([user_to_dict(u) for u in users], total)


@router.post("", status_code=201)
async def create_user(
    body: CreateUserRequest,
    admin: PlatformAdminDep,
    identity: IdentityDep,
) -> dict[str, Any]:
    """Create a user, optionally with a password."""
    password_hash = None
    if body.password is not None:
        validate_password(body.password)
        password_hash = hash_password(body.password)
    user = await identity.create_user(
        email=body.email,
        name=body.name,
        status=body.status,
        password_hash=password_hash,
    )
    logger.info("user_created", user_id=str(user.id), by=str(admin.user.id))
    return user_to_dict(user)


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    admin: PlatformAdminDep,
    identity: IdentityDep,
) -> dict[str, Any]:
    """Get a user."""
    user = await identity.get_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return user_to_dict(user)


@router.patch("/{user_id}")
async def update_user(
    user_id: UUID,
    body: UpdateUserRequest,
    admin: PlatformAdminDep,
    identity: IdentityDep,
) -> dict[str, Any]:
    """Update a user's name or status. Admins cannot update themselves."""
    if user_id == admin.user.id:
        raise AuthorizationDenied("Updating your own user account not allowed")
    user = await identity.update_user(user_id, name=body.name, status=body.status)
    if user is None:
        raise NotFound("User not found")
    return user_to_dict(user)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: UUID,
    admin: PlatformAdminDep,
    identity: IdentityDep,
) -> Response:
    """Soft-delete a user. Admins cannot delete themselves."""
    if user_id == admin.user.id:
        raise AuthorizationDenied("Deleting your own user account not allowed")
    if not await identity.delete_user(user_id):
        raise NotFound("User not found")
    logger.info("user_deleted", user_id=str(user_id), by=str(admin.user.id))
    return Response(status_code=204)


@router.put("/{user_id}/password", status_code=204)
async def set_user_password(
    user_id: UUID,
    body: SetPasswordRequest,
    admin: PlatformAdminDep,
    identity: IdentityDep,
) -> Response:
    """Set or replace a user's password."""
    if await identity.get_user_by_id(user_id) is None:
        raise NotFound("User not found")
    validate_password(body.password)
    await identity.set_password_hash(user_id, hash_password(body.password))
    logger.info("user_password_set", user_id=str(user_id), by=str(admin.user.id))
    return Response(status_code=204)

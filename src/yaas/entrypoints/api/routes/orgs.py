"""Organization, membership and app binding routes."""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from yaas.core.auth.repository import IdentityStore, OrgDirectory
from yaas.core.auth.types import Organization, OrgApp, OrgMembership, OrgStatus, UserStatus
from yaas.core.exceptions import AuthorizationDenied, NotFound, ValidationError
from yaas.core.oauth.repository import AppRegistry
from yaas.core.rbac.evaluator import AccessEvaluator
from yaas.core.rbac.types import Action, Role
from yaas.entrypoints.api.deps import (
    get_app_registry,
    get_evaluator,
    get_identity_store,
    get_org_directory,
)
from yaas.entrypoints.api.middleware.session_auth import (
    PlatformAdminDep,
    SessionContext,
    SessionDep,
)
from yaas.entrypoints.api.pagination import PageDep

logger = structlog.get_logger()

router = APIRouter(prefix="/orgs", tags=["orgs"])

DirectoryDep = Annotated[OrgDirectory, Depends(get_org_directory)]
IdentityDep = Annotated[IdentityStore, Depends(get_identity_store)]
AppsDep = Annotated[AppRegistry, Depends(get_app_registry)]
EvaluatorDep = Annotated[AccessEvaluator, Depends(get_evaluator)]


class CreateOrgRequest(BaseModel):
    """Request to create an org. The owner defaults to the caller."""

    name: str = Field(..., min_length=1, max_length=100)
    owner_id: UUID | None = None


class UpdateOrgRequest(BaseModel):
    """Request to update an org."""

    name: str | None = Field(None, min_length=1, max_length=100)
    status: OrgStatus | None = None


class AddMemberRequest(BaseModel):
    """Request to add a user to an org."""

    user_id: UUID
    roles: list[str] = [Role.ORG_MEMBER.value]
    status: UserStatus = UserStatus.ACTIVE


class UpdateMemberRequest(BaseModel):
    """Request to change a membership."""

    roles: list[str] | None = None
    status: UserStatus | None = None


class BindAppRequest(BaseModel):
    """Request to let an org use an app."""

    app_id: UUID


def org_to_dict(org: Organization) -> dict[str, Any]:
    return {
        "id": str(org.id),
        "name": org.name,
        "status": org.status.value,
        "owner_id": str(org.owner_id),
        "created_at": org.created_at.isoformat(),
        "updated_at": org.updated_at.isoformat() if org.updated_at else None,
    }


def member_to_dict(member: OrgMembership) -> dict[str, Any]:
    return {
        "id": str(member.id),
        "org_id": str(member.org_id),
        "user_id": str(member.user_id),
        "roles": [r.value for r in sorted(member.roles, key=lambda r: r.rank, reverse=True)],
        "status": member.status.value,
        "created_at": member.created_at.isoformat(),
    }


def org_app_to_dict(binding: OrgApp) -> dict[str, Any]:
    return {
        "id": str(binding.id),
        "org_id": str(binding.org_id),
        "app_id": str(binding.app_id),
        "created_at": binding.created_at.isoformat(),
    }


def parse_roles(session: SessionContext, values: list[str]) -> frozenset[Role]:
    """Parse requested roles.

    Raises:
        ValidationError: If the list is empty or names an unknown role.
        AuthorizationDenied: If a non-SuperAdmin grants SuperAdmin.
    """
    roles = frozenset(Role.parse(v) for v in values)
    if not roles:
        raise ValidationError("At least one role is required")
    if Role.SUPER_ADMIN in roles and not session.subject.is_superadmin:
        raise AuthorizationDenied("Only a SuperAdmin may grant SuperAdmin")
    return roles


async def _get_org_or_404(directory: OrgDirectory, org_id: UUID) -> Organization:
    org = await directory.get_org(org_id)
    if org is None:
        raise NotFound("Organization not found")
    return org


# Organizations
@router.get("")
async def list_orgs(
    admin: PlatformAdminDep,
    directory: DirectoryDep,
    paging: PageDep,
) -> dict[str, Any]:
    """List all organizations."""
    orgs = await directory.list_orgs(paging.per_page, paging.offset)
    return paging.envelope([org_to_dict(o) for o in orgs], await directory.count_orgs())


@router.post("", status_code=201)
async def create_org(
    body: CreateOrgRequest,
    admin: PlatformAdminDep,
    directory: DirectoryDep,
    identity: IdentityDep,
) -> dict[str, Any]:
    """Create an org and make its owner an OrgAdmin of it."""
    owner_id = body.owner_id or admin.user.id
    if await identity.get_user_by_id(owner_id) is None:
        raise NotFound("Owner not found")
    org = await directory.create_org(body.name, owner_id)
    await directory.add_member(org.id, owner_id, frozenset({Role.ORG_ADMIN}))
    logger.info("org_created", org_id=str(org.id), owner_id=str(owner_id))
    return org_to_dict(org)


@router.get("/{org_id}")
async def get_org(
    org_id: UUID,
    session: SessionDep,
    directory: DirectoryDep,
    evaluator: EvaluatorDep,
) -> dict[str, Any]:
    """Get an organization."""
    await evaluator.require(session.subject, Action.READ, org_id)
    return org_to_dict(await _get_org_or_404(directory, org_id))


@router.patch("/{org_id}")
async def update_org(
    org_id: UUID,
    body: UpdateOrgRequest,
    session: SessionDep,
    directory: DirectoryDep,
    evaluator: EvaluatorDep,
) -> dict[str, Any]:
    """Rename an org. Changing its status is reserved to SuperAdmins.

    SuperAdmins cannot update their own current org.
    """
    await evaluator.require(session.subject, Action.MANAGE, org_id)
    if session.subject.is_superadmin and session.org_id == org_id:
        raise AuthorizationDenied("Superusers cannot update their own organization")
    if body.status is not None:
        await evaluator.require(session.subject, Action.ADMINISTER, None)
    org = await directory.update_org(org_id, name=body.name, status=body.status)
    if org is None:
        raise NotFound("Organization not found")
    return org_to_dict(org)


@router.delete("/{org_id}", status_code=204)
async def delete_org(
    org_id: UUID,
    admin: PlatformAdminDep,
    directory: DirectoryDep,
) -> Response:
    """Soft-delete an organization other than the caller's current org."""
    if admin.org_id == org_id:
        raise AuthorizationDenied("Deleting your own org not allowed")
    if not await directory.delete_org(org_id):
        raise NotFound("Organization not found")
    logger.info("org_deleted", org_id=str(org_id), by=str(admin.user.id))
    return Response(status_code=204)


# Members
@router.get("/{org_id}/members")
async def list_members(
    org_id: UUID,
    session: SessionDep,
    directory: DirectoryDep,
    evaluator: EvaluatorDep,
    paging: PageDep,
) -> dict[str, Any]:
    """List an org's members."""
    await evaluator.require(session.subject, Action.READ, org_id)
    await _get_org_or_404(directory, org_id)
    members = await directory.list_org_members(org_id, paging.per_page, paging.offset)
    total = await directory.count_org_members(org_id)
    return paging.envelope([member_to_dict(m) for m in members], total)


@router.post("/{org_id}/members", status_code=201)
async def add_member(
    org_id: UUID,
    body: AddMemberRequest,
    session: SessionDep,
    directory: DirectoryDep,
    identity: IdentityDep,
    evaluator: EvaluatorDep,
) -> dict[str, Any]:
    """Add a user to an org."""
    await evaluator.require(session.subject, Action.MANAGE, org_id)
    roles = parse_roles(session, body.roles)
    await _get_org_or_404(directory, org_id)
    if await identity.get_user_by_id(body.user_id) is None:
        raise NotFound("User not found")
    member = await directory.add_member(org_id, body.user_id, roles, body.status)
    logger.info("member_added", org_id=str(org_id), user_id=str(body.user_id))
    return member_to_dict(member)


async def _get_member_in_org(
    directory: OrgDirectory, org_id: UUID, member_id: UUID
) -> OrgMembership:
    member = await directory.get_membership_by_id(member_id)
    if member is None or member.org_id != org_id:
        raise NotFound("Member not found")
    return member


@router.patch("/{org_id}/members/{member_id}")
async def update_member(
    org_id: UUID,
    member_id: UUID,
    body: UpdateMemberRequest,
    session: SessionDep,
    directory: DirectoryDep,
    evaluator: EvaluatorDep,
) -> dict[str, Any]:
    """Change a member's roles or status."""
    await evaluator.require(session.subject, Action.MANAGE, org_id)
    roles = parse_roles(session, body.roles) if body.roles is not None else None
    await _get_member_in_org(directory, org_id, member_id)
    member = await directory.update_member(member_id, roles=roles, status=body.status)
    if member is None:
        raise NotFound("Member not found")
    return member_to_dict(member)


@router.delete("/{org_id}/members/{member_id}", status_code=204)
async def remove_member(
    org_id: UUID,
    member_id: UUID,
    session: SessionDep,
    directory: DirectoryDep,
    evaluator: EvaluatorDep,
) -> Response:
    """Remove a member from an org."""
    await evaluator.require(session.subject, Action.MANAGE, org_id)
    await _get_member_in_org(directory, org_id, member_id)
    if not await directory.remove_member(member_id):
        raise NotFound("Member not found")
    logger.info("member_removed", org_id=str(org_id), member_id=str(member_id))
    return Response(status_code=204)


# App bindings
@router.get("/{org_id}/apps")
async def list_org_apps(
    org_id: UUID,
    session: SessionDep,
    apps: AppsDep,
    evaluator: EvaluatorDep,
) -> dict[str, Any]:
    """List the apps an org may use."""
    await evaluator.require(session.subject, Action.READ, org_id)
    bindings = await apps.list_org_apps(org_id)
    return {"items": [org_app_to_dict(b) for b in bindings], "total": len(bindings)}


@router.post("/{org_id}/apps", status_code=201)
async def bind_app(
    org_id: UUID,
    body: BindAppRequest,
    session: SessionDep,
    apps: AppsDep,
    directory: DirectoryDep,
    evaluator: EvaluatorDep,
) -> dict[str, Any]:
    """Allow an org to use an app."""
    await evaluator.require(session.subject, Action.MANAGE, org_id)
    await _get_org_or_404(directory, org_id)
    if await apps.get_app(body.app_id) is None:
        raise NotFound("App not found")
    binding = await apps.bind_app(org_id, body.app_id)
    logger.info("app_bound", org_id=str(org_id), app_id=str(body.app_id))
    return org_app_to_dict(binding)


@router.delete("/{org_id}/apps/{app_id}", status_code=204)
async def unbind_app(
    org_id: UUID,
    app_id: UUID,
    session: SessionDep,
    apps: AppsDep,
    evaluator: EvaluatorDep,
) -> Response:
    """Revoke an org's use of an app."""
    await evaluator.require(session.subject, Action.MANAGE, org_id)
    if not await apps.unbind_app(org_id, app_id):
        raise NotFound("App binding not found")
    logger.info("app_unbound", org_id=str(org_id), app_id=str(app_id))
    return Response(status_code=204)

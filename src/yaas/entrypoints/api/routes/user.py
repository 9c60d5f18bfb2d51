"""Routes for the signed-in user."""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from yaas.core.auth.repository import OrgDirectory
from yaas.core.auth.service import AuthService, user_to_dict
from yaas.core.rbac.evaluator import AccessEvaluator
from yaas.entrypoints.api.deps import get_auth_service, get_evaluator, get_org_directory
from yaas.entrypoints.api.middleware.session_auth import SessionDep

router = APIRouter(prefix="/user", tags=["user"])


class AuthzResponse(BaseModel):
    """What the current session may do."""

    user: dict[str, Any]
    org_id: str | None
    role: str | None
    is_superadmin: bool
    org_count: int
    actions: list[str]


class SwitchOrgRequest(BaseModel):
    """Request to change the session's current org."""

    org_id: UUID


class SwitchOrgResponse(BaseModel):
    """New session token carrying the selected org."""

    access_token: str
    token_type: str = "bearer"
    org_id: str


class ChangePasswordRequest(BaseModel):
    """Password change request body."""

    current_password: str
    new_password: str


@router.get("")
async def get_profile(session: SessionDep) -> dict[str, Any]:
    """Get the current user's profile."""
    return user_to_dict(session.user)


@router.get("/authz", response_model=AuthzResponse)
async def get_authz(
    session: SessionDep,
    evaluator: Annotated[AccessEvaluator, Depends(get_evaluator)],
    directory: Annotated[OrgDirectory, Depends(get_org_directory)],
) -> AuthzResponse:
    """Describe the current session's authorization."""
    role = await evaluator.effective_role(session.subject, session.org_id)
    actions = await evaluator.permitted_actions(session.subject, session.org_id)
    memberships = await directory.list_user_memberships(session.user.id)
    return AuthzResponse(
        user=user_to_dict(session.user),
        org_id=str(session.org_id) if session.org_id else None,
        role=role.value if role else None,
        is_superadmin=session.subject.is_superadmin,
        org_count=sum(1 for m in memberships if m.is_active),
        actions=[a.value for a in actions],
    )


@router.put("/auth-context", response_model=SwitchOrgResponse)
async def switch_org(
    body: SwitchOrgRequest,
    session: SessionDep,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> SwitchOrgResponse:
    """Switch the session's current org.

    Returns a new session token; the old one keeps its original org.
    """
    result = await service.switch_org(session.subject, body.org_id)
    return SwitchOrgResponse(**result)


@router.post("/change-password", status_code=204)
async def change_password(
    body: ChangePasswordRequest,
    session: SessionDep,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> Response:
    """Change the current user's password."""
    await service.change_password(session.user.id, body.current_password, body.new_password)
    return Response(status_code=204)

"""Internal login route."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from yaas.core.auth.service import AuthService
from yaas.entrypoints.api.deps import get_auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str


class MembershipSummary(BaseModel):
    """One org the user can switch to."""

    org_id: str
    roles: list[str]


class SessionResponse(BaseModel):
    """Session token response."""

    access_token: str
    token_type: str = "bearer"
    user: dict[str, Any]
    org_id: str | None = None
    orgs: list[MembershipSummary] = []


@router.post("/authorize", response_model=SessionResponse)
async def authorize(
    body: LoginRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> SessionResponse:
    """Authenticate with email and password and start a session.

    Args:
        body: Login credentials.
        service: Auth service.

    Returns:
        Session token, user profile, current org and membership list.
    """
    result = await service.login(email=body.email, password=body.password)
    return SessionResponse(**result)

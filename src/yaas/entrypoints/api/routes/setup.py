"""First-run superuser setup."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field

from yaas.core.auth.service import AuthService, user_to_dict
from yaas.entrypoints.api.deps import Settings, get_auth_service, get_settings

router = APIRouter(tags=["setup"])


class SetupRequest(BaseModel):
    """Superuser setup request body."""

    setup_key: str | None = None
    email: EmailStr
    password: str
    name: str | None = Field(None, max_length=100)


@router.post("/setup", status_code=201)
async def setup(
    body: SetupRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Create the first SuperAdmin. Only succeeds once."""
    user = await service.setup_superuser(
        email=body.email,
        password=body.password,
        name=body.name,
        setup_key=body.setup_key,
        expected_setup_key=settings.setup_key,
    )
    return user_to_dict(user)

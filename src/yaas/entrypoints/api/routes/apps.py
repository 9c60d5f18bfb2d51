"""Application registry routes. Platform administrators only."""

from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from yaas.core.auth.tokens import generate_client_secret, hash_secret
from yaas.core.auth.types import App
from yaas.core.exceptions import NotFound
from yaas.core.oauth.repository import AppRegistry
from yaas.entrypoints.api.deps import get_app_registry
from yaas.entrypoints.api.middleware.session_auth import PlatformAdminDep
from yaas.entrypoints.api.pagination import PageDep

logger = structlog.get_logger()

router = APIRouter(prefix="/apps", tags=["apps"])

AppsDep = Annotated[AppRegistry, Depends(get_app_registry)]


class CreateAppRequest(BaseModel):
    """Request to register an app."""

    name: str = Field(..., min_length=1, max_length=100)
    redirect_uri: str = Field(..., min_length=1, max_length=250)


class UpdateAppRequest(BaseModel):
    """Request to update an app."""

    name: str | None = Field(None, min_length=1, max_length=100)
    redirect_uri: str | None = Field(None, min_length=1, max_length=250)


def app_to_dict(app: App) -> dict[str, Any]:
    """Public representation of an app. The secret hash is never exposed."""
    return {
        "id": str(app.id),
        "client_id": str(app.id),
        "name": app.name,
        "redirect_uri": app.redirect_uri,
        "created_at": app.created_at.isoformat(),
        "updated_at": app.updated_at.isoformat() if app.updated_at else None,
    }


@router.get("")
async def list_apps(admin: PlatformAdminDep, apps: AppsDep, paging: PageDep) -> dict[str, Any]:
    """List registered apps."""
    items = await apps.list_apps(paging.per_page, paging.offset)
    return paging.envelope([app_to_dict(a) for a in items], await apps.count_apps())


@router.post("", status_code=201)
async def create_app(
    body: CreateAppRequest,
    admin: PlatformAdminDep,
    apps: AppsDep,
) -> dict[str, Any]:
    """Register an app.

    The client secret is returned in this response only; just its hash
    is stored.
    """
    secret = generate_client_secret()
    app = await apps.create_app(body.name, hash_secret(secret), body.redirect_uri)
    logger.info("app_created", app_id=str(app.id), by=str(admin.user.id))
    return {**app_to_dict(app), "client_secret": secret}


@router.get("/{app_id}")
async def get_app(app_id: UUID, admin: PlatformAdminDep, apps: AppsDep) -> dict[str, Any]:
    """Get an app."""
    app = await apps.get_app(app_id)
    if app is None:
        raise NotFound("App not found")
    return app_to_dict(app)


@router.patch("/{app_id}")
async def update_app(
    app_id: UUID,
    body: UpdateAppRequest,
    admin: PlatformAdminDep,
    apps: AppsDep,
) -> dict[str, Any]:
    """Update an app's name or redirect URI."""
    app = await apps.update_app(app_id, name=body.name, redirect_uri=body.redirect_uri)
    if app is None:
        raise NotFound("App not found")
    return app_to_dict(app)


@router.post("/{app_id}/secret")
async def regenerate_secret(
    app_id: UUID,
    admin: PlatformAdminDep,
    apps: AppsDep,
) -> dict[str, Any]:
    """Replace the app's client secret and return the new one once."""
    secret = generate_client_secret()
    app = await apps.update_app(app_id, secret_hash=hash_secret(secret))
    if app is None:
        raise NotFound("App not found")
    logger.info("app_secret_rotated", app_id=str(app.id), by=str(admin.user.id))
    return {**app_to_dict(app), "client_secret": secret}


@router.delete("/{app_id}", status_code=204)
async def delete_app(app_id: UUID, admin: PlatformAdminDep, apps: AppsDep) -> Response:
    """Soft-delete an app and its org bindings."""
    if not await apps.delete_app(app_id):
        raise NotFound("App not found")
    logger.info("app_deleted", app_id=str(app_id), by=str(admin.user.id))
    return Response(status_code=204)

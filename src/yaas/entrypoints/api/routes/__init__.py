"""API route modules."""

from fastapi import APIRouter

from yaas.entrypoints.api.routes.apps import router as apps_router
from yaas.entrypoints.api.routes.auth import router as auth_router
from yaas.entrypoints.api.routes.oauth import router as oauth_router
from yaas.entrypoints.api.routes.orgs import router as orgs_router
from yaas.entrypoints.api.routes.setup import router as setup_router
from yaas.entrypoints.api.routes.user import router as user_router
from yaas.entrypoints.api.routes.users import router as users_router

# Create main API router
api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(oauth_router)
api_router.include_router(user_router)
api_router.include_router(setup_router)
api_router.include_router(users_router)
api_router.include_router(apps_router)
api_router.include_router(orgs_router)

__all__ = ["api_router"]

"""Dependency injection and application lifespan management."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import Request

from yaas.adapters.apps.postgres import PostgresAppRepository
from yaas.adapters.auth.postgres import PostgresAuthRepository
from yaas.adapters.db.app_db import AppDatabase
from yaas.adapters.db.schema import create_schema
from yaas.adapters.memory import InMemoryStore
from yaas.adapters.oauth.postgres import PostgresOAuthCodeRepository
from yaas.core.auth.repository import IdentityStore, OrgDirectory
from yaas.core.auth.service import AuthService
from yaas.core.oauth.exchange import TokenExchangeValidator
from yaas.core.oauth.issuer import AuthorizationCodeIssuer
from yaas.core.oauth.repository import AppRegistry, OAuthCodeStore
from yaas.core.rbac.evaluator import AccessEvaluator
from yaas.entrypoints.api.observability import configure_logging

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = structlog.get_logger()

STORE_POSTGRES = "postgres"
STORE_MEMORY = "memory"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost:5432/yaas")
        self.store = os.getenv("YAAS_STORE", STORE_POSTGRES).strip().lower()
        self.create_schema = _env_flag("YAAS_CREATE_SCHEMA")
        # Optional; when set, POST /setup must present the same key
        self.setup_key = os.getenv("YAAS_SETUP_KEY") or None
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.host = os.getenv("YAAS_HOST", "0.0.0.0")
        self.port = int(os.getenv("YAAS_PORT", "8000"))
        self.cors_origins = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]


settings = Settings()


def bind_stores(
    app: FastAPI,
    identity: IdentityStore,
    directory: OrgDirectory,
    apps: AppRegistry,
    codes: OAuthCodeStore,
) -> None:
    """Wire repositories and the services built on them into app state."""
    evaluator = AccessEvaluator(directory)
    app.state.identity = identity
    app.state.directory = directory
    app.state.apps = apps
    app.state.codes = codes
    app.state.evaluator = evaluator
    app.state.auth_service = AuthService(identity, directory)
    app.state.issuer = AuthorizationCodeIssuer(apps, codes, evaluator)
    app.state.exchange = TokenExchangeValidator(codes, apps, identity, evaluator)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    This context manager handles:
    - Logging configuration
    - Database connection pool setup, or the in-memory store
    - Optional schema creation
    """
    configure_logging(settings.log_level)
    app.state.settings = settings

    app_db: AppDatabase | None = None
    if settings.store == STORE_MEMORY:
        store = InMemoryStore()
        bind_stores(app, store, store, store, store)
        logger.warning("in_memory_store_enabled")
    else:
        app_db = AppDatabase(settings.database_url)
        await app_db.connect()
        if settings.create_schema:
            await create_schema(app_db)
        auth_repo = PostgresAuthRepository(app_db)
        bind_stores(
            app,
            identity=auth_repo,
            directory=auth_repo,
            apps=PostgresAppRepository(app_db),
            codes=PostgresOAuthCodeRepository(app_db),
        )
    app.state.app_db = app_db

    yield

    if app_db is not None:
        await app_db.close()


def get_settings(request: Request) -> Settings:
    """Get settings from app state, falling back to the module settings."""
    configured: Settings = getattr(request.app.state, "settings", settings)
    return configured


def get_identity_store(request: Request) -> IdentityStore:
    """Get the identity store from app state."""
    identity: IdentityStore = request.app.state.identity
    return identity


def get_org_directory(request: Request) -> OrgDirectory:
    """Get the org directory from app state."""
    directory: OrgDirectory = request.app.state.directory
    return directory


def get_app_registry(request: Request) -> AppRegistry:
    """Get the app registry from app state."""
    apps: AppRegistry = request.app.state.apps
    return apps


def get_evaluator(request: Request) -> AccessEvaluator:
    """Get the access evaluator from app state."""
    evaluator: AccessEvaluator = request.app.state.evaluator
    return evaluator


def get_auth_service(request: Request) -> AuthService:
    """Get the auth service from app state."""
    service: AuthService = request.app.state.auth_service
    return service


def get_issuer(request: Request) -> AuthorizationCodeIssuer:
    """Get the authorization code issuer from app state."""
    issuer: AuthorizationCodeIssuer = request.app.state.issuer
    return issuer


def get_exchange_validator(request: Request) -> TokenExchangeValidator:
    """Get the token exchange validator from app state."""
    exchange: TokenExchangeValidator = request.app.state.exchange
    return exchange

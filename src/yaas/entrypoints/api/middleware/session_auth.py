"""Session token authentication."""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from yaas.core.auth.service import AuthService
from yaas.core.auth.types import AuthContext, Subject, User
from yaas.core.exceptions import AuthenticationRequired, AuthorizationDenied
from yaas.core.rbac.evaluator import AccessEvaluator
from yaas.core.rbac.types import Action
from yaas.entrypoints.api.deps import get_auth_service, get_evaluator

logger = structlog.get_logger()

# Use Bearer token authentication
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class SessionContext:
    """Context from a verified session token."""

    auth: AuthContext
    user: User

    @property
    def subject(self) -> Subject:
        """The authenticated principal."""
        return self.auth.subject

    @property
    def org_id(self) -> UUID | None:
        """The session's current org."""
        return self.auth.org_id


async def require_session(
    service: Annotated[AuthService, Depends(get_auth_service)],
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> SessionContext:
    """Verify the session token and resolve its auth context.

    Raises:
        AuthenticationRequired: If the token is missing or invalid.
    """
    if not credentials:
        raise AuthenticationRequired("Missing authentication token")

    try:
        context, user = await service.authenticate_session(credentials.credentials)
    except AuthenticationRequired as e:
        logger.info("session_rejected", reason=e.message)
        raise

    return SessionContext(auth=context, user=user)


async def optional_session(
    service: Annotated[AuthService, Depends(get_auth_service)],
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> SessionContext | None:
    """Resolve the session if a valid token is present, else None."""
    if not credentials:
        return None
    try:
        context, user = await service.authenticate_session(credentials.credentials)
    except AuthenticationRequired:
        return None
    return SessionContext(auth=context, user=user)


async def require_platform_admin(
    session: Annotated[SessionContext, Depends(require_session)],
    evaluator: Annotated[AccessEvaluator, Depends(get_evaluator)],
) -> SessionContext:
    """Require the platform-wide administer action.

    Raises:
        AuthorizationDenied: If the caller is not a SuperAdmin.
    """
    if not await evaluator.can(session.subject, Action.ADMINISTER, None):
        raise AuthorizationDenied("SuperAdmin required")
    return session


# Annotated types for dependency injection
SessionDep = Annotated[SessionContext, Depends(require_session)]
OptionalSessionDep = Annotated[SessionContext | None, Depends(optional_session)]
PlatformAdminDep = Annotated[SessionContext, Depends(require_platform_admin)]

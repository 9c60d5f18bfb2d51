"""Auth service for login, session resolution and superuser setup."""

import hmac
from typing import Any
from uuid import UUID

import structlog

from yaas.core.auth.context import AuthContextManager
from yaas.core.auth.jwt import SESSION_TOKEN_TYPE, TokenError, create_session_token, decode_token
from yaas.core.auth.password import hash_password, validate_password, verify_password
from yaas.core.auth.repository import IdentityStore, OrgDirectory
from yaas.core.auth.types import AuthContext, Subject, User
from yaas.core.exceptions import (
    AuthenticationRequired,
    AuthorizationDenied,
    Conflict,
    InvalidCredentials,
)

logger = structlog.get_logger()

SUPERUSER_NAME = "Superuser"
SUPERUSER_ORG_NAME = "Superuser"


def user_to_dict(user: User) -> dict[str, Any]:
    """Public representation of a user."""
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "status": user.status.value,
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


class AuthService:
    """Service for authentication operations."""

    def __init__(self, identity: IdentityStore, directory: OrgDirectory) -> None:
        """Initialize with the identity store and org directory.

        Args:
            identity: Users and credentials.
            directory: Orgs and memberships.
        """
        self._identity = identity
        self._directory = directory
        self._contexts = AuthContextManager(directory)

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Authenticate with email and password.

        The session starts in the user's earliest-joined active org. Users
        with several memberships get the full list so they can switch.
        Users without any membership still get a session with no current
        org.

        Raises:
            InvalidCredentials: If the email or password is wrong, or the
                user is not active.
        """
        user = await self._identity.get_user_by_email(email)
        if user is None:
            raise InvalidCredentials("Invalid email or password")

        password_hash = await self._identity.get_password_hash(user.id)
        if not verify_password(password, password_hash):
            logger.info("login_failed", user_id=str(user.id))
            raise InvalidCredentials("Invalid email or password")

        if not user.is_active:
            raise InvalidCredentials("User account is not active")

        subject = Subject(user_id=user.id, is_superadmin=await self._identity.is_superuser(user.id))
        context = await self._contexts.resolve(subject)
        memberships = [
            m for m in await self._directory.list_user_memberships(user.id) if m.is_active
        ]

        logger.info("login_succeeded", user_id=str(user.id))
        return {
            "access_token": create_session_token(user.id, context.org_id),
            "token_type": "bearer",
            "user": user_to_dict(user),
            "org_id": str(context.org_id) if context.org_id else None,
            "orgs": [
                {"org_id": str(m.org_id), "roles": sorted(r.value for r in m.roles)}
                for m in memberships
            ],
        }

    async def authenticate_session(self, token: str) -> tuple[AuthContext, User]:
        """Resolve a session token into an explicit auth context.

        Raises:
            AuthenticationRequired: If the token is invalid or the user is
                gone or inactive.
        """
        try:
            payload = decode_token(token, expected_type=SESSION_TOKEN_TYPE)
            user_id = UUID(payload.sub)
            selected = UUID(payload.oid) if payload.oid else None
        except (TokenError, ValueError) as e:
            raise AuthenticationRequired(str(e)) from None

        user = await self._identity.get_user_by_id(user_id)
        if user is None or not user.is_active:
            raise AuthenticationRequired("User not found or inactive")

        subject = Subject(user_id=user.id, is_superadmin=await self._identity.is_superuser(user.id))
        return await self._contexts.resolve(subject, selected), user

    async def switch_org(self, subject: Subject, org_id: UUID) -> dict[str, Any]:
        """Switch the session's current org and return the new session token."""
        token = await self._contexts.switch(subject, org_id)
        return {"access_token": token, "token_type": "bearer", "org_id": str(org_id)}

    async def change_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """Change the caller's own password.

        Raises:
            InvalidCredentials: If the current password is wrong.
            ValidationError: If the new password is unacceptable.
        """
        stored = await self._identity.get_password_hash(user_id)
        if not verify_password(current_password, stored):
            raise InvalidCredentials("Current password is incorrect")
        await self._identity.set_password_hash(user_id, hash_password(new_password))
        logger.info("password_changed", user_id=str(user_id))

    async def setup_superuser(
        self,
        email: str,
        password: str,
        name: str | None = None,
        setup_key: str | None = None,
        expected_setup_key: str | None = None,
    ) -> User:
        """Provision the first SuperAdmin.

        Args:
            email: Superuser email.
            password: Superuser password.
            name: Display name, defaults to "Superuser".
            setup_key: Key supplied by the caller.
            expected_setup_key: Configured key; when set, must match.

        Returns:
            The created user.

        Raises:
            AuthorizationDenied: If a configured setup key does not match.
            Conflict: If a superuser already exists.
        """
        if expected_setup_key and not hmac.compare_digest(
            (setup_key or "").encode("utf-8"), expected_setup_key.encode("utf-8")
        ):
            logger.warning("superuser_setup_rejected", reason="setup_key")
            raise AuthorizationDenied("Invalid setup key")

        if await self._identity.has_superuser():
            raise Conflict("Superuser already exists")

        validate_password(password)
        user = await self._identity.bootstrap_superuser(
            email=email,
            name=name or SUPERUSER_NAME,
            password_hash=hash_password(password),
            org_name=SUPERUSER_ORG_NAME,
        )
        if user is None:
            # Lost a race with a concurrent setup call
            raise Conflict("Superuser already exists")

        logger.info("superuser_created", user_id=str(user.id))
        return user

"""Application registry and authorization code store protocols."""

from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from yaas.core.auth.types import App, OauthCode, OrgApp


@runtime_checkable
class AppRegistry(Protocol):
    """Registered applications and their org bindings."""

    async def get_app(self, app_id: UUID) -> App | None:
        """Get a non-deleted app by ID (the OAuth client_id)."""
        ...

    async def list_apps(self, limit: int, offset: int) -> list[App]:
        """List apps."""
        ...

    async def count_apps(self) -> int:
        """Count apps."""
        ...

    async def create_app(self, name: str, secret_hash: str, redirect_uri: str) -> App:
        """Register a new app."""
        ...

    async def update_app(
        self,
        app_id: UUID,
        name: str | None = None,
        redirect_uri: str | None = None,
        secret_hash: str | None = None,
    ) -> App | None:
        """Update app fields."""
        ...

    async def delete_app(self, app_id: UUID) -> bool:
        """Soft-delete an app."""
        ...

    async def get_org_app(self, org_id: UUID, app_id: UUID) -> OrgApp | None:
        """Get the live binding between an org and an app."""
        ...

    async def list_org_apps(self, org_id: UUID) -> list[OrgApp]:
        """List live app bindings of an org."""
        ...

    async def bind_app(self, org_id: UUID, app_id: UUID) -> OrgApp:
        """Bind an app to an org. Raises Conflict if already bound."""
        ...

    async def unbind_app(self, org_id: UUID, app_id: UUID) -> bool:
        """Soft-delete a binding."""
        ...


@runtime_checkable
class OAuthCodeStore(Protocol):
    """Storage for authorization codes.

    `consume_code` is the only concurrency-sensitive operation: it must
    remove the code and confirm it was still live in one atomic step.
    """

    async def create_code(
        self,
        code: str,
        state: str,
        redirect_uri: str,
        scope: str,
        app_id: UUID,
        org_id: UUID,
        user_id: UUID,
        created_at: datetime,
        expires_at: datetime,
    ) -> OauthCode:
        """Persist a newly issued code."""
        ...

    async def get_code(self, code: str) -> OauthCode | None:
        """Look up an unconsumed code without consuming it."""
        ...

    async def consume_code(self, code: str, now: datetime) -> OauthCode | None:
        """Atomically consume a code that is still live at `now`.

        Returns the consumed code, or None if it was already consumed,
        never existed, or is expired.
        """
        ...

    async def delete_expired(self, now: datetime) -> int:
        """Delete codes whose expiry is before `now`. Returns the count."""
        ...

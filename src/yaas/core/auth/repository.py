"""Identity store and organization directory protocols.

Implementations must exclude soft-deleted rows from every lookup.
"""

from typing import Protocol, runtime_checkable
from uuid import UUID

from yaas.core.auth.types import (
    Organization,
    OrgMembership,
    OrgStatus,
    User,
    UserStatus,
)
from yaas.core.rbac.types import Role


@runtime_checkable
class IdentityStore(Protocol):
    """Users, their credentials and the platform superuser flag."""

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email address."""
        ...

    async def list_users(self, limit: int, offset: int) -> list[User]:
        """List users ordered by creation time."""
        ...

    async def count_users(self) -> int:
        """Count users."""
        ...

    async def create_user(
        self,
        email: str,
        name: str,
        status: UserStatus = UserStatus.ACTIVE,
        password_hash: str | None = None,
    ) -> User:
        """Create a user. Raises Conflict if the email is taken."""
        ...

    async def update_user(
        self,
        user_id: UUID,
        name: str | None = None,
        status: UserStatus | None = None,
    ) -> User | None:
        """Update user fields."""
        ...

    async def delete_user(self, user_id: UUID) -> bool:
        """Soft-delete a user."""
        ...

    async def get_password_hash(self, user_id: UUID) -> str | None:
        """Get the stored password hash for a user."""
        ...

    async def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
        """Create or replace the user's password hash."""
        ...

    async def is_superuser(self, user_id: UUID) -> bool:
        """Whether the user carries the platform SuperAdmin flag."""
        ...

    async def has_superuser(self) -> bool:
        """Whether any live superuser exists."""
        ...

    async def bootstrap_superuser(
        self,
        email: str,
        name: str,
        password_hash: str,
        org_name: str,
    ) -> User | None:
        """Atomically create the first superuser.

        Creates the user, password, superuser flag, an org owned by the
        user and a SuperAdmin membership in it. Returns None without
        writing anything if a superuser already exists.
        """
        ...


@runtime_checkable
class OrgDirectory(Protocol):
    """Organizations, memberships and roles."""

    async def get_org(self, org_id: UUID) -> Organization | None:
        """Get organization by ID."""
        ...

    async def list_orgs(self, limit: int, offset: int) -> list[Organization]:
        """List organizations."""
        ...

    async def count_orgs(self) -> int:
        """Count organizations."""
        ...

    async def create_org(self, name: str, owner_id: UUID) -> Organization:
        """Create a new organization."""
        ...

    async def update_org(
        self,
        org_id: UUID,
        name: str | None = None,
        status: OrgStatus | None = None,
    ) -> Organization | None:
        """Update organization fields."""
        ...

    async def delete_org(self, org_id: UUID) -> bool:
        """Soft-delete an organization."""
        ...

    async def get_membership(self, org_id: UUID, user_id: UUID) -> OrgMembership | None:
        """Get user's membership in an organization."""
        ...

    async def get_membership_by_id(self, member_id: UUID) -> OrgMembership | None:
        """Get a membership row by ID."""
        ...

    async def list_org_members(self, org_id: UUID, limit: int, offset: int) -> list[OrgMembership]:
        """List memberships of an organization."""
        ...

    async def count_org_members(self, org_id: UUID) -> int:
        """Count memberships of an organization."""
        ...

    async def list_user_memberships(self, user_id: UUID) -> list[OrgMembership]:
        """List a user's memberships in live, active orgs, earliest joined first."""
        ...

    async def add_member(
        self,
        org_id: UUID,
        user_id: UUID,
        roles: frozenset[Role],
        status: UserStatus = UserStatus.ACTIVE,
    ) -> OrgMembership:
        """Add a user to an org. Raises Conflict if already a member."""
        ...

    async def update_member(
        self,
        member_id: UUID,
        roles: frozenset[Role] | None = None,
        status: UserStatus | None = None,
    ) -> OrgMembership | None:
        """Update a membership's roles or status."""
        ...

    async def remove_member(self, member_id: UUID) -> bool:
        """Soft-delete a membership."""
        ...

"""PostgreSQL implementation of the identity store and org directory."""

from typing import Any
from uuid import UUID

import asyncpg
import structlog

from yaas.adapters.db.app_db import AppDatabase, build_update
from yaas.core.auth.types import (
    Organization,
    OrgMembership,
    OrgStatus,
    User,
    UserStatus,
    normalize_email,
)
from yaas.core.exceptions import Conflict
from yaas.core.rbac.types import Role

logger = structlog.get_logger()

# Serializes superuser bootstrap across all service instances
SUPERUSER_SETUP_LOCK_KEY = 0x7961617301


class PostgresAuthRepository:
    """PostgreSQL implementation of IdentityStore and OrgDirectory."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_user(self, row: dict[str, Any]) -> User:
        """Convert database row to User model."""
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            status=UserStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    def _row_to_org(self, row: dict[str, Any]) -> Organization:
        """Convert database row to Organization model."""
        return Organization(
            id=row["id"],
            name=row["name"],
            status=OrgStatus(row["status"]),
            owner_id=row["owner_id"],
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    def _row_to_member(self, row: dict[str, Any]) -> OrgMembership:
        """Convert database row to OrgMembership model."""
        return OrgMembership(
            id=row["id"],
            org_id=row["org_id"],
            user_id=row["user_id"],
            roles=Role.parse_set(row["roles"]),
            status=UserStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    # User operations
    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE id = $1 AND deleted_at IS NULL",
            user_id,
        )
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email address."""
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE email = $1 AND deleted_at IS NULL",
            normalize_email(email),
        )
        return self._row_to_user(row) if row else None

    async def list_users(self, limit: int, offset: int) -> list[User]:
        """List users ordered by creation time."""
        rows = await self._db.fetch_all(
            """
            SELECT * FROM users WHERE deleted_at IS NULL
            ORDER BY created_at, id
            LIMIT $1 OFFSET $2
            """,
            limit,
            offset,
        )
        return [self._row_to_user(row) for row in rows]

    async def count_users(self) -> int:
        """Count users."""
        count: int = await self._db.fetch_val(
            "SELECT COUNT(*) FROM users WHERE deleted_at IS NULL"
        )
        return count

    async def create_user(
        self,
        email: str,
        name: str,
        status: UserStatus = UserStatus.ACTIVE,
        password_hash: str | None = None,
    ) -> User:
        """Create a user and, optionally, its password in one transaction."""
        try:
            async with self._db.transaction() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO users (email, name, status)
                    VALUES ($1, $2, $3)
                    RETURNING *
                    """,
                    normalize_email(email),
                    name,
                    status.value,
                )
                assert row is not None, "INSERT RETURNING should always return a row"
                if password_hash is not None:
                    await conn.execute(
                        "INSERT INTO passwords (user_id, password_hash) VALUES ($1, $2)",
                        row["id"],
                        password_hash,
                    )
        except asyncpg.UniqueViolationError:
            raise Conflict("User with this email already exists") from None
        return self._row_to_user(dict(row))

    async def update_user(
        self,
        user_id: UUID,
        name: str | None = None,
        status: UserStatus | None = None,
    ) -> User | None:
        """Update user fields."""
        query, params = build_update(
            "users",
            {"name": name, "status": status.value if status else None},
            user_id,
        )
        row = await self._db.fetch_one(query, *params)
        return self._row_to_user(row) if row else None

    async def delete_user(self, user_id: UUID) -> bool:
        """Soft-delete a user."""
        result = await self._db.execute(
            "UPDATE users SET deleted_at = NOW() WHERE id = $1 AND deleted_at IS NULL",
            user_id,
        )
        return result == "UPDATE 1"

    async def get_password_hash(self, user_id: UUID) -> str | None:
        """Get the stored password hash for a live user."""
        value: str | None = await self._db.fetch_val(
            """
            SELECT p.password_hash
            FROM passwords p
            JOIN users u ON u.id = p.user_id
            WHERE p.user_id = $1 AND u.deleted_at IS NULL
            """,
            user_id,
        )
        return value

    async def set_password_hash(self, user_id: UUID, password_hash: str) -> None:
        """Create or replace the user's password hash."""
        await self._db.execute(
            """
            INSERT INTO passwords (user_id, password_hash)
            VALUES ($1, $2)
            ON CONFLICT (user_id)
            DO UPDATE SET password_hash = EXCLUDED.password_hash, updated_at = NOW()
            """,
            user_id,
            password_hash,
        )

    async def is_superuser(self, user_id: UUID) -> bool:
        """Whether the user carries the platform SuperAdmin flag."""
        result: bool = await self._db.fetch_val(
            "SELECT EXISTS (SELECT 1 FROM superusers WHERE user_id = $1 AND deleted_at IS NULL)",
            user_id,
        )
        return bool(result)

    async def has_superuser(self) -> bool:
        """Whether any live superuser exists."""
        result: bool = await self._db.fetch_val(
            """
            SELECT EXISTS (
                SELECT 1 FROM superusers s
                JOIN users u ON u.id = s.user_id
                WHERE s.deleted_at IS NULL AND u.deleted_at IS NULL
            )
            """
        )
        return bool(result)

    async def bootstrap_superuser(
        self,
        email: str,
        name: str,
        password_hash: str,
        org_name: str,
    ) -> User | None:
        """Atomically create the first superuser with a home org."""
        try:
            async with self._db.transaction() as conn:
                await conn.execute("SELECT pg_advisory_xact_lock($1)", SUPERUSER_SETUP_LOCK_KEY)
                exists = await conn.fetchval(
                    """
                    SELECT EXISTS (
                        SELECT 1 FROM superusers s
                        JOIN users u ON u.id = s.user_id
                        WHERE s.deleted_at IS NULL AND u.deleted_at IS NULL
                    )
                    """
                )
                if exists:
                    return None

                user_row = await conn.fetchrow(
                    "INSERT INTO users (email, name, status) VALUES ($1, $2, $3) RETURNING *",
                    normalize_email(email),
                    name,
                    UserStatus.ACTIVE.value,
                )
                assert user_row is not None, "INSERT RETURNING should always return a row"
                user_id = user_row["id"]
                await conn.execute(
                    "INSERT INTO passwords (user_id, password_hash) VALUES ($1, $2)",
                    user_id,
                    password_hash,
                )
                await conn.execute("INSERT INTO superusers (user_id) VALUES ($1)", user_id)
                org_id = await conn.fetchval(
                    "INSERT INTO orgs (name, status, owner_id) VALUES ($1, $2, $3) RETURNING id",
                    org_name,
                    OrgStatus.ACTIVE.value,
                    user_id,
                )
                await conn.execute(
                    """
                    INSERT INTO org_members (org_id, user_id, roles, status)
                    VALUES ($1, $2, $3, $4)
                    """,
                    org_id,
                    user_id,
                    Role.serialize_set({Role.SUPER_ADMIN}),
                    UserStatus.ACTIVE.value,
                )
        except asyncpg.UniqueViolationError:
            raise Conflict("User with this email already exists") from None
        return self._row_to_user(dict(user_row))

    # Organization operations
    async def get_org(self, org_id: UUID) -> Organization | None:
        """Get organization by ID."""
        row = await self._db.fetch_one(
            "SELECT * FROM orgs WHERE id = $1 AND deleted_at IS NULL",
            org_id,
        )
        return self._row_to_org(row) if row else None

    async def list_orgs(self, limit: int, offset: int) -> list[Organization]:
        """List organizations."""
        rows = await self._db.fetch_all(
            """
            SELECT * FROM orgs WHERE deleted_at IS NULL
            ORDER BY name, id
            LIMIT $1 OFFSET $2
            """,
            limit,
            offset,
        )
        return [self._row_to_org(row) for row in rows]

    async def count_orgs(self) -> int:
        """Count organizations."""
        count: int = await self._db.fetch_val("SELECT COUNT(*) FROM orgs WHERE deleted_at IS NULL")
        return count

    async def create_org(self, name: str, owner_id: UUID) -> Organization:
        """Create a new organization."""
        row = await self._db.fetch_one(
            """
            INSERT INTO orgs (name, status, owner_id)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            name,
            OrgStatus.ACTIVE.value,
            owner_id,
        )
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_org(row)

    async def update_org(
        self,
        org_id: UUID,
        name: str | None = None,
        status: OrgStatus | None = None,
    ) -> Organization | None:
        """Update organization fields."""
        query, params = build_update(
            "orgs",
            {"name": name, "status": status.value if status else None},
            org_id,
        )
        row = await self._db.fetch_one(query, *params)
        return self._row_to_org(row) if row else None

    async def delete_org(self, org_id: UUID) -> bool:
        """Soft-delete an organization."""
        result = await self._db.execute(
            "UPDATE orgs SET deleted_at = NOW() WHERE id = $1 AND deleted_at IS NULL",
            org_id,
        )
        return result == "UPDATE 1"

    # Membership operations
    async def get_membership(self, org_id: UUID, user_id: UUID) -> OrgMembership | None:
        """Get user's membership in an organization."""
        row = await self._db.fetch_one(
            """
            SELECT * FROM org_members
            WHERE org_id = $1 AND user_id = $2 AND deleted_at IS NULL
            """,
            org_id,
            user_id,
        )
        return self._row_to_member(row) if row else None

    async def get_membership_by_id(self, member_id: UUID) -> OrgMembership | None:
        """Get a membership row by ID."""
        row = await self._db.fetch_one(
            "SELECT * FROM org_members WHERE id = $1 AND deleted_at IS NULL",
            member_id,
        )
        return self._row_to_member(row) if row else None

    async def list_org_members(self, org_id: UUID, limit: int, offset: int) -> list[OrgMembership]:
        """List memberships of an organization."""
        rows = await self._db.fetch_all(
            """
            SELECT * FROM org_members
            WHERE org_id = $1 AND deleted_at IS NULL
            ORDER BY created_at, id
            LIMIT $2 OFFSET $3
            """,
            org_id,
            limit,
            offset,
        )
        return [self._row_to_member(row) for row in rows]

    async def count_org_members(self, org_id: UUID) -> int:
        """Count memberships of an organization."""
        count: int = await self._db.fetch_val(
            "SELECT COUNT(*) FROM org_members WHERE org_id = $1 AND deleted_at IS NULL",
            org_id,
        )
        return count

    async def list_user_memberships(self, user_id: UUID) -> list[OrgMembership]:
        """List a user's memberships in live, active orgs, earliest joined first."""
        rows = await self._db.fetch_all(
            """
            SELECT m.*
            FROM org_members m
            JOIN orgs o ON o.id = m.org_id
            WHERE m.user_id = $1
              AND m.deleted_at IS NULL
              AND o.deleted_at IS NULL
              AND o.status = $2
            ORDER BY m.created_at, m.id
            """,
            user_id,
            OrgStatus.ACTIVE.value,
        )
        return [self._row_to_member(row) for row in rows]

    async def add_member(
        self,
        org_id: UUID,
        user_id: UUID,
        roles: frozenset[Role],
        status: UserStatus = UserStatus.ACTIVE,
    ) -> OrgMembership:
        """Add a user to an org.

        A tombstoned membership for the same pair is revived in place;
        a live one is a conflict.
        """
        row = await self._db.fetch_one(
            """
            INSERT INTO org_members (org_id, user_id, roles, status)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (org_id, user_id) DO UPDATE
            SET roles = EXCLUDED.roles,
                status = EXCLUDED.status,
                deleted_at = NULL,
                created_at = NOW(),
                updated_at = NOW()
            WHERE org_members.deleted_at IS NOT NULL
            RETURNING *
            """,
            org_id,
            user_id,
            Role.serialize_set(roles),
            status.value,
        )
        if row is None:
            raise Conflict("User is already a member of this organization")
        return self._row_to_member(row)

    async def update_member(
        self,
        member_id: UUID,
        roles: frozenset[Role] | None = None,
        status: UserStatus | None = None,
    ) -> OrgMembership | None:
        """Update a membership's roles or status."""
        query, params = build_update(
            "org_members",
            {
                "roles": Role.serialize_set(roles) if roles is not None else None,
                "status": status.value if status else None,
            },
            member_id,
        )
        row = await self._db.fetch_one(query, *params)
        return self._row_to_member(row) if row else None

    async def remove_member(self, member_id: UUID) -> bool:
        """Soft-delete a membership."""
        result = await self._db.execute(
            "UPDATE org_members SET deleted_at = NOW() WHERE id = $1 AND deleted_at IS NULL",
            member_id,
        )
        return result == "UPDATE 1"

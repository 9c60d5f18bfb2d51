"""PostgreSQL implementation of the app registry."""

from typing import Any
from uuid import UUID

from yaas.adapters.db.app_db import AppDatabase, build_update
from yaas.core.auth.types import App, OrgApp
from yaas.core.exceptions import Conflict


class PostgresAppRepository:
    """PostgreSQL implementation of AppRegistry."""

    def __init__(self, db: AppDatabase) -> None:
        self._db = db

    def _row_to_app(self, row: dict[str, Any]) -> App:
        return App(
            id=row["id"],
            name=row["name"],
            secret_hash=row["secret"],
            redirect_uri=row["redirect_uri"],
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    def _row_to_org_app(self, row: dict[str, Any]) -> OrgApp:
        return OrgApp(
            id=row["id"],
            org_id=row["org_id"],
            app_id=row["app_id"],
            created_at=row["created_at"],
            deleted_at=row.get("deleted_at"),
        )

    async def get_app(self, app_id: UUID) -> App | None:
        """Get a non-deleted app by ID."""
        row = await self._db.fetch_one(
            "SELECT * FROM apps WHERE id = $1 AND deleted_at IS NULL",
            app_id,
        )
        return self._row_to_app(row) if row else None

    async def list_apps(self, limit: int, offset: int) -> list[App]:
        """List apps by name."""
        rows = await self._db.fetch_all(
            """
            SELECT * FROM apps WHERE deleted_at IS NULL
            ORDER BY name, id
            LIMIT $1 OFFSET $2
            """,
            limit,
            offset,
        )
        return [self._row_to_app(row) for row in rows]

    async def count_apps(self) -> int:
        count: int = await self._db.fetch_val("SELECT COUNT(*) FROM apps WHERE deleted_at IS NULL")
        return count

    async def create_app(self, name: str, secret_hash: str, redirect_uri: str) -> App:
        """Register a new app."""
        row = await self._db.fetch_one(
            """
            INSERT INTO apps (name, secret, redirect_uri)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            name,
            secret_hash,
            redirect_uri,
        )
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_app(row)

    async def update_app(
        self,
        app_id: UUID,
        name: str | None = None,
        redirect_uri: str | None = None,
        secret_hash: str | None = None,
    ) -> App | None:
        """Update app fields."""
        query, params = build_update(
            "apps",
            {"name": name, "redirect_uri": redirect_uri, "secret": secret_hash},
            app_id,
        )
        row = await self._db.fetch_one(query, *params)
        return self._row_to_app(row) if row else None

    async def delete_app(self, app_id: UUID) -> bool:
        """Soft-delete an app and its bindings."""
        async with self._db.transaction() as conn:
            result = await conn.execute(
                "UPDATE apps SET deleted_at = NOW() WHERE id = $1 AND deleted_at IS NULL",
                app_id,
            )
            await conn.execute(
                "UPDATE org_apps SET deleted_at = NOW() WHERE app_id = $1 AND deleted_at IS NULL",
                app_id,
            )
        return bool(result == "UPDATE 1")

    async def get_org_app(self, org_id: UUID, app_id: UUID) -> OrgApp | None:
        """Get the live binding between an org and an app."""
        row = await self._db.fetch_one(
            """
            SELECT * FROM org_apps
            WHERE org_id = $1 AND app_id = $2 AND deleted_at IS NULL
            """,
            org_id,
            app_id,
        )
        return self._row_to_org_app(row) if row else None

    async def list_org_apps(self, org_id: UUID) -> list[OrgApp]:
        """List live app bindings of an org."""
        rows = await self._db.fetch_all(
            """
            SELECT oa.*
            FROM org_apps oa
            JOIN apps a ON a.id = oa.app_id
            WHERE oa.org_id = $1 AND oa.deleted_at IS NULL AND a.deleted_at IS NULL
            ORDER BY oa.created_at, oa.id
            """,
            org_id,
        )
        return [self._row_to_org_app(row) for row in rows]

    async def bind_app(self, org_id: UUID, app_id: UUID) -> OrgApp:
        """Bind an app to an org, reviving a tombstoned binding."""
        row = await self._db.fetch_one(
            """
            INSERT INTO org_apps (org_id, app_id)
            VALUES ($1, $2)
            ON CONFLICT (org_id, app_id) DO UPDATE
            SET deleted_at = NULL, created_at = NOW()
            WHERE org_apps.deleted_at IS NOT NULL
            RETURNING *
            """,
            org_id,
            app_id,
        )
        if row is None:
            raise Conflict("App is already bound to this organization")
        return self._row_to_org_app(row)

    async def unbind_app(self, org_id: UUID, app_id: UUID) -> bool:
        """Soft-delete a binding."""
        result = await self._db.execute(
            """
            UPDATE org_apps SET deleted_at = NOW()
            WHERE org_id = $1 AND app_id = $2 AND deleted_at IS NULL
            """,
            org_id,
            app_id,
        )
        return result == "UPDATE 1"

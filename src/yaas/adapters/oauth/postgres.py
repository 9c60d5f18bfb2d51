"""PostgreSQL implementation of the authorization code store."""

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog

from yaas.adapters.db.app_db import AppDatabase
from yaas.core.auth.types import OauthCode

logger = structlog.get_logger()


class PostgresOAuthCodeRepository:
    """PostgreSQL implementation of OAuthCodeStore.

    Consumption is a single `DELETE ... RETURNING`, so of any number of
    concurrent exchanges for the same code exactly one gets the row back.
    """

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_code(self, row: dict[str, Any]) -> OauthCode:
        return OauthCode(
            id=row["id"],
            code=row["code"],
            state=row["state"],
            redirect_uri=row["redirect_uri"],
            scope=row["scope"],
            app_id=row["app_id"],
            org_id=row["org_id"],
            user_id=row["user_id"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

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
        row = await self._db.fetch_one(
            """
            INSERT INTO oauth_codes
                (code, state, redirect_uri, scope, app_id, org_id, user_id,
                 created_at, expires_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING *
            """,
            code,
            state,
            redirect_uri,
            scope,
            app_id,
            org_id,
            user_id,
            created_at,
            expires_at,
        )
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_code(row)

    async def get_code(self, code: str) -> OauthCode | None:
        """Look up a code without consuming it."""
        row = await self._db.fetch_one("SELECT * FROM oauth_codes WHERE code = $1", code)
        return self._row_to_code(row) if row else None

    async def consume_code(self, code: str, now: datetime) -> OauthCode | None:
        """Atomically delete a live code and return it."""
        row = await self._db.fetch_one(
            """
            DELETE FROM oauth_codes
            WHERE code = $1 AND expires_at >= $2
            RETURNING *
            """,
            code,
            now,
        )
        return self._row_to_code(row) if row else None

    async def delete_expired(self, now: datetime) -> int:
        """Delete codes that expired before `now`."""
        result = await self._db.execute("DELETE FROM oauth_codes WHERE expires_at < $1", now)
        # asyncpg status string, e.g. "DELETE 3"
        deleted = int(result.split()[-1])
        logger.info("expired_codes_deleted", count=deleted)
        return deleted

"""Expired authorization code sweep.

Run via: python -m yaas.jobs.code_sweep

Exchange already rejects expired codes, so this only reclaims space. It
never touches a code that is still live.
"""

import asyncio
import os

import structlog

from yaas.adapters.db.app_db import AppDatabase
from yaas.adapters.oauth.postgres import PostgresOAuthCodeRepository
from yaas.core.auth.tokens import utcnow
from yaas.core.oauth.repository import OAuthCodeStore

logger = structlog.get_logger()


async def sweep(codes: OAuthCodeStore) -> int:
    """Delete every code that expired before now."""
    now = utcnow()
    count = await codes.delete_expired(now)
    logger.info("code_sweep_finished", deleted=count, cutoff=now.isoformat())
    return count


async def main() -> None:
    """Run the sweep against DATABASE_URL."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        logger.error("database_url_not_set")
        return

    db = AppDatabase(database_url, min_size=1, max_size=2)
    await db.connect()
    try:
        await sweep(PostgresOAuthCodeRepository(db))
    finally:
        await db.close()


if __name__ == "__main__":
    asyncio.run(main())

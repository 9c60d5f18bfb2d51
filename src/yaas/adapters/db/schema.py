"""Schema creation from the SQLAlchemy models.

The application talks to PostgreSQL through asyncpg; SQLAlchemy is only
used to describe the tables and compile them to DDL.
"""

import structlog
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from yaas.adapters.db.app_db import AppDatabase
from yaas.models import metadata

logger = structlog.get_logger()


def schema_statements() -> list[str]:
    """Compile idempotent PostgreSQL DDL for every table and index."""
    dialect = postgresql.dialect()
    statements = ["CREATE EXTENSION IF NOT EXISTS pgcrypto"]
    for table in metadata.sorted_tables:
        statements.append(str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)))
        for index in sorted(table.indexes, key=lambda i: i.name or ""):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)))
    return statements


async def create_schema(db: AppDatabase) -> None:
    """Create any missing tables and indexes in one transaction."""
    statements = schema_statements()
    async with db.transaction() as conn:
        for statement in statements:
            await conn.execute(statement)
    logger.info("schema_created", statements=len(statements))

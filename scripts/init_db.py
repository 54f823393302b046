"""Script to initialize the database."""

import asyncio

import structlog
from sqlalchemy import text

from app.database import engine
from app.middleware.logging import configure_logging
from app.models import metadata

logger = structlog.get_logger()


async def init_db() -> None:
    """Create all tables on the configured database."""
    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

    logger.info("database_initialized", tables=sorted(metadata.tables))
    await engine.dispose()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())

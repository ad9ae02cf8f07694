# sakany/app/db/init_db.py
"""
Create tables and seed sample listings.

Run directly against the configured DATABASE_URL:

    python -m sakany.app.db.init_db
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from sakany.app.core.config import get_settings
from sakany.app.core.logging import configure_logging
from sakany.app.db.base import Base
from sakany.app.db.session import build_engine, build_sessionmaker

# Register models on Base.metadata
from sakany.app.models import property as property_model, user as user_model  # noqa: F401
from sakany.app.services.properties import PropertyService
from sakany.app.stores.properties import PropertyStore

logger = logging.getLogger(__name__)


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_properties(sessionmaker: async_sessionmaker[AsyncSession], lock: asyncio.Lock) -> int:
    async with sessionmaker() as db:
        return await PropertyService(PropertyStore(db, lock)).seed_samples()


async def init_models() -> None:
    settings = get_settings()
    engine = build_engine(settings)
    try:
        logger.info("Creating tables on %s", engine.url.render_as_string(hide_password=True))
        await create_tables(engine)
        if settings.SEED_SAMPLE_PROPERTIES:
            await seed_properties(build_sessionmaker(engine), asyncio.Lock())
        logger.info("Database ready")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    configure_logging(get_settings().LOG_LEVEL)
    asyncio.run(init_models())

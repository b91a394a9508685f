"""Initialize database tables and reference rows"""
import asyncio

from campus_meals.database import engine, Base
from campus_meals.main import seed_reference_data
from campus_meals.models import *  # noqa: F401,F403 - Import all models to register them
from campus_meals.utils.logger import get_logger

logger = get_logger(__name__)


async def init():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_reference_data()
    await engine.dispose()
    logger.info("Database tables created and meal slots/roles seeded.")


if __name__ == "__main__":
    asyncio.run(init())

import asyncio

from vendors_manager.core.logging_config import get_logger
from vendors_manager.db.base import Base
from vendors_manager.db.session import SessionLocal, engine
from vendors_manager.services.rbac import initialize_rbac

# Registers every table on Base.metadata
import vendors_manager.models  # noqa: F401

logger = get_logger(__name__)


async def ensure_tables_exist() -> None:
    """
    Create missing tables (called on application startup)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_database() -> dict:
    """Insert-only seed: protectable resources, Administrators group, bootstrap super-user"""
    async with SessionLocal() as db:
        result = await initialize_rbac(db)
    if result["resources_added"]:
        logger.info(f"🔐 Registered {result['resources_added']} protectable resource(s)")
    return result


async def init_db() -> None:
    await ensure_tables_exist()
    await seed_database()


if __name__ == "__main__":
    asyncio.run(init_db())

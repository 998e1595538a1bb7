from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from vendors_manager.core.config import settings


def build_async_url(uri: str) -> str:
    """sqlite:/// URLs are served through the aiosqlite driver"""
    if uri.startswith("sqlite:///"):
        return uri.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return uri


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE clauses unless foreign keys are switched on per connection"""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# SQL_DEBUG output goes through the sqlalchemy.engine logger, see setup_logging
engine = create_async_engine(
    build_async_url(settings.SQLITE_DATABASE_URI),
    future=True,
)
event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

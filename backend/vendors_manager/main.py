from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sqlalchemy.exc import SQLAlchemyError

from vendors_manager.api.api_v1.api import api_router
from vendors_manager.core.config import settings
from vendors_manager.core.errors import register_exception_handlers
from vendors_manager.core.logging_config import RequestLogMiddleware, setup_logging, get_logger
from vendors_manager.db.init_db import ensure_tables_exist, seed_database
from vendors_manager.services.scheduler import init_scheduler, shutdown_scheduler

setup_logging(
    settings.LOG_LEVEL,
    log_dir=Path(settings.LOG_DIR),
    sql_debug=settings.SQL_DEBUG,
    log_to_file=settings.LOG_TO_FILE,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    logger.info("🚀 Starting up...")

    await ensure_tables_exist()
    logger.info("📊 Database tables ready")

    try:
        await seed_database()
    except SQLAlchemyError as e:
        logger.warning(f"Seeding skipped: {e}")

    init_scheduler()
    yield
    logger.info("🛑 Shutting down...")
    shutdown_scheduler()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="Vendors, contracts, invoices, timesheets and weekly delivery reports",
    lifespan=lifespan,
)

if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"CORS origins: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(RequestLogMiddleware)
register_exception_handlers(app)

logger.info(f"Registering API routes under {settings.API_V1_STR}")
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")

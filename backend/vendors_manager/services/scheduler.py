"""
Scheduled jobs (APScheduler)

- contract_expiry: mark active contracts past their end date as expired
- token_cleanup: delete used and expired invitation/reset tokens
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import SQLAlchemyError

from vendors_manager.core.config import settings
from vendors_manager.core.logging_config import get_logger
from vendors_manager.db.session import SessionLocal
from vendors_manager.services.auth_tokens import purge_expired_tokens
from vendors_manager.services.contracts import auto_update_expired_contracts

logger = get_logger(__name__)

scheduler: Optional[AsyncIOScheduler] = None


async def run_contract_expiry() -> int:
    try:
        async with SessionLocal() as db:
            count = await auto_update_expired_contracts(db)
    except SQLAlchemyError as e:
        logger.error(f"❌ Contract expiry job failed: {e}")
        return 0
    logger.info(f"✅ Contract expiry check finished ({count} updated)")
    return count


async def run_token_cleanup() -> int:
    try:
        async with SessionLocal() as db:
            count = await purge_expired_tokens(db)
    except SQLAlchemyError as e:
        logger.error(f"❌ Token cleanup job failed: {e}")
        return 0
    if count:
        logger.info(f"🗑️ Removed {count} used or expired token(s)")
    return count


def init_scheduler():
    """Create and start the scheduler"""
    global scheduler

    if not settings.SCHEDULER_ENABLED:
        logger.info("⏰ Scheduler disabled")
        return

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_contract_expiry,
        trigger=CronTrigger(hour=settings.CONTRACT_EXPIRY_HOUR, minute=settings.CONTRACT_EXPIRY_MINUTE),
        id="contract_expiry",
        name="Expire contracts past their end date",
        replace_existing=True,
    )
    scheduler.add_job(
        run_token_cleanup,
        trigger=CronTrigger(hour=settings.TOKEN_CLEANUP_HOUR, minute=settings.TOKEN_CLEANUP_MINUTE),
        id="token_cleanup",
        name="Purge used and expired tokens",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"⏰ Scheduler started - contract expiry daily at "
        f"{settings.CONTRACT_EXPIRY_HOUR:02d}:{settings.CONTRACT_EXPIRY_MINUTE:02d}, "
        f"token cleanup at {settings.TOKEN_CLEANUP_HOUR:02d}:{settings.TOKEN_CLEANUP_MINUTE:02d}"
    )


def shutdown_scheduler():
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ Scheduler stopped")


def get_scheduler_status() -> dict:
    if not scheduler:
        return {"enabled": settings.SCHEDULER_ENABLED, "running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        })
    return {"enabled": settings.SCHEDULER_ENABLED, "running": scheduler.running, "jobs": jobs}

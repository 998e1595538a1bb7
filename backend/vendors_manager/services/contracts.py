"""
Contract lifecycle helpers: expiration countdown, auto-expiry, statistics
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import Contract

logger = get_logger(__name__)

EXPIRING_SOON_DAYS = 30


def days_until_expiration(end_date: date, today: Optional[date] = None) -> int:
    return (end_date - (today or date.today())).days


def get_expiration_status(end_date: date, threshold: int = EXPIRING_SOON_DAYS, today: Optional[date] = None) -> str:
    remaining = days_until_expiration(end_date, today)
    if remaining < 0:
        return "expired"
    if remaining <= threshold:
        return "expiring_soon"
    return "active"


def get_auto_status(status: str, end_date: date, today: Optional[date] = None) -> str:
    """Terminated and draft contracts keep their status; anything past its end date expires"""
    if status in ("terminated", "draft"):
        return status
    if (today or date.today()) > end_date:
        return "expired"
    return status


async def auto_update_expired_contracts(db: AsyncSession) -> int:
    """Mark active contracts whose end date has passed as expired"""
    result = await db.execute(
        update(Contract)
        .where(Contract.status == "active", Contract.end_date < date.today())
        .values(status="expired")
    )
    await db.commit()
    count = result.rowcount or 0
    if count:
        logger.info(f"📄 {count} contract(s) marked as expired")
    return count


async def get_expiring_contracts(db: AsyncSession, days: int = EXPIRING_SOON_DAYS) -> List[Contract]:
    today = date.today()
    result = await db.execute(
        select(Contract)
        .where(
            Contract.status == "active",
            Contract.end_date >= today,
            Contract.end_date <= today + timedelta(days=days),
        )
        .order_by(Contract.end_date)
    )
    return list(result.unique().scalars().all())


async def get_contract_stats(db: AsyncSession) -> dict:
    result = await db.execute(select(Contract.status, func.count(Contract.id)).group_by(Contract.status))
    counts = dict(result.all())

    today = date.today()
    expiring_result = await db.execute(
        select(func.count(Contract.id)).where(
            Contract.status == "active",
            Contract.end_date >= today,
            Contract.end_date <= today + timedelta(days=EXPIRING_SOON_DAYS),
        )
    )
    value_result = await db.execute(select(Contract.value).where(Contract.status == "active"))
    total_value = sum((Decimal(str(v)) for v in value_result.scalars().all()), Decimal("0"))

    return {
        "total_contracts": sum(counts.values()),
        "draft_contracts": counts.get("draft", 0),
        "active_contracts": counts.get("active", 0),
        "expired_contracts": counts.get("expired", 0),
        "terminated_contracts": counts.get("terminated", 0),
        "expiring_within_30_days": expiring_result.scalar() or 0,
        "total_value": float(total_value),
    }

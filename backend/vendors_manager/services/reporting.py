"""
Weekly delivery reporting

Admins and super-users see every vendor. Other users see only the vendors
assigned to them through DeliveryManagerVendor.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Type

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import (
    DeliveryManagerVendor,
    User,
    Vendor,
    VendorRaidItem,
    VendorResourceItem,
    VendorTimelineMilestone,
    WeeklyReport,
    WeeklyReportAchievement,
    WeeklyReportFocus,
)

logger = get_logger(__name__)

NO_VENDOR_ACCESS = "You do not have access to this vendor"


class ReportingError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_week_start(day: date) -> date:
    """Monday of the week containing `day`"""
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


def has_full_access(user: User) -> bool:
    return bool(user.is_super_user) or user.permission_level == "admin"


# ============================================================
# Vendor visibility
# ============================================================

async def get_assigned_vendors(db: AsyncSession, user: User) -> List[Vendor]:
    if has_full_access(user):
        result = await db.execute(select(Vendor).order_by(Vendor.name))
    else:
        result = await db.execute(
            select(Vendor)
            .join(DeliveryManagerVendor, DeliveryManagerVendor.vendor_id == Vendor.id)
            .where(DeliveryManagerVendor.user_id == user.id)
            .order_by(Vendor.name)
        )
    return list(result.unique().scalars().all())


async def user_has_vendor_access(db: AsyncSession, user: User, vendor_id: int) -> bool:
    if has_full_access(user):
        return True
    result = await db.execute(
        select(DeliveryManagerVendor.id).where(
            DeliveryManagerVendor.user_id == user.id,
            DeliveryManagerVendor.vendor_id == vendor_id,
        )
    )
    return result.first() is not None


async def ensure_vendor_access(db: AsyncSession, user: User, vendor_id: int) -> Vendor:
    vendor = await db.get(Vendor, vendor_id)
    if vendor is None:
        raise ReportingError("Vendor not found", 404)
    if not await user_has_vendor_access(db, user, vendor_id):
        raise ReportingError(NO_VENDOR_ACCESS, 403)
    return vendor


# ============================================================
# Weekly reports
# ============================================================

async def get_report_by_id(db: AsyncSession, report_id: int) -> Optional[WeeklyReport]:
    result = await db.execute(
        select(WeeklyReport)
        .where(WeeklyReport.id == report_id)
        .execution_options(populate_existing=True)
    )
    return result.unique().scalar_one_or_none()


async def get_weekly_report(db: AsyncSession, vendor_id: int, week_start: date) -> Optional[WeeklyReport]:
    result = await db.execute(
        select(WeeklyReport).where(
            WeeklyReport.vendor_id == vendor_id,
            WeeklyReport.week_start == get_week_start(week_start),
        )
    )
    return result.unique().scalar_one_or_none()


async def get_previous_week_focus(db: AsyncSession, vendor_id: int, week_start: date) -> List[dict]:
    """Last week's focus items, offered as new (not carried over) items"""
    previous = await get_weekly_report(db, vendor_id, get_week_start(week_start) - timedelta(days=7))
    if previous is None:
        return []
    return [
        {"id": None, "description": f.description, "is_carried_over": False, "sort_order": f.sort_order}
        for f in previous.focus_items
    ]


async def get_report_for_week(db: AsyncSession, vendor_id: int, week_start: date) -> dict:
    report = await get_weekly_report(db, vendor_id, week_start)
    previous_focus = await get_previous_week_focus(db, vendor_id, week_start) if report is None else []
    return {"report": report, "previous_week_focus": previous_focus, "is_new": report is None}


def _sync_items(existing: Sequence, items: List[dict], factory: Type, fields: Tuple[str, ...]) -> list:
    """Keep rows whose id is sent (updated in place), create the rest"""
    by_id = {row.id: row for row in existing}
    synced = []
    for item in items:
        row = by_id.get(item.get("id"))
        if row is None:
            row = factory()
        for name in fields:
            if name in item:
                setattr(row, name, item[name])
        synced.append(row)
    return synced


async def upsert_weekly_report(
    db: AsyncSession,
    vendor_id: int,
    week_start: date,
    rag_status: Optional[str] = None,
    achievements: Optional[List[dict]] = None,
    focus_items: Optional[List[dict]] = None,
) -> WeeklyReport:
    week_start = get_week_start(week_start)
    report = await get_weekly_report(db, vendor_id, week_start)
    if report is not None and report.status == "submitted":
        raise ReportingError("Submitted reports cannot be edited")

    try:
        if report is None:
            report = WeeklyReport(vendor_id=vendor_id, week_start=week_start, status="draft")
            db.add(report)
        report.rag_status = rag_status or None

        # Rows missing from the payload are removed by delete-orphan
        if achievements is not None:
            report.achievements = _sync_items(
                report.achievements, achievements, WeeklyReportAchievement,
                ("description", "status", "is_from_focus", "sort_order"),
            )
        if focus_items is not None:
            report.focus_items = _sync_items(
                report.focus_items, focus_items, WeeklyReportFocus,
                ("description", "is_carried_over", "sort_order"),
            )
        report.updated_at = datetime.utcnow()
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    return await get_report_by_id(db, report.id)


def validate_report_for_submission(report: WeeklyReport) -> dict:
    errors = []
    warnings = []
    if not report.rag_status:
        errors.append({"field": "rag_status", "message": "Overall status (RAG) is required"})
    if not report.achievements:
        warnings.append({"field": "achievements", "message": "No achievements recorded this week"})
    return {"valid": not errors, "errors": errors, "warnings": warnings}


async def submit_weekly_report(db: AsyncSession, vendor_id: int, week_start: date) -> WeeklyReport:
    report = await get_weekly_report(db, vendor_id, week_start)
    if report is None:
        raise ReportingError("Report not found", 404)
    if report.status == "submitted":
        raise ReportingError("Report is already submitted")
    if not report.rag_status:
        raise ReportingError("RAG status must be selected before submission")

    report.status = "submitted"
    report.submitted_at = datetime.utcnow()
    await db.commit()
    logger.info(f"📝 Weekly report submitted: vendor {vendor_id}, week {report.week_start}")
    return await get_report_by_id(db, report.id)


async def list_report_history(
    db: AsyncSession,
    user: User,
    vendor_ids: Optional[List[int]] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[WeeklyReport], int]:
    query = select(WeeklyReport)
    if not has_full_access(user):
        assigned = select(DeliveryManagerVendor.vendor_id).where(DeliveryManagerVendor.user_id == user.id)
        query = query.where(WeeklyReport.vendor_id.in_(assigned))
    if vendor_ids:
        query = query.where(WeeklyReport.vendor_id.in_(vendor_ids))
    if start_date:
        query = query.where(WeeklyReport.week_start >= start_date)
    if end_date:
        query = query.where(WeeklyReport.week_start <= end_date)
    if status:
        query = query.where(WeeklyReport.status == status)

    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    query = query.order_by(WeeklyReport.week_start.desc(), WeeklyReport.id.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.unique().scalars().all()), total


# ============================================================
# Timeline / RAID / resources (kept per vendor, not per week)
# ============================================================

async def list_vendor_items(db: AsyncSession, model: Type, vendor_id: int) -> list:
    result = await db.execute(
        select(model).where(model.vendor_id == vendor_id).order_by(model.sort_order, model.id)
    )
    return list(result.scalars().all())


async def create_vendor_item(db: AsyncSession, model: Type, vendor_id: int, data: dict):
    if data.get("sort_order") is None:
        count_result = await db.execute(select(func.count(model.id)).where(model.vendor_id == vendor_id))
        data["sort_order"] = count_result.scalar() or 0
    item = model(vendor_id=vendor_id, **data)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


async def get_vendor_item(db: AsyncSession, model: Type, vendor_id: int, item_id: int):
    item = await db.get(model, item_id)
    if item is None or item.vendor_id != vendor_id:
        raise ReportingError("Item not found", 404)
    return item


async def update_vendor_item(db: AsyncSession, model: Type, vendor_id: int, item_id: int, data: dict):
    item = await get_vendor_item(db, model, vendor_id, item_id)
    for key, value in data.items():
        setattr(item, key, value)
    await db.commit()
    await db.refresh(item)
    return item


async def delete_vendor_item(db: AsyncSession, model: Type, vendor_id: int, item_id: int) -> None:
    item = await get_vendor_item(db, model, vendor_id, item_id)
    await db.delete(item)
    await db.commit()

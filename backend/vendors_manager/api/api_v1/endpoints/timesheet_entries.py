"""Timesheet entries: one row per team member and day"""

import calendar
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import TeamMember, TimesheetEntry, User
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.team_member import (
    TimesheetBulkUpsert,
    TimesheetCalendar,
    TimesheetCalendarDay,
    TimesheetEntryResponse,
    TimesheetEntryUpsert,
)

logger = get_logger(__name__)

router = APIRouter()


def month_bounds(year: int, month: int):
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


async def get_entry(db: AsyncSession, team_member_id: int, day: date) -> Optional[TimesheetEntry]:
    result = await db.execute(
        select(TimesheetEntry).where(TimesheetEntry.team_member_id == team_member_id, TimesheetEntry.date == day)
    )
    return result.unique().scalar_one_or_none()


async def apply_entry(db: AsyncSession, entry_in: TimesheetEntryUpsert) -> Optional[TimesheetEntry]:
    """Create, update or clear the day; returns None when cleared"""
    entry = await get_entry(db, entry_in.team_member_id, entry_in.date)
    if entry_in.hours is None and entry_in.time_off_code is None:
        if entry is not None:
            await db.delete(entry)
        return None
    if entry is None:
        entry = TimesheetEntry(team_member_id=entry_in.team_member_id, date=entry_in.date)
        db.add(entry)
    entry.hours = entry_in.hours
    entry.time_off_code = entry_in.time_off_code
    return entry


async def ensure_members_exist(db: AsyncSession, member_ids) -> None:
    ids = set(member_ids)
    result = await db.execute(select(TeamMember.id).where(TeamMember.id.in_(ids)))
    missing = ids - set(result.scalars().all())
    if missing:
        raise HTTPException(status_code=404, detail=f"Team member not found: {', '.join(map(str, sorted(missing)))}")


@router.get("/", response_model=ListResponse[TimesheetEntryResponse])
async def list_entries(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    team_member_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
) -> Any:
    """month/year take precedence over an explicit date range"""
    query = select(TimesheetEntry)
    if team_member_id is not None:
        query = query.where(TimesheetEntry.team_member_id == team_member_id)
    if year is not None and month is not None:
        start_date, end_date = month_bounds(year, month)
    if start_date:
        query = query.where(TimesheetEntry.date >= start_date)
    if end_date:
        query = query.where(TimesheetEntry.date <= end_date)

    result = await db.execute(query.order_by(TimesheetEntry.date, TimesheetEntry.team_member_id))
    entries = result.unique().scalars().all()
    return ListResponse(data=[TimesheetEntryResponse.model_validate(e) for e in entries], total=len(entries))


@router.put("/", response_model=ApiResponse[TimesheetEntryResponse])
async def upsert_entry(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    entry_in: TimesheetEntryUpsert,
) -> Any:
    await ensure_members_exist(db, [entry_in.team_member_id])
    entry = await apply_entry(db, entry_in)
    await db.commit()
    if entry is None:
        return ApiResponse(data=None, message="Entry cleared")
    await db.refresh(entry)
    return ApiResponse(data=TimesheetEntryResponse.model_validate(entry), message="Entry saved")


@router.put("/bulk", response_model=ApiResponse[List[TimesheetEntryResponse]])
async def bulk_upsert_entries(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    body: TimesheetBulkUpsert,
) -> Any:
    """All entries are saved in one transaction; the last one wins for a repeated day"""
    await ensure_members_exist(db, [e.team_member_id for e in body.entries])
    saved = {}
    for entry_in in body.entries:
        key = (entry_in.team_member_id, entry_in.date)
        entry = await apply_entry(db, entry_in)
        await db.flush()
        if entry is None:
            saved.pop(key, None)
        else:
            saved[key] = entry
    await db.commit()
    for entry in saved.values():
        await db.refresh(entry)

    logger.info(f"🕒 {len(body.entries)} timesheet entries processed")
    return ApiResponse(
        data=[TimesheetEntryResponse.model_validate(e) for e in saved.values()],
        message=f"{len(saved)} entries saved",
    )


@router.get("/calendar/{team_member_id}", response_model=ApiResponse[TimesheetCalendar])
async def member_calendar(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    team_member_id: int,
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
) -> Any:
    """Every day of the month, filled in where an entry exists"""
    await ensure_members_exist(db, [team_member_id])
    start, end = month_bounds(year, month)
    result = await db.execute(
        select(TimesheetEntry).where(
            TimesheetEntry.team_member_id == team_member_id,
            TimesheetEntry.date >= start,
            TimesheetEntry.date <= end,
        )
    )
    by_day = {e.date: e for e in result.unique().scalars().all()}

    days = []
    total_hours = 0.0
    days_off = 0
    for day_number in range(1, end.day + 1):
        day = date(year, month, day_number)
        entry = by_day.get(day)
        hours = float(entry.hours) if entry and entry.hours is not None else None
        code = entry.time_off_code if entry else None
        total_hours += hours or 0
        if code:
            days_off += 1
        days.append(TimesheetCalendarDay(
            date=day,
            weekday=day.weekday(),
            is_weekend=day.weekday() >= 5,
            hours=hours,
            time_off_code=code,
        ))

    return ApiResponse(data=TimesheetCalendar(
        team_member_id=team_member_id,
        year=year,
        month=month,
        days=days,
        total_hours=round(total_hours, 2),
        days_off=days_off,
    ))


@router.delete("/{entry_id}", response_model=MessageResponse)
async def delete_entry(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    entry_id: int,
) -> Any:
    entry = await db.get(TimesheetEntry, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Timesheet entry not found")
    await db.delete(entry)
    await db.commit()
    return MessageResponse(message="Entry deleted")

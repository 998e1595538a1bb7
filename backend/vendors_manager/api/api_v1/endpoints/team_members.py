"""Team members"""

from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import Role, TeamMember, User, Vendor
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.team_member import (
    TeamMemberCreate,
    TeamMemberResponse,
    TeamMemberStats,
    TeamMemberUpdate,
)

logger = get_logger(__name__)

router = APIRouter()

DUPLICATE_EMAIL = "A team member with this email already exists"


def build_member_response(member: TeamMember) -> TeamMemberResponse:
    response = TeamMemberResponse.model_validate(member)
    response.vendor_name = member.vendor.name if member.vendor else ""
    response.role_name = member.role.name if member.role else ""
    return response


async def get_member_or_404(db: AsyncSession, member_id: int) -> TeamMember:
    member = await db.get(TeamMember, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return member


async def email_taken(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    query = select(TeamMember.id).where(TeamMember.email == email)
    if exclude_id is not None:
        query = query.where(TeamMember.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def ensure_references(db: AsyncSession, vendor_id: Optional[int], role_id: Optional[int]) -> None:
    if vendor_id is not None and await db.get(Vendor, vendor_id) is None:
        raise HTTPException(status_code=404, detail="Vendor not found")
    if role_id is not None and await db.get(Role, role_id) is None:
        raise HTTPException(status_code=404, detail="Role not found")


@router.get("/", response_model=ListResponse[TeamMemberResponse])
async def list_team_members(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    vendor_id: Optional[int] = Query(None),
    role_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None, pattern="^(active|inactive|onboarding|offboarded)$"),
    search: Optional[str] = Query(None, description="Name or e-mail"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> Any:
    query = select(TeamMember)
    if vendor_id is not None:
        query = query.where(TeamMember.vendor_id == vendor_id)
    if role_id is not None:
        query = query.where(TeamMember.role_id == role_id)
    if status:
        query = query.where(TeamMember.status == status)
    if search:
        query = query.where(or_(
            TeamMember.first_name.contains(search),
            TeamMember.last_name.contains(search),
            TeamMember.email.contains(search.lower()),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(TeamMember.last_name, TeamMember.first_name).offset(offset).limit(limit)
    )
    members = result.unique().scalars().all()
    return ListResponse(data=[build_member_response(m) for m in members], total=total)


@router.get("/stats", response_model=ApiResponse[TeamMemberStats])
async def team_member_stats(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    vendor_id: Optional[int] = Query(None),
) -> Any:
    status_query = select(TeamMember.status, func.count(TeamMember.id)).group_by(TeamMember.status)
    rate_query = select(TeamMember.daily_rate)
    if vendor_id is not None:
        status_query = status_query.where(TeamMember.vendor_id == vendor_id)
        rate_query = rate_query.where(TeamMember.vendor_id == vendor_id)

    by_status = dict((await db.execute(status_query)).all())
    rates = [Decimal(str(r)) for r in (await db.execute(rate_query)).scalars().all()]
    average = sum(rates, Decimal("0")) / len(rates) if rates else Decimal("0")
    return ApiResponse(data=TeamMemberStats(
        total=sum(by_status.values()),
        by_status=by_status,
        average_daily_rate=float(round(average, 2)),
    ))


@router.post("/", response_model=ApiResponse[TeamMemberResponse], status_code=201)
async def create_team_member(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    member_in: TeamMemberCreate,
) -> Any:
    await ensure_references(db, member_in.vendor_id, member_in.role_id)
    email = member_in.email.lower()
    if await email_taken(db, email):
        raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)

    member = TeamMember(**member_in.model_dump())
    member.email = email
    member.currency = member.currency.upper()
    db.add(member)
    await db.commit()
    await db.refresh(member)
    logger.info(f"👥 Team member created: {member.full_name}")
    return ApiResponse(data=build_member_response(member), message="Team member created")


@router.get("/{member_id}", response_model=ApiResponse[TeamMemberResponse])
async def get_team_member(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    member_id: int,
) -> Any:
    return ApiResponse(data=build_member_response(await get_member_or_404(db, member_id)))


@router.put("/{member_id}", response_model=ApiResponse[TeamMemberResponse])
async def update_team_member(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    member_id: int,
    member_in: TeamMemberUpdate,
) -> Any:
    member = await get_member_or_404(db, member_id)
    update_data = member_in.model_dump(exclude_unset=True)
    await ensure_references(db, update_data.get("vendor_id"), update_data.get("role_id"))

    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()
        if await email_taken(db, update_data["email"], exclude_id=member.id):
            raise HTTPException(status_code=409, detail=DUPLICATE_EMAIL)

    start = update_data.get("start_date") or member.start_date
    end = update_data["end_date"] if "end_date" in update_data else member.end_date
    if end and end < start:
        raise HTTPException(status_code=400, detail="End date must be on or after start date")

    for field, value in update_data.items():
        if value is None and field not in ("end_date", "planned_utilization"):
            continue
        setattr(member, field, value)
    member.currency = member.currency.upper()

    await db.commit()
    await db.refresh(member)
    return ApiResponse(data=build_member_response(member), message="Team member updated")


@router.delete("/{member_id}", response_model=MessageResponse)
async def delete_team_member(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    member_id: int,
) -> Any:
    """Timesheet entries of the member are removed with it"""
    member = await get_member_or_404(db, member_id)
    await db.delete(member)
    await db.commit()
    return MessageResponse(message="Team member deleted")

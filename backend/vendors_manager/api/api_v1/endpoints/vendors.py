"""Vendor management"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import Contract, Tag, TeamMember, User, Vendor
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.vendor import TagResponse, VendorCreate, VendorResponse, VendorStats, VendorUpdate

logger = get_logger(__name__)

router = APIRouter()

REQUIRED_FIELDS = ("name", "status")


async def get_or_create_tags(db: AsyncSession, names: List[str]) -> List[Tag]:
    """Tags are matched by name and created on demand"""
    cleaned = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
    if not cleaned:
        return []
    result = await db.execute(select(Tag).where(Tag.name.in_(cleaned)))
    existing = {t.name: t for t in result.scalars().all()}
    tags = []
    for name in cleaned:
        tag = existing.get(name)
        if tag is None:
            tag = Tag(name=name)
            db.add(tag)
        tags.append(tag)
    return tags


async def get_vendor_or_404(db: AsyncSession, vendor_id: int) -> Vendor:
    vendor = await db.get(Vendor, vendor_id)
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return vendor


@router.get("/", response_model=ListResponse[VendorResponse])
async def list_vendors(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    search: Optional[str] = Query(None, description="Name, location or service"),
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    tag: Optional[str] = Query(None, description="Tag name"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> Any:
    query = select(Vendor)
    if search:
        query = query.where(or_(
            Vendor.name.contains(search),
            Vendor.location.contains(search),
            Vendor.service_description.contains(search),
        ))
    if status:
        query = query.where(Vendor.status == status)
    if tag:
        query = query.where(Vendor.tags.any(Tag.name == tag))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(query.order_by(Vendor.name).offset(offset).limit(limit))
    vendors = result.scalars().all()
    return ListResponse(data=[VendorResponse.model_validate(v) for v in vendors], total=total)


@router.get("/stats", response_model=ApiResponse[VendorStats])
async def vendor_stats(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
) -> Any:
    counts = dict((await db.execute(select(Vendor.status, func.count(Vendor.id)).group_by(Vendor.status))).all())
    members = (await db.execute(select(func.count(TeamMember.id)))).scalar() or 0
    contracts = (await db.execute(select(func.count(Contract.id)).where(Contract.status == "active"))).scalar() or 0
    return ApiResponse(data=VendorStats(
        total_vendors=sum(counts.values()),
        active_vendors=counts.get("active", 0),
        inactive_vendors=counts.get("inactive", 0),
        total_team_members=members,
        active_contracts=contracts,
    ))


@router.get("/tags", response_model=ListResponse[TagResponse])
async def list_tags(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
) -> Any:
    tags = (await db.execute(select(Tag).order_by(Tag.name))).scalars().all()
    return ListResponse(data=[TagResponse.model_validate(t) for t in tags], total=len(tags))


@router.post("/", response_model=ApiResponse[VendorResponse], status_code=201)
async def create_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    vendor_in: VendorCreate,
) -> Any:
    data = vendor_in.model_dump(exclude={"tags"})
    vendor = Vendor(**data, tags=await get_or_create_tags(db, vendor_in.tags))
    db.add(vendor)
    await db.commit()
    await db.refresh(vendor)
    logger.info(f"🏢 Vendor created: {vendor.name}")
    return ApiResponse(data=VendorResponse.model_validate(vendor), message="Vendor created")


@router.get("/{vendor_id}", response_model=ApiResponse[VendorResponse])
async def get_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    vendor_id: int,
) -> Any:
    return ApiResponse(data=VendorResponse.model_validate(await get_vendor_or_404(db, vendor_id)))


@router.put("/{vendor_id}", response_model=ApiResponse[VendorResponse])
async def update_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    vendor_id: int,
    vendor_in: VendorUpdate,
) -> Any:
    vendor = await get_vendor_or_404(db, vendor_id)
    update_data = vendor_in.model_dump(exclude_unset=True)
    if "tags" in update_data:
        vendor.tags = await get_or_create_tags(db, update_data.pop("tags") or [])
    for field, value in update_data.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(vendor, field, value)

    await db.commit()
    await db.refresh(vendor)
    return ApiResponse(data=VendorResponse.model_validate(vendor), message="Vendor updated")


@router.delete("/{vendor_id}", response_model=MessageResponse)
async def delete_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    vendor_id: int,
) -> Any:
    """Contracts, invoices, team members and reports of the vendor go with it"""
    vendor = await get_vendor_or_404(db, vendor_id)
    await db.delete(vendor)
    await db.commit()
    logger.info(f"🗑️ Vendor deleted: {vendor.name}")
    return MessageResponse(message="Vendor deleted")

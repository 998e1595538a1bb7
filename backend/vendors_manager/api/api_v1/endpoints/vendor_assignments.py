"""Vendor assignments: which users report on which vendors (admin only)"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_admin
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import DeliveryManagerVendor, User, Vendor
from vendors_manager.schemas.access_control import VendorAssignmentCreate, VendorAssignmentResponse
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse

logger = get_logger(__name__)

router = APIRouter()


def build_assignment_response(assignment: DeliveryManagerVendor) -> VendorAssignmentResponse:
    return VendorAssignmentResponse(
        id=assignment.id,
        user_id=assignment.user_id,
        vendor_id=assignment.vendor_id,
        assigned_by=assignment.assigned_by,
        user_name=assignment.user.name,
        user_email=assignment.user.email,
        vendor_name=assignment.vendor.name,
        created_at=assignment.created_at,
    )


@router.get("/", response_model=ListResponse[VendorAssignmentResponse])
async def list_assignments(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    user_id: Optional[int] = Query(None),
    vendor_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="User name/e-mail or vendor name"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> Any:
    query = (
        select(DeliveryManagerVendor)
        .join(User, User.id == DeliveryManagerVendor.user_id)
        .join(Vendor, Vendor.id == DeliveryManagerVendor.vendor_id)
    )
    if user_id is not None:
        query = query.where(DeliveryManagerVendor.user_id == user_id)
    if vendor_id is not None:
        query = query.where(DeliveryManagerVendor.vendor_id == vendor_id)
    if search:
        query = query.where(or_(
            User.name.contains(search),
            User.email.contains(search),
            Vendor.name.contains(search),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(DeliveryManagerVendor.created_at.desc(), DeliveryManagerVendor.id.desc())
        .offset(offset).limit(limit)
    )
    assignments = result.unique().scalars().all()
    return ListResponse(data=[build_assignment_response(a) for a in assignments], total=total)


@router.post("/", response_model=ApiResponse[VendorAssignmentResponse], status_code=201)
async def create_assignment(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    body: VendorAssignmentCreate,
) -> Any:
    if body.user_id is None or body.vendor_id is None:
        raise HTTPException(status_code=400, detail="User ID and Vendor ID are required")

    user = await db.get(User, body.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Cannot assign vendor to inactive user")

    vendor = await db.get(Vendor, body.vendor_id)
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor not found")
    if vendor.status != "active":
        raise HTTPException(status_code=400, detail="Cannot assign inactive vendor to user")

    existing = await db.execute(
        select(DeliveryManagerVendor.id).where(
            DeliveryManagerVendor.user_id == user.id,
            DeliveryManagerVendor.vendor_id == vendor.id,
        )
    )
    if existing.first() is not None:
        raise HTTPException(status_code=409, detail="This user is already assigned to this vendor")

    assignment = DeliveryManagerVendor(user_id=user.id, vendor_id=vendor.id, assigned_by=current_user.id)
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    logger.info(f"🔗 {vendor.name} assigned to {user.email}")
    return ApiResponse(data=build_assignment_response(assignment), message="Vendor assigned")


@router.delete("/{assignment_id}", response_model=MessageResponse)
async def delete_assignment(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    assignment_id: int,
) -> Any:
    assignment = await db.get(DeliveryManagerVendor, assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    await db.delete(assignment)
    await db.commit()
    return MessageResponse(message="Assignment removed")

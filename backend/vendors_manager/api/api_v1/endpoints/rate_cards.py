"""Rate cards: agreed daily rate per vendor and role"""

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.models import RateCard, Role, User, Vendor
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.rate_card import RateCardCreate, RateCardResponse, RateCardUpdate

router = APIRouter()


def build_rate_card_response(card: RateCard) -> RateCardResponse:
    response = RateCardResponse.model_validate(card)
    response.vendor_name = card.vendor.name if card.vendor else ""
    response.role_name = card.role.name if card.role else ""
    return response


async def get_rate_card_or_404(db: AsyncSession, rate_card_id: int) -> RateCard:
    card = await db.get(RateCard, rate_card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Rate card not found")
    return card


@router.get("/", response_model=ListResponse[RateCardResponse])
async def list_rate_cards(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    vendor_id: Optional[int] = Query(None),
    role_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> Any:
    query = select(RateCard)
    if vendor_id is not None:
        query = query.where(RateCard.vendor_id == vendor_id)
    if role_id is not None:
        query = query.where(RateCard.role_id == role_id)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(RateCard.vendor_id, RateCard.role_id, RateCard.effective_from.desc())
        .offset(offset).limit(limit)
    )
    cards = result.unique().scalars().all()
    return ListResponse(data=[build_rate_card_response(c) for c in cards], total=total)


@router.get("/current", response_model=ApiResponse[RateCardResponse])
async def current_rate_card(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    vendor_id: int = Query(...),
    role_id: int = Query(...),
    on: Optional[date] = Query(None, description="Defaults to today"),
) -> Any:
    """Latest rate card in effect on the given day"""
    day = on or date.today()
    result = await db.execute(
        select(RateCard)
        .where(
            RateCard.vendor_id == vendor_id,
            RateCard.role_id == role_id,
            RateCard.effective_from <= day,
            or_(RateCard.effective_to.is_(None), RateCard.effective_to >= day),
        )
        .order_by(RateCard.effective_from.desc())
        .limit(1)
    )
    card = result.unique().scalar_one_or_none()
    if not card:
        raise HTTPException(status_code=404, detail="No rate card in effect for this vendor and role")
    return ApiResponse(data=build_rate_card_response(card))


@router.post("/", response_model=ApiResponse[RateCardResponse], status_code=201)
async def create_rate_card(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    card_in: RateCardCreate,
) -> Any:
    if await db.get(Vendor, card_in.vendor_id) is None:
        raise HTTPException(status_code=404, detail="Vendor not found")
    if await db.get(Role, card_in.role_id) is None:
        raise HTTPException(status_code=404, detail="Role not found")

    card = RateCard(**card_in.model_dump())
    card.currency = card.currency.upper()
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return ApiResponse(data=build_rate_card_response(card), message="Rate card created")


@router.get("/{rate_card_id}", response_model=ApiResponse[RateCardResponse])
async def get_rate_card(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    rate_card_id: int,
) -> Any:
    return ApiResponse(data=build_rate_card_response(await get_rate_card_or_404(db, rate_card_id)))


@router.put("/{rate_card_id}", response_model=ApiResponse[RateCardResponse])
async def update_rate_card(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    rate_card_id: int,
    card_in: RateCardUpdate,
) -> Any:
    card = await get_rate_card_or_404(db, rate_card_id)
    update_data = card_in.model_dump(exclude_unset=True)

    start = update_data.get("effective_from") or card.effective_from
    end = update_data["effective_to"] if "effective_to" in update_data else card.effective_to
    if end and end < start:
        raise HTTPException(status_code=400, detail="Effective to must be on or after effective from")

    for field, value in update_data.items():
        if value is None and field not in ("effective_to", "notes"):
            continue
        setattr(card, field, value)
    card.currency = card.currency.upper()

    await db.commit()
    await db.refresh(card)
    return ApiResponse(data=build_rate_card_response(card), message="Rate card updated")


@router.delete("/{rate_card_id}", response_model=MessageResponse)
async def delete_rate_card(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    rate_card_id: int,
) -> Any:
    card = await get_rate_card_or_404(db, rate_card_id)
    await db.delete(card)
    await db.commit()
    return MessageResponse(message="Rate card deleted")

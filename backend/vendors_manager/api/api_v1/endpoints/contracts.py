"""Contracts"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import Contract, User, Vendor
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.contract import ContractCreate, ContractResponse, ContractStats, ContractUpdate
from vendors_manager.services.contracts import (
    EXPIRING_SOON_DAYS,
    days_until_expiration,
    get_auto_status,
    get_contract_stats,
    get_expiration_status,
    get_expiring_contracts,
)

logger = get_logger(__name__)

router = APIRouter()

# Explicit nulls are ignored for NOT NULL columns
REQUIRED_FIELDS = ("vendor_id", "title", "start_date", "end_date", "value", "currency", "status")


def build_contract_response(contract: Contract) -> ContractResponse:
    response = ContractResponse.model_validate(contract)
    response.vendor_name = contract.vendor.name if contract.vendor else ""
    response.days_until_expiration = days_until_expiration(contract.end_date)
    response.expiration_status = get_expiration_status(contract.end_date)
    return response


async def get_contract_or_404(db: AsyncSession, contract_id: int) -> Contract:
    contract = await db.get(Contract, contract_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Contract not found")
    return contract


async def ensure_vendor_exists(db: AsyncSession, vendor_id: int) -> None:
    if await db.get(Vendor, vendor_id) is None:
        raise HTTPException(status_code=404, detail="Vendor not found")


@router.get("/", response_model=ListResponse[ContractResponse])
async def list_contracts(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    vendor_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None, pattern="^(draft|active|expired|terminated)$"),
    search: Optional[str] = Query(None, description="Contract title"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> Any:
    query = select(Contract)
    if vendor_id is not None:
        query = query.where(Contract.vendor_id == vendor_id)
    if status:
        query = query.where(Contract.status == status)
    if search:
        query = query.where(Contract.title.contains(search))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(query.order_by(Contract.end_date).offset(offset).limit(limit))
    contracts = result.unique().scalars().all()
    return ListResponse(data=[build_contract_response(c) for c in contracts], total=total)


@router.get("/stats", response_model=ApiResponse[ContractStats])
async def contract_stats(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
) -> Any:
    return ApiResponse(data=ContractStats(**await get_contract_stats(db)))


@router.get("/expiring", response_model=ListResponse[ContractResponse])
async def expiring_contracts(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    days: int = Query(EXPIRING_SOON_DAYS, ge=1, le=365),
) -> Any:
    contracts = await get_expiring_contracts(db, days)
    return ListResponse(data=[build_contract_response(c) for c in contracts], total=len(contracts))


@router.post("/", response_model=ApiResponse[ContractResponse], status_code=201)
async def create_contract(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    contract_in: ContractCreate,
) -> Any:
    await ensure_vendor_exists(db, contract_in.vendor_id)
    contract = Contract(**contract_in.model_dump())
    contract.currency = contract.currency.upper()
    contract.status = get_auto_status(contract.status, contract.end_date)
    db.add(contract)
    await db.commit()
    await db.refresh(contract)
    logger.info(f"📄 Contract created: {contract.title}")
    return ApiResponse(data=build_contract_response(contract), message="Contract created")


@router.get("/{contract_id}", response_model=ApiResponse[ContractResponse])
async def get_contract(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    contract_id: int,
) -> Any:
    return ApiResponse(data=build_contract_response(await get_contract_or_404(db, contract_id)))


@router.put("/{contract_id}", response_model=ApiResponse[ContractResponse])
async def update_contract(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    contract_id: int,
    contract_in: ContractUpdate,
) -> Any:
    contract = await get_contract_or_404(db, contract_id)
    update_data = contract_in.model_dump(exclude_unset=True)
    if update_data.get("vendor_id") is not None and update_data["vendor_id"] != contract.vendor_id:
        await ensure_vendor_exists(db, update_data["vendor_id"])

    start = update_data.get("start_date") or contract.start_date
    end = update_data.get("end_date") or contract.end_date
    if end < start:
        raise HTTPException(status_code=400, detail="End date must be on or after start date")

    for field, value in update_data.items():
        if value is None and field in REQUIRED_FIELDS:
            continue
        setattr(contract, field, value)
    contract.currency = contract.currency.upper()
    contract.status = get_auto_status(contract.status, contract.end_date)

    await db.commit()
    await db.refresh(contract)
    return ApiResponse(data=build_contract_response(contract), message="Contract updated")


@router.post("/{contract_id}/activate", response_model=ApiResponse[ContractResponse])
async def activate_contract(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    contract_id: int,
) -> Any:
    contract = await get_contract_or_404(db, contract_id)
    if contract.status != "draft":
        raise HTTPException(status_code=400, detail="Only draft contracts can be activated")
    if days_until_expiration(contract.end_date) < 0:
        raise HTTPException(status_code=400, detail="Contract end date has already passed")
    contract.status = "active"
    await db.commit()
    await db.refresh(contract)
    return ApiResponse(data=build_contract_response(contract), message="Contract activated")


@router.post("/{contract_id}/terminate", response_model=ApiResponse[ContractResponse])
async def terminate_contract(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    contract_id: int,
) -> Any:
    contract = await get_contract_or_404(db, contract_id)
    if contract.status == "terminated":
        raise HTTPException(status_code=400, detail="Contract is already terminated")
    contract.status = "terminated"
    await db.commit()
    await db.refresh(contract)
    logger.info(f"📄 Contract terminated: {contract.title}")
    return ApiResponse(data=build_contract_response(contract), message="Contract terminated")


@router.delete("/{contract_id}", response_model=MessageResponse)
async def delete_contract(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    contract_id: int,
) -> Any:
    contract = await get_contract_or_404(db, contract_id)
    await db.delete(contract)
    await db.commit()
    return MessageResponse(message="Contract deleted")

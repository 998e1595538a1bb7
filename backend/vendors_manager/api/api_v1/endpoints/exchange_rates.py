"""Exchange rates and currency conversion"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import ExchangeRate, User
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.exchange_rate import (
    ConvertRequest,
    ConvertResponse,
    ExchangeRateResponse,
    ExchangeRateUpdate,
    ExchangeRateUpsert,
)
from vendors_manager.services.currency import (
    ConversionError,
    RoundingMode,
    convert,
    get_rate,
    is_valid_currency_code,
    staleness,
)

logger = get_logger(__name__)

router = APIRouter()


def build_rate_response(rate: ExchangeRate) -> ExchangeRateResponse:
    response = ExchangeRateResponse.model_validate(rate)
    age = staleness(rate.last_updated)
    response.is_stale = age["is_stale"]
    response.stale_duration_hours = age["stale_duration_hours"]
    return response


async def get_rate_or_404(db: AsyncSession, rate_id: int) -> ExchangeRate:
    rate = await db.get(ExchangeRate, rate_id)
    if not rate:
        raise HTTPException(status_code=404, detail="Exchange rate not found")
    return rate


@router.get("/", response_model=ListResponse[ExchangeRateResponse])
async def list_rates(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    stale_only: bool = Query(False),
) -> Any:
    result = await db.execute(select(ExchangeRate).order_by(ExchangeRate.from_currency, ExchangeRate.to_currency))
    rates = [build_rate_response(r) for r in result.scalars().all()]
    if stale_only:
        rates = [r for r in rates if r.is_stale]
    return ListResponse(data=rates, total=len(rates))


@router.put("/", response_model=ApiResponse[ExchangeRateResponse])
async def upsert_rate(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    rate_in: ExchangeRateUpsert,
) -> Any:
    """Create the pair or replace its rate"""
    for code in (rate_in.from_currency, rate_in.to_currency):
        if not is_valid_currency_code(code):
            raise HTTPException(status_code=400, detail=f"Invalid currency code: {code}")

    rate = await get_rate(db, rate_in.from_currency, rate_in.to_currency)
    if rate is None:
        rate = ExchangeRate(from_currency=rate_in.from_currency, to_currency=rate_in.to_currency)
        db.add(rate)
    rate.rate = rate_in.rate
    rate.last_updated = datetime.utcnow()
    await db.commit()
    await db.refresh(rate)
    logger.info(f"💱 {rate.from_currency}->{rate.to_currency} set to {rate.rate}")
    return ApiResponse(data=build_rate_response(rate), message="Exchange rate saved")


@router.post("/convert", response_model=ApiResponse[ConvertResponse])
async def convert_amount(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    body: ConvertRequest,
) -> Any:
    try:
        result = await convert(
            db, body.amount, body.from_currency, body.to_currency,
            decimal_places=body.decimal_places,
            rounding=RoundingMode(body.rounding),
        )
    except ConversionError as e:
        raise HTTPException(status_code=404 if e.code == "RATE_NOT_FOUND" else 400, detail=e.message)

    return ApiResponse(data=ConvertResponse(
        original_amount=str(result.original_amount),
        converted_amount=str(result.converted_amount),
        from_currency=result.from_currency,
        to_currency=result.to_currency,
        exchange_rate=str(result.exchange_rate),
        rate_last_updated=result.rate_last_updated,
        formatted_original=result.formatted_original,
        formatted_converted=result.formatted_converted,
    ))


@router.get("/{rate_id}", response_model=ApiResponse[ExchangeRateResponse])
async def get_exchange_rate(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    rate_id: int,
) -> Any:
    return ApiResponse(data=build_rate_response(await get_rate_or_404(db, rate_id)))


@router.put("/{rate_id}", response_model=ApiResponse[ExchangeRateResponse])
async def update_rate(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    rate_id: int,
    rate_in: ExchangeRateUpdate,
) -> Any:
    rate = await get_rate_or_404(db, rate_id)
    rate.rate = rate_in.rate
    rate.last_updated = datetime.utcnow()
    await db.commit()
    await db.refresh(rate)
    return ApiResponse(data=build_rate_response(rate), message="Exchange rate updated")


@router.delete("/{rate_id}", response_model=MessageResponse)
async def delete_rate(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    rate_id: int,
) -> Any:
    rate = await get_rate_or_404(db, rate_id)
    await db.delete(rate)
    await db.commit()
    return MessageResponse(message="Exchange rate deleted")

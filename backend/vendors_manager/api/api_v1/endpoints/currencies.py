"""Supported currencies"""

from typing import Any

from fastapi import APIRouter, Depends

from vendors_manager.core.deps import require_view
from vendors_manager.models import User
from vendors_manager.schemas.common import ListResponse
from vendors_manager.schemas.exchange_rate import CurrencyResponse
from vendors_manager.services.currency import CURRENCIES

router = APIRouter()


@router.get("/", response_model=ListResponse[CurrencyResponse])
async def list_currencies(
    *,
    _: User = Depends(require_view),
) -> Any:
    return ListResponse(data=[CurrencyResponse(**c) for c in CURRENCIES], total=len(CURRENCIES))

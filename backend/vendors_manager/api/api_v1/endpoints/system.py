"""System maintenance (admin only)"""

from typing import Any

from fastapi import APIRouter, Depends

from vendors_manager.core.config import settings
from vendors_manager.core.deps import require_admin
from vendors_manager.models import User
from vendors_manager.schemas.common import ApiResponse, MessageResponse
from vendors_manager.services.scheduler import get_scheduler_status, run_contract_expiry, run_token_cleanup

router = APIRouter()


@router.get("/scheduler/status", response_model=ApiResponse[dict])
async def scheduler_status(
    *,
    _: User = Depends(require_admin),
) -> Any:
    """Scheduled jobs and their next run"""
    return ApiResponse(data={
        "contract_expiry": f"daily at {settings.CONTRACT_EXPIRY_HOUR:02d}:{settings.CONTRACT_EXPIRY_MINUTE:02d}",
        "token_cleanup": f"daily at {settings.TOKEN_CLEANUP_HOUR:02d}:{settings.TOKEN_CLEANUP_MINUTE:02d}",
        "scheduler": get_scheduler_status(),
    })


@router.post("/contracts/expire", response_model=MessageResponse)
async def trigger_contract_expiry(
    *,
    _: User = Depends(require_admin),
) -> Any:
    """Run the contract expiry job now"""
    count = await run_contract_expiry()
    return MessageResponse(message=f"{count} contract(s) marked as expired")


@router.post("/tokens/cleanup", response_model=MessageResponse)
async def trigger_token_cleanup(
    *,
    _: User = Depends(require_admin),
) -> Any:
    count = await run_token_cleanup()
    return MessageResponse(message=f"{count} token(s) removed")

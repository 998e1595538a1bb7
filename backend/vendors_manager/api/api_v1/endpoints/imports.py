"""CSV import of team members: preview, confirm, template"""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.models import User
from vendors_manager.schemas.common import ApiResponse
from vendors_manager.schemas.csv_import import (
    ImportConfirmRequest,
    ImportPreviewRequest,
    ImportPreviewResponse,
    ImportResultResponse,
)
from vendors_manager.services.csv_import import execute_import, generate_preview, generate_template

router = APIRouter()


@router.post("/team-members/preview", response_model=ApiResponse[ImportPreviewResponse])
async def preview_team_member_import(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    body: ImportPreviewRequest,
) -> Any:
    """Map headers, validate every row and flag duplicates without writing anything"""
    preview = await generate_preview(db, body.csv_content)
    return ApiResponse(data=ImportPreviewResponse(**asdict(preview)))


@router.post("/team-members/confirm", response_model=ApiResponse[ImportResultResponse])
async def confirm_team_member_import(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    body: ImportConfirmRequest,
) -> Any:
    if body.vendor_id is None:
        raise HTTPException(status_code=400, detail="Vendor ID is required")

    result = await execute_import(
        db,
        body.csv_content,
        body.vendor_id,
        skip_duplicates=body.skip_duplicates,
        update_existing=body.update_existing,
    )
    if result.success:
        message = (
            f"Imported {result.created} new, updated {result.updated}, "
            f"skipped {result.skipped}, failed {result.failed}"
        )
    elif result.failed:
        message = f"Import completed with {result.failed} failures"
    else:
        # vendor missing or required columns absent
        message = result.errors[0]["error"] if result.errors else "Import failed"
    return ApiResponse(success=result.success, data=ImportResultResponse(**asdict(result)), message=message)


@router.get("/team-members/template")
async def download_template(
    *,
    _: User = Depends(require_view),
) -> Any:
    return Response(
        content=generate_template(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="team_members_template.csv"'},
    )

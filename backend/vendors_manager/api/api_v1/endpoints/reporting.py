"""Weekly delivery reports and per-vendor timeline, RAID log and resource links

Non-admin users only see the vendors assigned to them.
"""

from contextlib import contextmanager
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.models import User, VendorRaidItem, VendorResourceItem, VendorTimelineMilestone, WeeklyReport
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.reporting import (
    FocusItem,
    MilestoneCreate,
    MilestoneResponse,
    MilestoneUpdate,
    RaidItemCreate,
    RaidItemResponse,
    RaidItemUpdate,
    ReportingVendor,
    ResourceItemCreate,
    ResourceItemResponse,
    ResourceItemUpdate,
    SubmissionCheck,
    WeeklyReportResponse,
    WeeklyReportSubmit,
    WeeklyReportUpsert,
    WeeklyReportView,
)
from vendors_manager.services import reporting as service
from vendors_manager.services.reporting import ReportingError

router = APIRouter()


@contextmanager
def reporting_errors():
    try:
        yield
    except ReportingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


def build_report_response(report: WeeklyReport) -> WeeklyReportResponse:
    response = WeeklyReportResponse.model_validate(report)
    response.vendor_name = report.vendor.name if report.vendor else ""
    return response


@router.get("/vendors", response_model=ListResponse[ReportingVendor])
async def list_reporting_vendors(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_view),
) -> Any:
    vendors = await service.get_assigned_vendors(db, current_user)
    return ListResponse(data=[ReportingVendor.model_validate(v) for v in vendors], total=len(vendors))


@router.get("/reports", response_model=ApiResponse[WeeklyReportView])
async def get_report(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_view),
    vendor_id: int = Query(...),
    week_start: Optional[date] = Query(None, description="Any day of the week; defaults to this week"),
) -> Any:
    """The week's report, or last week's focus items to start a new one"""
    week = service.get_week_start(week_start or date.today())
    with reporting_errors():
        await service.ensure_vendor_access(db, current_user, vendor_id)
    view = await service.get_report_for_week(db, vendor_id, week)
    return ApiResponse(data=WeeklyReportView(
        report=build_report_response(view["report"]) if view["report"] else None,
        previous_week_focus=[FocusItem(**f) for f in view["previous_week_focus"]],
        is_new=view["is_new"],
        week_start=week,
    ))


@router.put("/reports", response_model=ApiResponse[WeeklyReportResponse])
async def save_report(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_write),
    body: WeeklyReportUpsert,
) -> Any:
    with reporting_errors():
        await service.ensure_vendor_access(db, current_user, body.vendor_id)
        report = await service.upsert_weekly_report(
            db,
            body.vendor_id,
            body.week_start,
            rag_status=body.rag_status,
            achievements=[a.model_dump() for a in body.achievements] if body.achievements is not None else None,
            focus_items=[f.model_dump() for f in body.focus_items] if body.focus_items is not None else None,
        )
    return ApiResponse(data=build_report_response(report), message="Report saved")


@router.get("/reports/validate", response_model=ApiResponse[SubmissionCheck])
async def validate_report(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_view),
    vendor_id: int = Query(...),
    week_start: date = Query(...),
) -> Any:
    with reporting_errors():
        await service.ensure_vendor_access(db, current_user, vendor_id)
    report = await service.get_weekly_report(db, vendor_id, week_start)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return ApiResponse(data=SubmissionCheck(**service.validate_report_for_submission(report)))


@router.post("/reports/submit", response_model=ApiResponse[WeeklyReportResponse])
async def submit_report(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_write),
    body: WeeklyReportSubmit,
) -> Any:
    with reporting_errors():
        await service.ensure_vendor_access(db, current_user, body.vendor_id)
        report = await service.submit_weekly_report(db, body.vendor_id, body.week_start)
    return ApiResponse(data=build_report_response(report), message="Report submitted")


@router.get("/reports/history", response_model=ListResponse[WeeklyReportResponse])
async def report_history(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_view),
    vendor_ids: Optional[List[int]] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[str] = Query(None, pattern="^(draft|submitted)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> Any:
    reports, total = await service.list_report_history(
        db, current_user,
        vendor_ids=vendor_ids,
        start_date=start_date,
        end_date=end_date,
        status=status,
        limit=limit,
        offset=offset,
    )
    return ListResponse(data=[build_report_response(r) for r in reports], total=total)


@router.get("/reports/history/{report_id}", response_model=ApiResponse[WeeklyReportResponse])
async def report_detail(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_view),
    report_id: int,
) -> Any:
    report = await service.get_report_by_id(db, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    with reporting_errors():
        await service.ensure_vendor_access(db, current_user, report.vendor_id)
    return ApiResponse(data=build_report_response(report))


def add_vendor_item_routes(path: str, model, create_schema, update_schema, response_schema, label: str) -> None:
    """List/create/update/delete routes for one kind of per-vendor item"""

    @router.get(f"/vendors/{{vendor_id}}/{path}", response_model=ListResponse[response_schema])
    async def list_items(
        *,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_view),
        vendor_id: int,
    ) -> Any:
        with reporting_errors():
            await service.ensure_vendor_access(db, current_user, vendor_id)
        items = await service.list_vendor_items(db, model, vendor_id)
        return ListResponse(data=[response_schema.model_validate(i) for i in items], total=len(items))

    @router.post(f"/vendors/{{vendor_id}}/{path}", response_model=ApiResponse[response_schema], status_code=201)
    async def create_item(
        *,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_write),
        vendor_id: int,
        body: create_schema,
    ) -> Any:
        with reporting_errors():
            await service.ensure_vendor_access(db, current_user, vendor_id)
        item = await service.create_vendor_item(db, model, vendor_id, body.model_dump())
        return ApiResponse(data=response_schema.model_validate(item), message=f"{label} created")

    @router.put(f"/vendors/{{vendor_id}}/{path}/{{item_id}}", response_model=ApiResponse[response_schema])
    async def update_item(
        *,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_write),
        vendor_id: int,
        item_id: int,
        body: update_schema,
    ) -> Any:
        with reporting_errors():
            await service.ensure_vendor_access(db, current_user, vendor_id)
            data = {
                k: v for k, v in body.model_dump(exclude_unset=True).items()
                if v is not None or model.__table__.c[k].nullable
            }
            item = await service.update_vendor_item(db, model, vendor_id, item_id, data)
        return ApiResponse(data=response_schema.model_validate(item), message=f"{label} updated")

    @router.delete(f"/vendors/{{vendor_id}}/{path}/{{item_id}}", response_model=MessageResponse)
    async def delete_item(
        *,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(require_write),
        vendor_id: int,
        item_id: int,
    ) -> Any:
        with reporting_errors():
            await service.ensure_vendor_access(db, current_user, vendor_id)
            await service.delete_vendor_item(db, model, vendor_id, item_id)
        return MessageResponse(message=f"{label} deleted")


add_vendor_item_routes(
    "timeline", VendorTimelineMilestone, MilestoneCreate, MilestoneUpdate, MilestoneResponse, "Milestone",
)
add_vendor_item_routes(
    "raid", VendorRaidItem, RaidItemCreate, RaidItemUpdate, RaidItemResponse, "RAID item",
)
add_vendor_item_routes(
    "resources", VendorResourceItem, ResourceItemCreate, ResourceItemUpdate, ResourceItemResponse, "Resource",
)

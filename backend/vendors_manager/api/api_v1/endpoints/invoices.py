"""Invoices and timesheet-based validation"""

from dataclasses import asdict
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import Invoice, User, Vendor
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.invoice import (
    BatchValidateRequest,
    InvoiceCreate,
    InvoiceResponse,
    InvoiceStats,
    InvoiceUpdate,
    InvoiceValidationResponse,
    MemberSpendResponse,
    ToleranceCheckRequest,
    ToleranceResponse,
    ValidateInvoiceRequest,
)
from vendors_manager.services.invoice_validation import (
    InvoiceValidationResult,
    ToleranceResult,
    batch_validate_invoices,
    calculate_tolerance,
    get_invoice_stats,
    get_validation_status,
    validate_invoice,
)

logger = get_logger(__name__)

router = APIRouter()

DUPLICATE_NUMBER = "An invoice with this number already exists"


def build_invoice_response(invoice: Invoice) -> InvoiceResponse:
    response = InvoiceResponse.model_validate(invoice)
    response.vendor_name = invoice.vendor.name if invoice.vendor else ""
    response.validation_status = get_validation_status(invoice)
    return response


def build_tolerance_response(result: ToleranceResult) -> ToleranceResponse:
    return ToleranceResponse(**{key: float(value) if key != "is_within_tolerance" else value
                                for key, value in asdict(result).items()})


def build_validation_response(result: InvoiceValidationResult) -> InvoiceValidationResponse:
    return InvoiceValidationResponse(
        invoice_id=result.invoice_id,
        tolerance=build_tolerance_response(result.tolerance),
        breakdown=[
            MemberSpendResponse(
                team_member_id=m.team_member_id,
                team_member_name=m.team_member_name,
                total_hours=float(m.total_hours),
                daily_rate=float(m.daily_rate),
                currency=m.currency,
                total_spend=float(m.total_spend),
            )
            for m in result.breakdown
        ],
    )


async def get_invoice_or_404(db: AsyncSession, invoice_id: int) -> Invoice:
    invoice = await db.get(Invoice, invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


async def number_taken(db: AsyncSession, invoice_number: str, exclude_id: Optional[int] = None) -> bool:
    query = select(Invoice.id).where(Invoice.invoice_number == invoice_number)
    if exclude_id is not None:
        query = query.where(Invoice.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.get("/", response_model=ListResponse[InvoiceResponse])
async def list_invoices(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    vendor_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None, pattern="^(pending|validated|disputed|paid)$"),
    search: Optional[str] = Query(None, description="Invoice number"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> Any:
    query = select(Invoice)
    if vendor_id is not None:
        query = query.where(Invoice.vendor_id == vendor_id)
    if status:
        query = query.where(Invoice.status == status)
    if search:
        query = query.where(Invoice.invoice_number.contains(search))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).offset(offset).limit(limit)
    )
    invoices = result.unique().scalars().all()
    return ListResponse(data=[build_invoice_response(i) for i in invoices], total=total)


@router.get("/stats", response_model=ApiResponse[InvoiceStats])
async def invoice_stats(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
) -> Any:
    return ApiResponse(data=InvoiceStats(**await get_invoice_stats(db)))


@router.post("/tolerance-check", response_model=ApiResponse[ToleranceResponse])
async def tolerance_check(
    *,
    _: User = Depends(require_view),
    body: ToleranceCheckRequest,
) -> Any:
    """Stateless what-if comparison"""
    result = calculate_tolerance(body.invoice_amount, body.expected_amount, body.tolerance_threshold)
    return ApiResponse(data=build_tolerance_response(result))


@router.post("/batch-validate", response_model=ApiResponse[List[InvoiceValidationResponse]])
async def batch_validate(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    body: BatchValidateRequest,
) -> Any:
    results = await batch_validate_invoices(db, body.invoice_ids)
    return ApiResponse(
        data=[build_validation_response(r) for r in results],
        message=f"{len(results)} invoice(s) validated",
    )


@router.post("/", response_model=ApiResponse[InvoiceResponse], status_code=201)
async def create_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    invoice_in: InvoiceCreate,
) -> Any:
    if await db.get(Vendor, invoice_in.vendor_id) is None:
        raise HTTPException(status_code=404, detail="Vendor not found")
    if await number_taken(db, invoice_in.invoice_number):
        raise HTTPException(status_code=409, detail=DUPLICATE_NUMBER)

    invoice = Invoice(**invoice_in.model_dump())
    invoice.currency = invoice.currency.upper()
    db.add(invoice)
    await db.commit()
    await db.refresh(invoice)
    logger.info(f"🧾 Invoice created: {invoice.invoice_number}")
    return ApiResponse(data=build_invoice_response(invoice), message="Invoice created")


@router.get("/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
async def get_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    invoice_id: int,
) -> Any:
    return ApiResponse(data=build_invoice_response(await get_invoice_or_404(db, invoice_id)))


@router.put("/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
async def update_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    invoice_id: int,
    invoice_in: InvoiceUpdate,
) -> Any:
    invoice = await get_invoice_or_404(db, invoice_id)
    update_data = invoice_in.model_dump(exclude_unset=True)

    number = update_data.get("invoice_number")
    if number and number != invoice.invoice_number and await number_taken(db, number, exclude_id=invoice.id):
        raise HTTPException(status_code=409, detail=DUPLICATE_NUMBER)

    start = update_data.get("billing_period_start") or invoice.billing_period_start
    end = update_data.get("billing_period_end") or invoice.billing_period_end
    if end < start:
        raise HTTPException(status_code=400, detail="Billing period end must be on or after its start")

    for field, value in update_data.items():
        if value is None and field != "tolerance_threshold":
            continue
        setattr(invoice, field, value)
    invoice.currency = invoice.currency.upper()

    await db.commit()
    await db.refresh(invoice)
    return ApiResponse(data=build_invoice_response(invoice), message="Invoice updated")


@router.post("/{invoice_id}/validate", response_model=ApiResponse[InvoiceValidationResponse])
async def validate_invoice_endpoint(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    invoice_id: int,
    body: Optional[ValidateInvoiceRequest] = None,
) -> Any:
    """Compare the invoice with the vendor's timesheets for the billing period"""
    invoice = await get_invoice_or_404(db, invoice_id)
    threshold = body.tolerance_threshold if body else None
    result = await validate_invoice(db, invoice, threshold)
    return ApiResponse(data=build_validation_response(result))


@router.delete("/{invoice_id}", response_model=MessageResponse)
async def delete_invoice(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    invoice_id: int,
) -> Any:
    invoice = await get_invoice_or_404(db, invoice_id)
    await db.delete(invoice)
    await db.commit()
    return MessageResponse(message="Invoice deleted")

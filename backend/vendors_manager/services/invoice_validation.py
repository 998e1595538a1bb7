"""
Invoice validation against timesheets

Expected spend for a billing period is the sum over the vendor's active team
members of (hours worked / 8) * daily rate. The invoice is within tolerance
when |invoiced - expected| / expected * 100 <= threshold.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Union

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.config import settings
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import Invoice, TeamMember, TimesheetEntry

logger = get_logger(__name__)

HOURS_PER_DAY = Decimal("8")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[int, float, str, Decimal]


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class ToleranceResult:
    invoice_amount: Decimal
    expected_amount: Decimal
    discrepancy: Decimal
    discrepancy_percent: Decimal
    tolerance_threshold: Decimal
    is_within_tolerance: bool


@dataclass
class MemberSpend:
    team_member_id: int
    team_member_name: str
    total_hours: Decimal
    daily_rate: Decimal
    currency: str
    total_spend: Decimal


@dataclass
class ExpectedSpend:
    total: Decimal
    breakdown: List[MemberSpend] = field(default_factory=list)


@dataclass
class InvoiceValidationResult:
    invoice_id: int
    tolerance: ToleranceResult
    breakdown: List[MemberSpend]


def calculate_tolerance(invoiced: Number, expected: Number, threshold: Number) -> ToleranceResult:
    """
    Compare an invoiced amount with the expected spend

    discrepancy = invoiced - expected
    discrepancy_percent = discrepancy / expected * 100, or 100/0 when nothing was expected
    """
    invoiced = to_decimal(invoiced)
    expected = to_decimal(expected)
    threshold = to_decimal(threshold)

    discrepancy = invoiced - expected
    if expected != 0:
        percent = discrepancy / expected * HUNDRED
    else:
        percent = HUNDRED if invoiced > 0 else Decimal("0")

    return ToleranceResult(
        invoice_amount=invoiced,
        expected_amount=expected,
        discrepancy=discrepancy,
        discrepancy_percent=percent,
        tolerance_threshold=threshold,
        is_within_tolerance=abs(percent) <= threshold,
    )


def calculate_member_spend(total_hours: Number, daily_rate: Number) -> Decimal:
    return to_decimal(total_hours) / HOURS_PER_DAY * to_decimal(daily_rate)


def get_validation_status(invoice: Invoice) -> str:
    """not_validated until timesheet validation has stored an expected amount"""
    if invoice.expected_amount is None or invoice.tolerance_threshold is None:
        return "not_validated"
    result = calculate_tolerance(invoice.amount, invoice.expected_amount, invoice.tolerance_threshold)
    return "within_tolerance" if result.is_within_tolerance else "exceeds_tolerance"


async def calculate_expected_spend(
    db: AsyncSession,
    vendor_id: int,
    period_start: date,
    period_end: date,
) -> ExpectedSpend:
    members_result = await db.execute(
        select(TeamMember).where(TeamMember.vendor_id == vendor_id, TeamMember.status == "active")
    )
    members = members_result.scalars().all()
    if not members:
        return ExpectedSpend(total=Decimal("0.00"))

    # Time-off entries have no hours and are not billable
    hours_result = await db.execute(
        select(TimesheetEntry.team_member_id, func.sum(TimesheetEntry.hours))
        .where(
            TimesheetEntry.team_member_id.in_([m.id for m in members]),
            TimesheetEntry.date >= period_start,
            TimesheetEntry.date <= period_end,
            TimesheetEntry.hours.isnot(None),
        )
        .group_by(TimesheetEntry.team_member_id)
    )
    hours_by_member: Dict[int, Decimal] = {
        member_id: to_decimal(total) for member_id, total in hours_result.all()
    }

    total = Decimal("0")
    breakdown = []
    for member in members:
        hours = hours_by_member.get(member.id, Decimal("0"))
        spend = calculate_member_spend(hours, member.daily_rate)
        total += spend
        if hours > 0:
            breakdown.append(MemberSpend(
                team_member_id=member.id,
                team_member_name=member.full_name,
                total_hours=hours,
                daily_rate=to_decimal(member.daily_rate),
                currency=member.currency,
                total_spend=round_money(spend),
            ))

    return ExpectedSpend(total=round_money(total), breakdown=breakdown)


async def validate_invoice(
    db: AsyncSession,
    invoice: Invoice,
    tolerance_threshold: Optional[Number] = None,
) -> InvoiceValidationResult:
    """Validate an invoice and store expected amount, discrepancy and threshold on it"""
    if tolerance_threshold is not None:
        threshold = to_decimal(tolerance_threshold)
    elif invoice.tolerance_threshold is not None:
        threshold = to_decimal(invoice.tolerance_threshold)
    else:
        threshold = to_decimal(settings.DEFAULT_TOLERANCE_THRESHOLD)

    spend = await calculate_expected_spend(
        db, invoice.vendor_id, invoice.billing_period_start, invoice.billing_period_end
    )
    result = calculate_tolerance(invoice.amount, spend.total, threshold)

    invoice.expected_amount = spend.total
    invoice.discrepancy = round_money(result.discrepancy)
    invoice.tolerance_threshold = threshold
    await db.commit()
    await db.refresh(invoice)

    logger.info(
        f"🧾 Invoice {invoice.invoice_number}: expected {spend.total}, "
        f"discrepancy {result.discrepancy_percent:.2f}% "
        f"({'within' if result.is_within_tolerance else 'exceeds'} {threshold}%)"
    )
    return InvoiceValidationResult(invoice_id=invoice.id, tolerance=result, breakdown=spend.breakdown)


async def batch_validate_invoices(db: AsyncSession, invoice_ids: List[int]) -> List[InvoiceValidationResult]:
    """Missing ids are skipped"""
    results = []
    for invoice_id in invoice_ids:
        invoice = await db.get(Invoice, invoice_id)
        if invoice is None:
            continue
        results.append(await validate_invoice(db, invoice))
    return results


async def get_invoice_stats(db: AsyncSession) -> dict:
    result = await db.execute(select(Invoice.status, func.count(Invoice.id)).group_by(Invoice.status))
    counts = dict(result.all())

    invoices_result = await db.execute(
        select(Invoice.amount, Invoice.expected_amount, Invoice.tolerance_threshold)
    )
    total_amount = Decimal("0")
    total_expected = Decimal("0")
    exceeding = 0
    for amount, expected, threshold in invoices_result.all():
        total_amount += to_decimal(amount)
        if expected is None:
            continue
        total_expected += to_decimal(expected)
        if threshold is None:
            threshold = settings.DEFAULT_TOLERANCE_THRESHOLD
        if not calculate_tolerance(amount, expected, threshold).is_within_tolerance:
            exceeding += 1

    return {
        "total_invoices": sum(counts.values()),
        "pending_invoices": counts.get("pending", 0),
        "validated_invoices": counts.get("validated", 0),
        "disputed_invoices": counts.get("disputed", 0),
        "paid_invoices": counts.get("paid", 0),
        "total_amount": float(round_money(total_amount)),
        "total_expected_amount": float(round_money(total_expected)),
        "invoices_exceeding_tolerance": exceeding,
    }

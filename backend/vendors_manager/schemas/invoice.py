from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

InvoiceStatus = Literal["pending", "validated", "disputed", "paid"]


class InvoiceBase(BaseModel):
    vendor_id: int
    invoice_number: str = Field(..., min_length=1, max_length=100)
    invoice_date: date
    billing_period_start: date
    billing_period_end: date
    amount: float = Field(..., ge=0)
    currency: str = Field("GBP", min_length=3, max_length=3)
    status: InvoiceStatus = "pending"


class InvoiceCreate(InvoiceBase):
    tolerance_threshold: Optional[float] = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def check_period(self):
        if self.billing_period_end < self.billing_period_start:
            raise ValueError("Billing period end must be on or after its start")
        return self


class InvoiceUpdate(BaseModel):
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=100)
    invoice_date: Optional[date] = None
    billing_period_start: Optional[date] = None
    billing_period_end: Optional[date] = None
    amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: Optional[InvoiceStatus] = None
    tolerance_threshold: Optional[float] = Field(None, ge=0, le=100)


class InvoiceResponse(InvoiceBase):
    id: int
    vendor_name: str = ""
    expected_amount: Optional[float] = None
    discrepancy: Optional[float] = None
    tolerance_threshold: Optional[float] = None
    validation_status: str = "not_validated"
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ValidateInvoiceRequest(BaseModel):
    tolerance_threshold: Optional[float] = Field(None, ge=0, le=100)


class BatchValidateRequest(BaseModel):
    invoice_ids: List[int] = Field(..., min_length=1)


class MemberSpendResponse(BaseModel):
    team_member_id: int
    team_member_name: str
    total_hours: float
    daily_rate: float
    currency: str
    total_spend: float


class ToleranceResponse(BaseModel):
    invoice_amount: float
    expected_amount: float
    discrepancy: float
    discrepancy_percent: float
    tolerance_threshold: float
    is_within_tolerance: bool


class InvoiceValidationResponse(BaseModel):
    invoice_id: int
    tolerance: ToleranceResponse
    breakdown: List[MemberSpendResponse]


class ToleranceCheckRequest(BaseModel):
    invoice_amount: float
    expected_amount: float
    tolerance_threshold: float = Field(5.0, ge=0, le=100)


class InvoiceStats(BaseModel):
    total_invoices: int
    pending_invoices: int
    validated_invoices: int
    disputed_invoices: int
    paid_invoices: int
    total_amount: float
    total_expected_amount: float
    invoices_exceeding_tolerance: int

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

ContractStatus = Literal["draft", "active", "expired", "terminated"]


class ContractBase(BaseModel):
    vendor_id: int
    title: str = Field(..., min_length=1, max_length=255)
    start_date: date
    end_date: date
    value: float = Field(..., ge=0)
    currency: str = Field("GBP", min_length=3, max_length=3)
    status: ContractStatus = "draft"
    document_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class ContractCreate(ContractBase):
    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class ContractUpdate(BaseModel):
    vendor_id: Optional[int] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    value: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: Optional[ContractStatus] = None
    document_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class ContractResponse(ContractBase):
    id: int
    vendor_name: str = ""
    days_until_expiration: int = 0
    expiration_status: str = "active"
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContractStats(BaseModel):
    total_contracts: int
    draft_contracts: int
    active_contracts: int
    expired_contracts: int
    terminated_contracts: int
    expiring_within_30_days: int
    total_value: float

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class RateCardBase(BaseModel):
    vendor_id: int
    role_id: int
    rate: float = Field(..., gt=0)
    currency: str = Field("GBP", min_length=3, max_length=3)
    effective_from: date
    effective_to: Optional[date] = None
    notes: Optional[str] = None


class RateCardCreate(RateCardBase):
    @model_validator(mode="after")
    def check_dates(self):
        if self.effective_to and self.effective_to < self.effective_from:
            raise ValueError("Effective to must be on or after effective from")
        return self


class RateCardUpdate(BaseModel):
    rate: Optional[float] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    notes: Optional[str] = None


class RateCardResponse(RateCardBase):
    id: int
    vendor_name: str = ""
    role_name: str = ""
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

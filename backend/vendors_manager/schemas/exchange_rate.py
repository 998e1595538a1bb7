from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

Rounding = Literal["HALF_UP", "UP", "DOWN", "HALF_EVEN"]


class CurrencyResponse(BaseModel):
    code: str
    symbol: str
    name: str


class ExchangeRateUpsert(BaseModel):
    from_currency: str = Field(..., min_length=3, max_length=3)
    to_currency: str = Field(..., min_length=3, max_length=3)
    rate: float = Field(..., gt=0)

    @field_validator("from_currency", "to_currency")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def check_pair(self):
        if self.from_currency == self.to_currency:
            raise ValueError("From and to currencies must differ")
        return self


class ExchangeRateUpdate(BaseModel):
    rate: float = Field(..., gt=0)


class ExchangeRateResponse(BaseModel):
    id: int
    from_currency: str
    to_currency: str
    rate: float
    last_updated: datetime
    is_stale: bool = False
    stale_duration_hours: float = 0.0

    class Config:
        from_attributes = True


class ConvertRequest(BaseModel):
    amount: str = Field(..., description="Decimal string, e.g. '100.50'")
    from_currency: str
    to_currency: str
    decimal_places: int = Field(2, ge=0, le=8)
    rounding: Rounding = "HALF_UP"


class ConvertResponse(BaseModel):
    original_amount: str
    converted_amount: str
    from_currency: str
    to_currency: str
    exchange_rate: str
    rate_last_updated: datetime
    formatted_original: str
    formatted_converted: str

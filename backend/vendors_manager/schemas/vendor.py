from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

VendorStatus = Literal["active", "inactive"]


class TagResponse(BaseModel):
    id: int
    name: str
    color: Optional[str] = None

    class Config:
        from_attributes = True


class VendorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    service_description: Optional[str] = None
    status: VendorStatus = "active"


class VendorCreate(VendorBase):
    tags: List[str] = Field(default_factory=list, description="Tag names, created when missing")


class VendorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    service_description: Optional[str] = None
    status: Optional[VendorStatus] = None
    tags: Optional[List[str]] = None


class VendorResponse(VendorBase):
    id: int
    tags: List[TagResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VendorStats(BaseModel):
    total_vendors: int
    active_vendors: int
    inactive_vendors: int
    total_team_members: int
    active_contracts: int

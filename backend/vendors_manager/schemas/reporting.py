from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

RagStatus = Literal["green", "amber", "red"]


class AchievementItem(BaseModel):
    id: Optional[int] = None
    description: str = Field(..., min_length=1)
    status: Optional[Literal["done", "in_progress"]] = None
    is_from_focus: bool = False
    sort_order: int = 0

    class Config:
        from_attributes = True


class FocusItem(BaseModel):
    id: Optional[int] = None
    description: str = Field(..., min_length=1)
    is_carried_over: bool = False
    sort_order: int = 0

    class Config:
        from_attributes = True


class WeeklyReportUpsert(BaseModel):
    """Omitted lists leave the stored items untouched"""
    vendor_id: int
    week_start: date
    rag_status: Optional[RagStatus] = None
    achievements: Optional[List[AchievementItem]] = None
    focus_items: Optional[List[FocusItem]] = None


class WeeklyReportSubmit(BaseModel):
    vendor_id: int
    week_start: date


class WeeklyReportResponse(BaseModel):
    id: int
    vendor_id: int
    vendor_name: str = ""
    week_start: date
    rag_status: Optional[str] = None
    status: str
    submitted_at: Optional[datetime] = None
    achievements: List[AchievementItem] = []
    focus_items: List[FocusItem] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WeeklyReportView(BaseModel):
    report: Optional[WeeklyReportResponse] = None
    previous_week_focus: List[FocusItem] = []
    is_new: bool
    week_start: date


class SubmissionCheck(BaseModel):
    valid: bool
    errors: List[dict]
    warnings: List[dict]


class ReportingVendor(BaseModel):
    id: int
    name: str
    status: str

    class Config:
        from_attributes = True


# ===== Timeline / RAID / resources =====
class MilestoneCreate(BaseModel):
    date: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=255)
    status: Literal["completed", "in_progress", "upcoming", "tbc"]
    platforms: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    sort_order: Optional[int] = None


class MilestoneUpdate(BaseModel):
    date: Optional[str] = Field(None, min_length=1, max_length=50)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[Literal["completed", "in_progress", "upcoming", "tbc"]] = None
    platforms: Optional[List[str]] = None
    features: Optional[List[str]] = None
    sort_order: Optional[int] = None


class MilestoneResponse(MilestoneCreate):
    id: int
    vendor_id: int
    sort_order: int = 0

    class Config:
        from_attributes = True


class RaidItemCreate(BaseModel):
    type: Literal["risk", "issue", "dependency"]
    area: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    impact: Literal["high", "medium", "low"]
    owner: Optional[str] = Field(None, max_length=255)
    rag_status: RagStatus
    sort_order: Optional[int] = None


class RaidItemUpdate(BaseModel):
    type: Optional[Literal["risk", "issue", "dependency"]] = None
    area: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    impact: Optional[Literal["high", "medium", "low"]] = None
    owner: Optional[str] = Field(None, max_length=255)
    rag_status: Optional[RagStatus] = None
    sort_order: Optional[int] = None


class RaidItemResponse(RaidItemCreate):
    id: int
    vendor_id: int
    sort_order: int = 0

    class Config:
        from_attributes = True


class ResourceItemCreate(BaseModel):
    type: Literal["confluence", "jira", "github", "docs"]
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    url: str = Field(..., min_length=1, max_length=2048, pattern=r"^https?://")
    sort_order: Optional[int] = None


class ResourceItemUpdate(BaseModel):
    type: Optional[Literal["confluence", "jira", "github", "docs"]] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    url: Optional[str] = Field(None, min_length=1, max_length=2048, pattern=r"^https?://")
    sort_order: Optional[int] = None


class ResourceItemResponse(ResourceItemCreate):
    id: int
    vendor_id: int
    sort_order: int = 0

    class Config:
        from_attributes = True

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

TeamMemberStatus = Literal["active", "inactive", "onboarding", "offboarded"]
TimeOffCode = Literal["VAC", "HALF", "SICK", "MAT", "CAS", "UNPAID"]


class TeamMemberBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    vendor_id: int
    role_id: int
    daily_rate: float = Field(..., gt=0)
    currency: str = Field("GBP", min_length=3, max_length=3)
    start_date: date
    end_date: Optional[date] = None
    status: TeamMemberStatus = "active"
    planned_utilization: Optional[float] = Field(None, ge=0, le=100)


class TeamMemberCreate(TeamMemberBase):
    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class TeamMemberUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    vendor_id: Optional[int] = None
    role_id: Optional[int] = None
    daily_rate: Optional[float] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[TeamMemberStatus] = None
    planned_utilization: Optional[float] = Field(None, ge=0, le=100)


class TeamMemberResponse(TeamMemberBase):
    id: int
    full_name: str
    vendor_name: str = ""
    role_name: str = ""
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TeamMemberStats(BaseModel):
    total: int
    by_status: dict
    average_daily_rate: float


# ===== Timesheet =====
class TimesheetEntryUpsert(BaseModel):
    """Sending neither hours nor a time-off code clears the day"""
    team_member_id: int
    date: date
    hours: Optional[float] = Field(None, ge=0, le=24)
    time_off_code: Optional[TimeOffCode] = None


class TimesheetBulkUpsert(BaseModel):
    entries: List[TimesheetEntryUpsert] = Field(..., min_length=1)


class TimesheetEntryResponse(BaseModel):
    id: int
    team_member_id: int
    date: date
    hours: Optional[float] = None
    time_off_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TimesheetCalendarDay(BaseModel):
    date: date
    weekday: int
    is_weekend: bool
    hours: Optional[float] = None
    time_off_code: Optional[str] = None


class TimesheetCalendar(BaseModel):
    team_member_id: int
    year: int
    month: int
    days: List[TimesheetCalendarDay]
    total_hours: float
    days_off: int

from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


TEAM_MEMBER_STATUSES = ("active", "inactive", "onboarding", "offboarded")
TIME_OFF_CODES = ("VAC", "HALF", "SICK", "MAT", "CAS", "UNPAID")


class TeamMember(Base):
    """Vendor staff member billed by the day"""
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    daily_rate = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="GBP")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="active", index=True, comment="active/inactive/onboarding/offboarded")
    planned_utilization = Column(Numeric(5, 2), comment="0-100 percent")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", lazy="joined")
    role = relationship("Role", lazy="joined")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class TimesheetEntry(Base):
    """One day of a team member: worked hours or a time-off code"""
    __tablename__ = "timesheet_entries"
    __table_args__ = (UniqueConstraint("team_member_id", "date", name="uq_timesheet_member_date"),)

    id = Column(Integer, primary_key=True, index=True)
    team_member_id = Column(Integer, ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    hours = Column(Numeric(4, 2), nullable=True, comment="0-24")
    time_off_code = Column(String(10), nullable=True, comment="VAC/HALF/SICK/MAT/CAS/UNPAID")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    team_member = relationship("TeamMember", lazy="joined")

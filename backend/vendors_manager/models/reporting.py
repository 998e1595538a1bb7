"""
Weekly delivery reporting

WeeklyReport (one per vendor per week, week_start is a Monday)
  ├── WeeklyReportAchievement
  └── WeeklyReportFocus

Vendor-level logs kept across weeks:
  VendorTimelineMilestone, VendorRaidItem, VendorResourceItem
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


RAG_STATUSES = ("green", "amber", "red")
REPORT_STATUSES = ("draft", "submitted")
ACHIEVEMENT_STATUSES = ("done", "in_progress")
MILESTONE_STATUSES = ("completed", "in_progress", "upcoming", "tbc")
RAID_TYPES = ("risk", "issue", "dependency")
IMPACT_LEVELS = ("high", "medium", "low")
RESOURCE_LINK_TYPES = ("confluence", "jira", "github", "docs")


class WeeklyReport(Base):
    __tablename__ = "weekly_reports"
    __table_args__ = (UniqueConstraint("vendor_id", "week_start", name="uq_report_vendor_week"),)

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    week_start = Column(Date, nullable=False, index=True, comment="Monday of the reported week")
    rag_status = Column(String(10), nullable=True, comment="green/amber/red")
    status = Column(String(20), nullable=False, default="draft", comment="draft/submitted")
    submitted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", lazy="joined")
    achievements = relationship(
        "WeeklyReportAchievement",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="WeeklyReportAchievement.sort_order",
        lazy="selectin",
    )
    focus_items = relationship(
        "WeeklyReportFocus",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="WeeklyReportFocus.sort_order",
        lazy="selectin",
    )


class WeeklyReportAchievement(Base):
    __tablename__ = "weekly_report_achievements"

    id = Column(Integer, primary_key=True, index=True)
    report_id = Column(Integer, ForeignKey("weekly_reports.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=True, comment="done/in_progress")
    is_from_focus = Column(Boolean, default=False, comment="Promoted from last week's focus")
    sort_order = Column(Integer, default=0)

    report = relationship("WeeklyReport", back_populates="achievements")


class WeeklyReportFocus(Base):
    __tablename__ = "weekly_report_focus_items"

    id = Column(Integer, primary_key=True, index=True)
    report_id = Column(Integer, ForeignKey("weekly_reports.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    is_carried_over = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)

    report = relationship("WeeklyReport", back_populates="focus_items")


class VendorTimelineMilestone(Base):
    __tablename__ = "vendor_timeline_milestones"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(String(50), nullable=False, comment="Free text, e.g. 'Q3 2025'")
    title = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, comment="completed/in_progress/upcoming/tbc")
    platforms = Column(JSON, nullable=False, default=list)
    features = Column(JSON, nullable=False, default=list)
    sort_order = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class VendorRaidItem(Base):
    __tablename__ = "vendor_raid_items"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False, comment="risk/issue/dependency")
    area = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    impact = Column(String(10), nullable=False, comment="high/medium/low")
    owner = Column(String(255))
    rag_status = Column(String(10), nullable=False)
    sort_order = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class VendorResourceItem(Base):
    __tablename__ = "vendor_resource_items"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False, comment="confluence/jira/github/docs")
    name = Column(String(255), nullable=False)
    description = Column(Text)
    url = Column(String(2048), nullable=False)
    sort_order = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


class RateCard(Base):
    """Agreed daily rate for a role at a vendor over a date range"""
    __tablename__ = "rate_cards"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    rate = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="GBP")
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True, comment="Open-ended when empty")
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", lazy="joined")
    role = relationship("Role", lazy="joined")

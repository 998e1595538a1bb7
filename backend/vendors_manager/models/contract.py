from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


CONTRACT_STATUSES = ("draft", "active", "expired", "terminated")


class Contract(Base):
    """Vendor contract"""
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False, index=True)
    value = Column(Numeric(14, 2), nullable=False, comment="Contract value")
    currency = Column(String(3), nullable=False, default="GBP")
    status = Column(String(20), nullable=False, default="draft", index=True, comment="draft/active/expired/terminated")
    document_name = Column(String(255), comment="Original file name of the signed document")
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", lazy="joined")

from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


INVOICE_STATUSES = ("pending", "validated", "disputed", "paid")


class Invoice(Base):
    """Vendor invoice

    expected_amount / discrepancy / tolerance_threshold are filled in by
    timesheet validation.
    """
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_number = Column(String(100), nullable=False, unique=True)
    invoice_date = Column(Date, nullable=False)
    billing_period_start = Column(Date, nullable=False)
    billing_period_end = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="GBP")
    status = Column(String(20), nullable=False, default="pending", index=True, comment="pending/validated/disputed/paid")

    expected_amount = Column(Numeric(14, 2), comment="Spend calculated from timesheets")
    discrepancy = Column(Numeric(14, 2), comment="amount - expected_amount")
    tolerance_threshold = Column(Numeric(5, 2), comment="Allowed deviation in percent")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", lazy="joined")

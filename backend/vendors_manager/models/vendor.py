"""
Vendor models

Vendor
  ├── Tag (many-to-many)
  ├── Contract / Invoice / RateCard / TeamMember
  └── DeliveryManagerVendor: users responsible for the vendor's weekly reports
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Table, UniqueConstraint
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


VENDOR_STATUSES = ("active", "inactive")


vendor_tags = Table(
    "vendor_tags",
    Base.metadata,
    Column("vendor_id", Integer, ForeignKey("vendors.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(Base):
    """Free-form label"""
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    color = Column(String(20), comment="Hex colour")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Vendor(Base):
    """Supplier providing team members"""
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(Text)
    location = Column(String(255))
    service_description = Column(Text)
    status = Column(String(20), nullable=False, default="active", comment="active/inactive")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tags = relationship("Tag", secondary=vendor_tags, lazy="selectin", order_by="Tag.name")

    def __repr__(self):
        return f"<Vendor {self.name}>"


class DeliveryManagerVendor(Base):
    """Vendor assigned to a user"""
    __tablename__ = "delivery_manager_vendors"
    __table_args__ = (UniqueConstraint("user_id", "vendor_id", name="uq_user_vendor"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id], lazy="joined")
    vendor = relationship("Vendor", lazy="joined")

"""
Job role (Developer, QA, Delivery Manager...)

Not to be confused with permission levels or groups, which live on the user.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime
from vendors_manager.db.base import Base


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True, comment="Role name")
    description = Column(Text, comment="Role description")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Role {self.name}>"

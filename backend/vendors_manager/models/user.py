from datetime import datetime
from typing import List, TYPE_CHECKING
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from vendors_manager.db.base import Base

if TYPE_CHECKING:
    from vendors_manager.models.access_control import PermissionGroup


# denied < view < write < admin
PERMISSION_LEVELS = ("denied", "view", "write", "admin")
USER_STATUSES = ("invited", "active")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False, comment="bcrypt hash")
    name = Column(String(255), nullable=False)
    permission_level = Column(String(10), nullable=False, default="view", comment="denied/view/write/admin")
    is_active = Column(Boolean, nullable=False, default=True)
    is_super_user = Column(Boolean, nullable=False, default=False, comment="Bypasses every access check")

    # Invitation tracking
    status = Column(String(10), nullable=False, default="active", comment="invited/active")
    invitation_sent_at = Column(DateTime, nullable=True)
    invitation_accepted_at = Column(DateTime, nullable=True)
    password_set_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    groups = relationship(
        "PermissionGroup",
        secondary="user_group_members",
        back_populates="members",
        lazy="selectin",
    )

    @property
    def is_admin(self) -> bool:
        return self.is_super_user or self.permission_level == "admin"

    @property
    def group_ids(self) -> List[int]:
        return [g.id for g in (self.groups or [])]

    def __repr__(self):
        return f"<User {self.email}>"

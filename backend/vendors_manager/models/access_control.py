"""
Access control models

- PermissionGroup: named set of users
- ProtectableResource: page/component/feature identified by a resource key
- ResourcePermission: grants a resource to a group
- UserResourcePermission: grants a resource to a single user

A resource with no grants at all is open to every active user.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Table, UniqueConstraint
from sqlalchemy.orm import relationship
from vendors_manager.db.base import Base


RESOURCE_TYPES = ("page", "component", "feature")


user_group_members = Table(
    "user_group_members",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", Integer, ForeignKey("permission_groups.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=datetime.utcnow),
)


class PermissionGroup(Base):
    """User group"""
    __tablename__ = "permission_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True, comment="Group name")
    description = Column(Text, comment="Group description")
    is_system = Column(Boolean, default=False, comment="System groups cannot be deleted")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship("User", secondary=user_group_members, back_populates="groups")
    permissions = relationship(
        "ResourcePermission",
        back_populates="group",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<PermissionGroup {self.name}>"


class ProtectableResource(Base):
    """Page, component or feature that can be restricted"""
    __tablename__ = "protectable_resources"

    id = Column(Integer, primary_key=True, index=True)
    resource_key = Column(String(100), nullable=False, unique=True, index=True, comment="e.g. page:invoices")
    type = Column(String(20), nullable=False, comment="page/component/feature")
    name = Column(String(100), nullable=False)
    description = Column(Text)
    parent_key = Column(String(100), comment="Parent resource key")
    path = Column(String(255), comment="Route path for pages")
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    group_permissions = relationship(
        "ResourcePermission",
        back_populates="resource",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    user_permissions = relationship(
        "UserResourcePermission",
        back_populates="resource",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_restricted(self) -> bool:
        return bool(self.group_permissions) or bool(self.user_permissions)


class ResourcePermission(Base):
    """Group grant on a resource"""
    __tablename__ = "resource_permissions"
    __table_args__ = (UniqueConstraint("resource_id", "group_id", name="uq_resource_group"),)

    id = Column(Integer, primary_key=True, index=True)
    resource_id = Column(Integer, ForeignKey("protectable_resources.id", ondelete="CASCADE"), nullable=False)
    group_id = Column(Integer, ForeignKey("permission_groups.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    resource = relationship("ProtectableResource", back_populates="group_permissions")
    group = relationship("PermissionGroup", back_populates="permissions", lazy="joined")


class UserResourcePermission(Base):
    """Direct user grant on a resource"""
    __tablename__ = "user_resource_permissions"
    __table_args__ = (UniqueConstraint("resource_id", "user_id", name="uq_resource_user"),)

    id = Column(Integer, primary_key=True, index=True)
    resource_id = Column(Integer, ForeignKey("protectable_resources.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    resource = relationship("ProtectableResource", back_populates="user_permissions")
    user = relationship("User", lazy="joined")

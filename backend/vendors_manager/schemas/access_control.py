from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ===== Groups =====
class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    member_ids: List[int] = Field(default_factory=list)


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    member_ids: Optional[List[int]] = None


class GroupMember(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class GroupResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    is_system: bool = False
    members: List[GroupMember] = []
    resource_keys: List[str] = []
    created_at: datetime


# ===== Protectable resources =====
class ResourceResponse(BaseModel):
    id: int
    resource_key: str
    type: str
    name: str
    description: Optional[str] = None
    parent_key: Optional[str] = None
    path: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    group_ids: List[int] = []
    user_ids: List[int] = []
    is_restricted: bool = False


class ResourcePermissionUpdate(BaseModel):
    """Each list, when sent, replaces the current grants"""
    group_ids: Optional[List[int]] = None
    user_ids: Optional[List[int]] = None


class AccessCheckRequest(BaseModel):
    resource_keys: List[str] = Field(default_factory=list)
    path: Optional[str] = None


class AccessCheckResult(BaseModel):
    resource_key: str
    allowed: bool
    resource_type: Optional[str] = None
    reason: Optional[str] = None


class EffectivePermissions(BaseModel):
    user_id: int
    is_super_user: bool
    permission_level: str
    group_ids: List[int]
    accessible_resources: List[str]


# ===== Vendor assignments =====
class VendorAssignmentCreate(BaseModel):
    user_id: Optional[int] = None
    vendor_id: Optional[int] = None


class VendorAssignmentResponse(BaseModel):
    id: int
    user_id: int
    vendor_id: int
    assigned_by: Optional[int] = None
    user_name: str
    user_email: str
    vendor_name: str
    created_at: datetime

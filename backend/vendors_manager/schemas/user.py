from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

PermissionLevel = Literal["denied", "view", "write", "admin"]


class UserCreate(BaseModel):
    """Email and name are checked by the endpoint so the error message stays specific"""
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = None
    permission_level: PermissionLevel = "view"
    is_active: bool = True
    is_super_user: bool = False
    group_ids: List[int] = Field(default_factory=list)
    send_invitation: bool = False


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    password: Optional[str] = None
    permission_level: Optional[PermissionLevel] = None
    is_active: Optional[bool] = None
    is_super_user: Optional[bool] = None
    group_ids: Optional[List[int]] = None


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    permission_level: str
    is_active: bool
    is_super_user: bool
    status: str
    group_ids: List[int] = []
    invitation_sent_at: Optional[datetime] = None
    invitation_accepted_at: Optional[datetime] = None
    password_set_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

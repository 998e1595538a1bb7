from typing import List, Optional

from pydantic import BaseModel, EmailStr

from vendors_manager.schemas.user import UserResponse


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class SetupPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class TokenVerification(BaseModel):
    valid: bool
    email: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    error: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


class CurrentUserResponse(BaseModel):
    user: UserResponse
    accessible_resources: List[str] = []
    accessible_paths: List[str] = []

"""Authentication: login, current user, invitation and password reset links"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.config import settings
from vendors_manager.core.deps import get_current_user, get_db
from vendors_manager.core.logging_config import get_logger
from vendors_manager.core.permissions import DENIED_MESSAGE
from vendors_manager.core.security import (
    create_access_token,
    hash_password,
    validate_password_strength,
    verify_password,
)
from vendors_manager.models import User
from vendors_manager.schemas.auth import (
    ChangePasswordRequest,
    CurrentUserResponse,
    ForgotPasswordRequest,
    LoginRequest,
    SetupPasswordRequest,
    TokenResponse,
    TokenVerification,
)
from vendors_manager.schemas.common import ApiResponse, MessageResponse
from vendors_manager.schemas.user import UserResponse
from vendors_manager.services import rbac
from vendors_manager.services.auth_tokens import (
    FORGOT_PASSWORD_MESSAGE,
    SETUP_PASSWORD_MESSAGES,
    EmailUnavailable,
    PasswordPolicyError,
    RateLimitExceeded,
    TokenError,
    request_password_reset,
    setup_password,
    verify_link_token,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    *,
    db: AsyncSession = Depends(get_db),
    credentials: LoginRequest,
) -> Any:
    """Exchange e-mail and password for a bearer token"""
    result = await db.execute(select(User).where(User.email == credentials.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(credentials.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account is inactive")
    if user.permission_level == "denied":
        raise HTTPException(status_code=403, detail=DENIED_MESSAGE)
    if user.status == "invited":
        raise HTTPException(status_code=403, detail="Please set your password using the invitation link first")

    token = create_access_token(user.id, user.email)
    logger.info(f"🔓 {user.email} signed in")
    return ApiResponse(data=TokenResponse(
        access_token=token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    ))


@router.get("/me", response_model=ApiResponse[CurrentUserResponse])
async def read_current_user(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    permissions = await rbac.get_user_effective_permissions(db, current_user)
    paths = await rbac.get_accessible_page_paths(db, current_user)
    return ApiResponse(data=CurrentUserResponse(
        user=UserResponse.model_validate(current_user),
        accessible_resources=permissions["accessible_resources"],
        accessible_paths=paths,
    ))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    body: ChangePasswordRequest,
) -> Any:
    if not verify_password(body.current_password, current_user.password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    if body.new_password != body.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    errors = validate_password_strength(body.new_password)
    if errors:
        raise HTTPException(status_code=400, detail=". ".join(errors))

    current_user.password = hash_password(body.new_password)
    current_user.password_set_at = datetime.utcnow()
    await db.commit()
    return MessageResponse(message="Password updated")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    *,
    db: AsyncSession = Depends(get_db),
    body: ForgotPasswordRequest,
) -> Any:
    """Same answer whether or not the account exists"""
    try:
        await request_password_reset(db, body.email)
    except RateLimitExceeded as e:
        raise HTTPException(status_code=429, detail=str(e))
    except EmailUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.get("/verify-token", response_model=ApiResponse[TokenVerification])
async def verify_token(
    *,
    db: AsyncSession = Depends(get_db),
    token: Optional[str] = Query(None),
) -> Any:
    """An unusable link is still a successful call, reported as valid=false"""
    try:
        verified = await verify_link_token(db, token)
    except TokenError as e:
        return ApiResponse(data=TokenVerification(valid=False, error=e.message))
    return ApiResponse(data=TokenVerification(
        valid=True,
        email=verified.user.email,
        name=verified.user.name,
        type=verified.data["type"],
    ))


@router.post("/setup-password", response_model=MessageResponse)
async def setup_password_endpoint(
    *,
    db: AsyncSession = Depends(get_db),
    body: SetupPasswordRequest,
) -> Any:
    try:
        await setup_password(db, body.token, body.password, body.confirm_password)
    except TokenError as e:
        raise HTTPException(status_code=e.status_code, detail=SETUP_PASSWORD_MESSAGES.get(e.message, e.message))
    except PasswordPolicyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message="Password has been set successfully. You can now sign in.")

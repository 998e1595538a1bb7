"""Request dependencies: database session, current user, permission gates"""
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.permissions import check_permission
from vendors_manager.core.security import InvalidAccessToken, decode_access_token
from vendors_manager.db.session import SessionLocal
from vendors_manager.models import User

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session per request
    """
    async with SessionLocal() as session:
        yield session


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Resolve the bearer token to an active user"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        payload = decode_access_token(credentials.credentials)
        user_id = int(payload["sub"])
    except InvalidAccessToken as e:
        raise HTTPException(status_code=401, detail=e.message)
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account is inactive")
    return user


def require_permission(action: str):
    """Dependency factory: the current user must be allowed to perform `action`"""
    async def checker(user: User = Depends(get_current_user)) -> User:
        # super-users bypass the level check, a denied account never does
        if user.is_super_user and user.permission_level != "denied":
            return user
        allowed, reason = check_permission(user.permission_level, action)
        if not allowed:
            raise HTTPException(status_code=403, detail=reason)
        return user
    return checker


require_view = require_permission("read")
require_write = require_permission("create")
require_admin = require_permission("manage_users")

"""User administration (admin only)"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_admin
from vendors_manager.core.logging_config import get_logger
from vendors_manager.core.security import hash_password, validate_password_strength
from vendors_manager.core.token_encryption import generate_random_token
from vendors_manager.models import PermissionGroup, User
from vendors_manager.schemas.access_control import EffectivePermissions
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.user import UserCreate, UserResponse, UserUpdate
from vendors_manager.services import rbac
from vendors_manager.services.auth_tokens import EmailUnavailable, add_audit_log, send_invitation
from vendors_manager.services.email import is_email_available

logger = get_logger(__name__)

router = APIRouter()

LAST_SUPER_USER = "Cannot remove the last active super user"
REQUIRED_FIELDS = ("email", "name", "permission_level", "is_active", "is_super_user")


async def load_groups(db: AsyncSession, group_ids: List[int]) -> List[PermissionGroup]:
    ids = list(dict.fromkeys(group_ids))
    if not ids:
        return []
    result = await db.execute(select(PermissionGroup).where(PermissionGroup.id.in_(ids)))
    groups = list(result.scalars().all())
    missing = set(ids) - {g.id for g in groups}
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown group id(s): {', '.join(map(str, sorted(missing)))}")
    return groups


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def email_taken(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.get("/", response_model=ListResponse[UserResponse])
async def list_users(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    search: Optional[str] = Query(None, description="Name or e-mail"),
    status: Optional[str] = Query(None, pattern="^(active|inactive|invited)$"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> Any:
    query = select(User)
    if search:
        query = query.where(or_(User.name.contains(search), User.email.contains(search.lower())))
    if status == "active":
        query = query.where(User.is_active == True, User.status == "active")
    elif status == "inactive":
        query = query.where(User.is_active == False)
    elif status == "invited":
        query = query.where(User.status == "invited")

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(query.order_by(User.created_at.desc(), User.id.desc()).offset(offset).limit(limit))
    users = result.scalars().all()
    return ListResponse(data=[UserResponse.model_validate(u) for u in users], total=total)


@router.post("/", response_model=ApiResponse[UserResponse], status_code=201)
async def create_user(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    user_in: UserCreate,
) -> Any:
    """Create a user with a password, or invite them to choose one"""
    if not user_in.email or not user_in.name:
        raise HTTPException(status_code=400, detail="Email and name are required")
    if not user_in.send_invitation and not user_in.password:
        raise HTTPException(status_code=400, detail="Password is required when not sending invitation")
    if not user_in.send_invitation:
        errors = validate_password_strength(user_in.password)
        if errors:
            raise HTTPException(status_code=400, detail=". ".join(errors))

    email = user_in.email.lower()
    if await email_taken(db, email):
        raise HTTPException(status_code=409, detail="A user with this email already exists")
    if user_in.send_invitation and not is_email_available():
        raise HTTPException(status_code=503, detail="Email service is not configured. Cannot send invitation.")

    groups = await load_groups(db, user_in.group_ids)
    user = User(
        email=email,
        name=user_in.name,
        password=hash_password(generate_random_token() if user_in.send_invitation else user_in.password),
        permission_level=user_in.permission_level,
        is_active=user_in.is_active,
        is_super_user=user_in.is_super_user,
        status="invited" if user_in.send_invitation else "active",
        groups=groups,
    )
    db.add(user)
    await db.flush()

    if user_in.send_invitation:
        add_audit_log(
            db, user.id, "invitation_created",
            new_status="invited",
            triggered_by=current_user.id,
            details={"email": email},
        )
        await db.commit()
        try:
            await send_invitation(db, user, triggered_by=current_user.id)
        except EmailUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))
    else:
        await db.commit()

    await db.refresh(user)
    logger.info(f"👤 {current_user.email} created user {user.email}")
    return ApiResponse(data=UserResponse.model_validate(user), message="User created")


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    user_id: int,
) -> Any:
    user = await get_user_or_404(db, user_id)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    user_id: int,
    user_in: UserUpdate,
) -> Any:
    user = await get_user_or_404(db, user_id)
    update_data = {
        field: value for field, value in user_in.model_dump(exclude_unset=True).items()
        if value is not None or field not in REQUIRED_FIELDS
    }

    # Demoting or deactivating the last active super-user would lock everybody out
    loses_super = update_data.get("is_super_user") is False or update_data.get("is_active") is False
    if user.is_super_user and user.is_active and loses_super:
        if await rbac.count_active_super_users(db, exclude_user_id=user.id) == 0:
            raise HTTPException(status_code=400, detail=LAST_SUPER_USER)

    if "email" in update_data:
        update_data["email"] = update_data["email"].lower()
        if await email_taken(db, update_data["email"], exclude_id=user.id):
            raise HTTPException(status_code=409, detail="A user with this email already exists")

    if "password" in update_data:
        password = update_data.pop("password")
        if password:
            errors = validate_password_strength(password)
            if errors:
                raise HTTPException(status_code=400, detail=". ".join(errors))
            user.password = hash_password(password)

    if "group_ids" in update_data:
        user.groups = await load_groups(db, update_data.pop("group_ids") or [])

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return ApiResponse(data=UserResponse.model_validate(user), message="User updated")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    user_id: int,
) -> Any:
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = await get_user_or_404(db, user_id)
    if user.is_super_user and user.is_active:
        if await rbac.count_active_super_users(db, exclude_user_id=user.id) == 0:
            raise HTTPException(status_code=400, detail=LAST_SUPER_USER)

    await db.delete(user)
    await db.commit()
    logger.info(f"🗑️ {current_user.email} deleted user {user.email}")
    return MessageResponse(message="User deleted")


@router.post("/{user_id}/invite", response_model=MessageResponse)
async def resend_invitation(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    user_id: int,
) -> Any:
    user = await get_user_or_404(db, user_id)
    if user.status != "invited":
        raise HTTPException(status_code=400, detail="User has already accepted the invitation")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Cannot invite an inactive user")
    try:
        result = await send_invitation(db, user, triggered_by=current_user.id)
    except EmailUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not result.success:
        raise HTTPException(status_code=502, detail=f"Failed to send invitation: {result.error}")
    return MessageResponse(message=f"Invitation sent to {user.email}")


@router.get("/{user_id}/permissions", response_model=ApiResponse[EffectivePermissions])
async def get_user_permissions(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    user_id: int,
) -> Any:
    user = await get_user_or_404(db, user_id)
    return ApiResponse(data=EffectivePermissions(**await rbac.get_user_effective_permissions(db, user)))

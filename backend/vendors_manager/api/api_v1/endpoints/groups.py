"""Permission groups (admin only)"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vendors_manager.core.deps import get_db, require_admin
from vendors_manager.models import PermissionGroup, ResourcePermission, User
from vendors_manager.schemas.access_control import GroupCreate, GroupMember, GroupResponse, GroupUpdate
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse

router = APIRouter()

REQUIRED_FIELDS = ("name",)


def group_query():
    return select(PermissionGroup).options(
        selectinload(PermissionGroup.members),
        selectinload(PermissionGroup.permissions).selectinload(ResourcePermission.resource),
    )


def build_group_response(group: PermissionGroup) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        is_system=bool(group.is_system),
        members=[GroupMember.model_validate(m) for m in group.members],
        resource_keys=sorted(p.resource.resource_key for p in group.permissions),
        created_at=group.created_at,
    )


async def get_group_or_404(db: AsyncSession, group_id: int) -> PermissionGroup:
    result = await db.execute(
        group_query().where(PermissionGroup.id == group_id).execution_options(populate_existing=True)
    )
    group = result.scalar_one_or_none()
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


async def load_members(db: AsyncSession, member_ids) -> list:
    ids = list(dict.fromkeys(member_ids))
    if not ids:
        return []
    result = await db.execute(select(User).where(User.id.in_(ids)))
    users = list(result.scalars().all())
    missing = set(ids) - {u.id for u in users}
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown user id(s): {', '.join(map(str, sorted(missing)))}")
    return users


async def name_taken(db: AsyncSession, name: str, exclude_id: int = None) -> bool:
    query = select(PermissionGroup.id).where(PermissionGroup.name == name)
    if exclude_id is not None:
        query = query.where(PermissionGroup.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.get("/", response_model=ListResponse[GroupResponse])
async def list_groups(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> Any:
    result = await db.execute(group_query().order_by(PermissionGroup.is_system.desc(), PermissionGroup.name))
    groups = result.scalars().all()
    return ListResponse(data=[build_group_response(g) for g in groups], total=len(groups))


@router.post("/", response_model=ApiResponse[GroupResponse], status_code=201)
async def create_group(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    group_in: GroupCreate,
) -> Any:
    if await name_taken(db, group_in.name):
        raise HTTPException(status_code=409, detail="A group with this name already exists")
    group = PermissionGroup(
        name=group_in.name,
        description=group_in.description,
        is_system=False,
        members=await load_members(db, group_in.member_ids),
    )
    db.add(group)
    await db.commit()
    return ApiResponse(data=build_group_response(await get_group_or_404(db, group.id)), message="Group created")


@router.get("/{group_id}", response_model=ApiResponse[GroupResponse])
async def get_group(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    group_id: int,
) -> Any:
    return ApiResponse(data=build_group_response(await get_group_or_404(db, group_id)))


@router.put("/{group_id}", response_model=ApiResponse[GroupResponse])
async def update_group(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    group_id: int,
    group_in: GroupUpdate,
) -> Any:
    group = await get_group_or_404(db, group_id)
    update_data = {
        field: value for field, value in group_in.model_dump(exclude_unset=True).items()
        if value is not None or field not in REQUIRED_FIELDS
    }

    if "name" in update_data and update_data["name"] != group.name:
        if group.is_system:
            raise HTTPException(status_code=400, detail="System groups cannot be renamed")
        if await name_taken(db, update_data["name"], exclude_id=group.id):
            raise HTTPException(status_code=409, detail="A group with this name already exists")

    if "member_ids" in update_data:
        group.members = await load_members(db, update_data.pop("member_ids") or [])

    for field, value in update_data.items():
        setattr(group, field, value)

    await db.commit()
    return ApiResponse(data=build_group_response(await get_group_or_404(db, group.id)), message="Group updated")


@router.delete("/{group_id}", response_model=MessageResponse)
async def delete_group(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
    group_id: int,
) -> Any:
    group = await get_group_or_404(db, group_id)
    if group.is_system:
        raise HTTPException(status_code=400, detail="System groups cannot be deleted")
    await db.delete(group)
    await db.commit()
    return MessageResponse(message="Group deleted")

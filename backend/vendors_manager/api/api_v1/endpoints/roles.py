"""Job roles"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_db, require_view, require_write
from vendors_manager.models import Role, User
from vendors_manager.schemas.common import ApiResponse, ListResponse, MessageResponse
from vendors_manager.schemas.role import RoleCreate, RoleResponse, RoleUpdate

router = APIRouter()


async def get_role_or_404(db: AsyncSession, role_id: int) -> Role:
    role = await db.get(Role, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


async def name_taken(db: AsyncSession, name: str, exclude_id: int = None) -> bool:
    query = select(Role.id).where(Role.name == name)
    if exclude_id is not None:
        query = query.where(Role.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.get("/", response_model=ListResponse[RoleResponse])
async def list_roles(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
) -> Any:
    roles = (await db.execute(select(Role).order_by(Role.name))).scalars().all()
    return ListResponse(data=[RoleResponse.model_validate(r) for r in roles], total=len(roles))


@router.post("/", response_model=ApiResponse[RoleResponse], status_code=201)
async def create_role(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    role_in: RoleCreate,
) -> Any:
    if await name_taken(db, role_in.name):
        raise HTTPException(status_code=409, detail="A role with this name already exists")
    role = Role(**role_in.model_dump())
    db.add(role)
    await db.commit()
    await db.refresh(role)
    return ApiResponse(data=RoleResponse.model_validate(role), message="Role created")


@router.get("/{role_id}", response_model=ApiResponse[RoleResponse])
async def get_role(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_view),
    role_id: int,
) -> Any:
    return ApiResponse(data=RoleResponse.model_validate(await get_role_or_404(db, role_id)))


@router.put("/{role_id}", response_model=ApiResponse[RoleResponse])
async def update_role(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    role_id: int,
    role_in: RoleUpdate,
) -> Any:
    role = await get_role_or_404(db, role_id)
    update_data = role_in.model_dump(exclude_unset=True)
    if update_data.get("name") and await name_taken(db, update_data["name"], exclude_id=role.id):
        raise HTTPException(status_code=409, detail="A role with this name already exists")
    for field, value in update_data.items():
        if field == "name" and not value:
            continue
        setattr(role, field, value)
    await db.commit()
    await db.refresh(role)
    return ApiResponse(data=RoleResponse.model_validate(role), message="Role updated")


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_write),
    role_id: int,
) -> Any:
    role = await get_role_or_404(db, role_id)
    await db.delete(role)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Role is in use by team members or rate cards")
    return MessageResponse(message="Role deleted")

"""Protectable resources, their grants and access checks"""

from dataclasses import asdict
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.deps import get_current_user, get_db, require_admin
from vendors_manager.core.logging_config import get_logger
from vendors_manager.models import PermissionGroup, ProtectableResource, User
from vendors_manager.schemas.access_control import (
    AccessCheckRequest,
    AccessCheckResult,
    EffectivePermissions,
    ResourcePermissionUpdate,
    ResourceResponse,
)
from vendors_manager.schemas.common import ApiResponse, ListResponse
from vendors_manager.services import rbac

logger = get_logger(__name__)

router = APIRouter()


def build_resource_response(resource: ProtectableResource) -> ResourceResponse:
    return ResourceResponse(
        id=resource.id,
        resource_key=resource.resource_key,
        type=resource.type,
        name=resource.name,
        description=resource.description,
        parent_key=resource.parent_key,
        path=resource.path,
        sort_order=resource.sort_order or 0,
        is_active=bool(resource.is_active),
        group_ids=sorted(p.group_id for p in resource.group_permissions),
        user_ids=sorted(p.user_id for p in resource.user_permissions),
        is_restricted=resource.is_restricted,
    )


async def check_ids_exist(db: AsyncSession, model, ids, label: str) -> None:
    if not ids:
        return
    result = await db.execute(select(model.id).where(model.id.in_(ids)))
    missing = set(ids) - set(result.scalars().all())
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown {label} id(s): {', '.join(map(str, sorted(missing)))}")


@router.get("/resources", response_model=ListResponse[ResourceResponse])
async def list_resources(
    *,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> Any:
    result = await db.execute(
        select(ProtectableResource).order_by(ProtectableResource.type, ProtectableResource.sort_order)
    )
    resources = result.scalars().all()
    return ListResponse(data=[build_resource_response(r) for r in resources], total=len(resources))


@router.put("/resources/{resource_key}/permissions", response_model=ApiResponse[ResourceResponse])
async def update_resource_permissions(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    resource_key: str,
    body: ResourcePermissionUpdate,
) -> Any:
    """Replace the groups and/or users granted on a resource"""
    resource = await rbac.get_resource_by_key(db, resource_key)
    if not resource:
        raise HTTPException(status_code=404, detail="Resource not found")

    if body.group_ids is not None:
        await check_ids_exist(db, PermissionGroup, body.group_ids, "group")
        rbac.set_resource_groups(resource, body.group_ids)
    if body.user_ids is not None:
        await check_ids_exist(db, User, body.user_ids, "user")
        rbac.set_resource_users(resource, body.user_ids)

    await db.commit()
    await db.refresh(resource)
    logger.info(f"🔐 {current_user.email} updated grants on {resource_key}")
    return ApiResponse(data=build_resource_response(resource), message="Permissions updated")


@router.post("/check", response_model=ApiResponse[List[AccessCheckResult]])
async def check_access(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    body: AccessCheckRequest,
) -> Any:
    """Check resource keys and/or a page path for the current user"""
    checks = await rbac.check_multiple_resources(db, current_user, body.resource_keys)
    results = [AccessCheckResult(**asdict(c)) for c in checks.values()]
    if body.path:
        results.append(AccessCheckResult(**asdict(await rbac.check_path_access(db, current_user, body.path))))
    return ApiResponse(data=results)


@router.get("/effective-permissions", response_model=ApiResponse[EffectivePermissions])
async def effective_permissions(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    return ApiResponse(data=EffectivePermissions(**await rbac.get_user_effective_permissions(db, current_user)))

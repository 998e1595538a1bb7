"""
Resource-level access control

Pages and components are registered as ProtectableResource rows. A resource
is open to every active user until a group or a user is granted on it; from
then on only grantees (and administrators) get through.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from vendors_manager.core.config import settings
from vendors_manager.core.logging_config import get_logger
from vendors_manager.core.permissions import (
    AccessSubject,
    ResourcePermissionCheck,
    ResourceRule,
    evaluate_resource_access,
)
from vendors_manager.core.security import hash_password
from vendors_manager.models import (
    PermissionGroup,
    ProtectableResource,
    ResourcePermission,
    User,
    UserResourcePermission,
)

logger = get_logger(__name__)

ADMINISTRATORS_GROUP = "Administrators"
ACCESS_CONTROL_RESOURCE = "page:settings-access-control"

# Static registry, inserted on startup (existing rows are never touched)
PROTECTABLE_RESOURCES: List[dict] = [
    {"resource_key": "page:dashboard", "type": "page", "name": "Dashboard", "description": "Main dashboard with overview metrics", "path": "/dashboard", "sort_order": 1},
    {"resource_key": "page:vendors", "type": "page", "name": "Vendors", "description": "Vendor management and listing", "path": "/vendors", "sort_order": 2},
    {"resource_key": "page:team-members", "type": "page", "name": "Team Members", "description": "Team member management", "path": "/team-members", "sort_order": 3},
    {"resource_key": "page:timesheet", "type": "page", "name": "Timesheet", "description": "Timesheet entries and tracking", "path": "/timesheet", "sort_order": 4},
    {"resource_key": "page:invoices", "type": "page", "name": "Invoices", "description": "Invoice management and validation", "path": "/invoices", "sort_order": 5},
    {"resource_key": "page:contracts", "type": "page", "name": "Contracts", "description": "Contract management", "path": "/contracts", "sort_order": 6},
    {"resource_key": "page:reporting", "type": "page", "name": "Delivery Reporting", "description": "Weekly delivery reports", "path": "/reporting", "sort_order": 7},
    {"resource_key": "page:settings", "type": "page", "name": "Settings", "description": "System settings and configuration", "path": "/settings", "sort_order": 9},
    {"resource_key": "page:settings-roles", "type": "page", "name": "Settings - Roles", "description": "Job role definitions", "path": "/settings/roles", "parent_key": "page:settings", "sort_order": 10},
    {"resource_key": "page:settings-rate-cards", "type": "page", "name": "Settings - Rate Cards", "description": "Vendor pricing templates", "path": "/settings/rate-cards", "parent_key": "page:settings", "sort_order": 11},
    {"resource_key": "page:settings-exchange-rates", "type": "page", "name": "Settings - Exchange Rates", "description": "Currency exchange rates", "path": "/settings/exchange-rates", "parent_key": "page:settings", "sort_order": 12},
    {"resource_key": "page:settings-access-control", "type": "page", "name": "Settings - Access Control", "description": "User and group management, permissions", "path": "/settings/access-control", "parent_key": "page:settings", "sort_order": 14},
    {"resource_key": "component:vendor-contract-period", "type": "component", "name": "Vendor Contract Period", "description": "Contract period section on vendor detail page", "parent_key": "page:vendors", "sort_order": 1},
    {"resource_key": "component:vendor-tags", "type": "component", "name": "Vendor Tags", "description": "Tags section on vendor detail page", "parent_key": "page:vendors", "sort_order": 2},
]


def build_subject(user: Optional[User]) -> Optional[AccessSubject]:
    if user is None:
        return None
    return AccessSubject(
        user_id=user.id,
        permission_level=user.permission_level,
        is_active=bool(user.is_active),
        is_super_user=bool(user.is_super_user),
        group_ids=frozenset(user.group_ids),
    )


def build_rule(resource: ProtectableResource) -> ResourceRule:
    return ResourceRule(
        resource_key=resource.resource_key,
        resource_type=resource.type,
        is_active=bool(resource.is_active),
        group_ids=frozenset(p.group_id for p in resource.group_permissions),
        user_ids=frozenset(p.user_id for p in resource.user_permissions),
    )


async def get_resource_by_key(db: AsyncSession, resource_key: str) -> Optional[ProtectableResource]:
    result = await db.execute(
        select(ProtectableResource).where(ProtectableResource.resource_key == resource_key)
    )
    return result.scalar_one_or_none()


async def check_resource_access(
    db: AsyncSession, user: Optional[User], resource_key: str
) -> ResourcePermissionCheck:
    resource = await get_resource_by_key(db, resource_key)
    rule = build_rule(resource) if resource else None
    return evaluate_resource_access(build_subject(user), resource_key, rule)


async def check_multiple_resources(
    db: AsyncSession, user: Optional[User], resource_keys: Iterable[str]
) -> Dict[str, ResourcePermissionCheck]:
    keys = list(dict.fromkeys(resource_keys))
    if not keys:
        return {}
    result = await db.execute(
        select(ProtectableResource).where(ProtectableResource.resource_key.in_(keys))
    )
    rules = {r.resource_key: build_rule(r) for r in result.scalars().all()}
    subject = build_subject(user)
    return {key: evaluate_resource_access(subject, key, rules.get(key)) for key in keys}


async def list_active_resources(db: AsyncSession) -> List[ProtectableResource]:
    result = await db.execute(
        select(ProtectableResource)
        .where(ProtectableResource.is_active == True)
        .order_by(ProtectableResource.type, ProtectableResource.sort_order)
    )
    return list(result.scalars().all())


async def get_user_effective_permissions(db: AsyncSession, user: User) -> dict:
    """Resource keys the user can open (direct grants + group grants + open resources)"""
    subject = build_subject(user)
    resources = await list_active_resources(db)
    accessible = [
        r.resource_key for r in resources
        if evaluate_resource_access(subject, r.resource_key, build_rule(r)).allowed
    ]
    return {
        "user_id": user.id,
        "is_super_user": bool(user.is_super_user),
        "permission_level": user.permission_level,
        "group_ids": sorted(user.group_ids),
        "accessible_resources": accessible,
    }


async def get_accessible_page_paths(db: AsyncSession, user: User) -> List[str]:
    subject = build_subject(user)
    resources = await list_active_resources(db)
    return [
        r.path for r in resources
        if r.type == "page" and r.path
        and evaluate_resource_access(subject, r.resource_key, build_rule(r)).allowed
    ]


async def check_path_access(db: AsyncSession, user: User, path: str) -> ResourcePermissionCheck:
    """Match a route to the most specific registered page and check it"""
    result = await db.execute(
        select(ProtectableResource).where(
            ProtectableResource.type == "page",
            ProtectableResource.path.isnot(None),
        )
    )
    pages = [p for p in result.scalars().all() if path == p.path or path.startswith(p.path.rstrip("/") + "/")]
    if not pages:
        return evaluate_resource_access(build_subject(user), path, None)
    page = max(pages, key=lambda p: len(p.path))
    return evaluate_resource_access(build_subject(user), page.resource_key, build_rule(page))


def set_resource_groups(resource: ProtectableResource, group_ids: Iterable[int]) -> None:
    """Replace the groups granted on a resource"""
    wanted = list(dict.fromkeys(group_ids))
    kept = [p for p in resource.group_permissions if p.group_id in wanted]
    kept_ids = {p.group_id for p in kept}
    resource.group_permissions = kept + [
        ResourcePermission(group_id=group_id) for group_id in wanted if group_id not in kept_ids
    ]


def set_resource_users(resource: ProtectableResource, user_ids: Iterable[int]) -> None:
    """Replace the users directly granted on a resource"""
    wanted = list(dict.fromkeys(user_ids))
    kept = [p for p in resource.user_permissions if p.user_id in wanted]
    kept_ids = {p.user_id for p in kept}
    resource.user_permissions = kept + [
        UserResourcePermission(user_id=user_id) for user_id in wanted if user_id not in kept_ids
    ]


async def count_active_super_users(db: AsyncSession, exclude_user_id: Optional[int] = None) -> int:
    query = select(func.count(User.id)).where(User.is_super_user == True, User.is_active == True)
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)
    result = await db.execute(query)
    return result.scalar() or 0


async def seed_protectable_resources(db: AsyncSession) -> int:
    """Insert registry entries that are missing, return how many were added"""
    result = await db.execute(select(ProtectableResource.resource_key))
    existing = set(result.scalars().all())
    added = 0
    for definition in PROTECTABLE_RESOURCES:
        if definition["resource_key"] in existing:
            continue
        db.add(ProtectableResource(**definition))
        added += 1
    if added:
        await db.flush()
    return added


async def ensure_administrators_group(db: AsyncSession) -> PermissionGroup:
    result = await db.execute(select(PermissionGroup).where(PermissionGroup.name == ADMINISTRATORS_GROUP))
    group = result.scalar_one_or_none()
    if group is None:
        group = PermissionGroup(
            name=ADMINISTRATORS_GROUP,
            description="Full access to access control settings",
            is_system=True,
        )
        db.add(group)
        await db.flush()

        resource = await get_resource_by_key(db, ACCESS_CONTROL_RESOURCE)
        if resource is not None:
            resource.group_permissions.append(ResourcePermission(group=group))
            await db.flush()
        logger.info(f"👥 Created system group '{ADMINISTRATORS_GROUP}'")
    return group


async def ensure_first_superuser(db: AsyncSession) -> Optional[User]:
    if not settings.FIRST_SUPERUSER_EMAIL or not settings.FIRST_SUPERUSER_PASSWORD:
        return None
    result = await db.execute(select(func.count(User.id)))
    if result.scalar():
        return None
    user = User(
        email=settings.FIRST_SUPERUSER_EMAIL.lower(),
        name=settings.FIRST_SUPERUSER_NAME,
        password=hash_password(settings.FIRST_SUPERUSER_PASSWORD),
        permission_level="admin",
        is_active=True,
        is_super_user=True,
        status="active",
    )
    db.add(user)
    await db.flush()
    logger.info(f"👤 Created bootstrap super-user {user.email}")
    return user


async def initialize_rbac(db: AsyncSession) -> dict:
    """Startup seed: resources, Administrators group, bootstrap super-user"""
    added = await seed_protectable_resources(db)
    await ensure_administrators_group(db)
    superuser = await ensure_first_superuser(db)
    await db.commit()
    return {"resources_added": added, "superuser_created": superuser is not None}

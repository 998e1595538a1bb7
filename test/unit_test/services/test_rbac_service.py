from sqlalchemy import select

from vendors_manager.core.config import settings
from vendors_manager.models import PermissionGroup, User
from vendors_manager.services.rbac import (
    ACCESS_CONTROL_RESOURCE,
    ADMINISTRATORS_GROUP,
    PROTECTABLE_RESOURCES,
    count_active_super_users,
    get_resource_by_key,
    initialize_rbac,
)


async def test_seed_is_insert_only(session):
    first = await initialize_rbac(session)
    assert first["resources_added"] == len(PROTECTABLE_RESOURCES)
    assert not first["superuser_created"]

    second = await initialize_rbac(session)
    assert second["resources_added"] == 0
    groups = (await session.execute(select(PermissionGroup))).scalars().all()
    assert [g.name for g in groups] == [ADMINISTRATORS_GROUP]
    assert groups[0].is_system


async def test_access_control_page_is_granted_to_administrators(session):
    await initialize_rbac(session)
    resource = await get_resource_by_key(session, ACCESS_CONTROL_RESOURCE)
    assert resource.is_restricted
    assert [p.group.name for p in resource.group_permissions] == [ADMINISTRATORS_GROUP]


async def test_bootstrap_super_user_only_on_empty_database(session, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_SUPERUSER_EMAIL", "Root@Example.com")
    monkeypatch.setattr(settings, "FIRST_SUPERUSER_PASSWORD", "Str0ng!Pass")

    result = await initialize_rbac(session)
    assert result["superuser_created"]
    user = (await session.execute(select(User))).scalar_one()
    assert user.email == "root@example.com"
    assert user.is_super_user
    assert await count_active_super_users(session) == 1
    assert await count_active_super_users(session, exclude_user_id=user.id) == 0

    again = await initialize_rbac(session)
    assert not again["superuser_created"]

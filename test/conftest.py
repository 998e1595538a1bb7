import os
from typing import AsyncGenerator

# Settings are read at import time
os.environ["SQLITE_DATABASE_URI"] = "sqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vendors_manager.core.deps import get_db
from vendors_manager.core.security import create_access_token, hash_password
from vendors_manager.db.base import Base
from vendors_manager.db.session import enable_sqlite_foreign_keys
from vendors_manager.main import app
from vendors_manager.models import Role, User, Vendor

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "Str0ng!Pass"


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session_maker = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client sharing the test session; the lifespan does not run under ASGITransport"""

    async def get_db_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db] = get_db_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session: AsyncSession):
    async def factory(
        email: str,
        permission_level: str = "view",
        is_super_user: bool = False,
        is_active: bool = True,
        status: str = "active",
        name: str = None,
    ) -> User:
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            password=hash_password(TEST_PASSWORD),
            permission_level=permission_level,
            is_super_user=is_super_user,
            is_active=is_active,
            status=status,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return factory


@pytest.fixture
def headers_for():
    def build(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}

    return build


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin@example.com", permission_level="admin", is_super_user=True, name="Admin")


@pytest_asyncio.fixture
async def writer(make_user) -> User:
    return await make_user("writer@example.com", permission_level="write", name="Writer")


@pytest_asyncio.fixture
async def viewer(make_user) -> User:
    return await make_user("viewer@example.com", permission_level="view", name="Viewer")


@pytest.fixture
def admin_headers(admin, headers_for) -> dict:
    return headers_for(admin)


@pytest.fixture
def writer_headers(writer, headers_for) -> dict:
    return headers_for(writer)


@pytest.fixture
def viewer_headers(viewer, headers_for) -> dict:
    return headers_for(viewer)


@pytest_asyncio.fixture
async def vendor(session: AsyncSession) -> Vendor:
    vendor = Vendor(name="Acme Digital", location="London", status="active")
    session.add(vendor)
    await session.commit()
    await session.refresh(vendor)
    return vendor


@pytest_asyncio.fixture
async def role(session: AsyncSession) -> Role:
    role = Role(name="Developer", description="Software developer")
    session.add(role)
    await session.commit()
    await session.refresh(role)
    return role

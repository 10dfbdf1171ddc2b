"""Shared test fixtures: single test DB for all test modules."""
from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from sqlalchemy.pool import StaticPool

from src.db.tables import Base
from src.db.engine import get_session

TEST_DB_URL = "sqlite+aiosqlite:///file:test?mode=memory&cache=shared&uri=true"

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)


async def override_get_session():
    async with TestSession() as session:
        yield session


# Override before any test module touches the app
from src.api.main import app  # noqa: E402

app.dependency_overrides[get_session] = override_get_session

import src.db.engine as _engine_mod  # noqa: E402
_engine_mod.async_session = TestSession
_engine_mod.engine = test_engine

from src.auth import issue_token  # noqa: E402
from src.db.repository import UserRepository  # noqa: E402


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create tables before each test, drop after."""
    import src.db.meal_plan_tables  # noqa: F401
    import src.db.access_tables  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session():
    """A raw session for seeding or inspecting rows directly."""
    async with TestSession() as session:
        yield session


@pytest.fixture
def make_user():
    """Factory: register a Google user, return dict(id, email, token, headers)."""

    async def _make(email: str, name: str = "", sub: str = "") -> dict:
        async with TestSession() as session:
            user, _ = await UserRepository(session).upsert_external(
                external_id=sub or f"google-{email}",
                email=email,
                name=name or email.split("@")[0].title(),
            )
            await session.commit()
        token = issue_token(user.id)
        return {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make


@pytest_asyncio.fixture
async def owner(make_user):
    return await make_user("owner@example.com", "Olive Owner")


@pytest_asyncio.fixture
async def guest(make_user):
    return await make_user("guest@example.com", "Gabe Guest")


@pytest_asyncio.fixture
async def stranger(make_user):
    return await make_user("stranger@example.com", "Sam Stranger")


@pytest_asyncio.fixture
async def plan(client, owner):
    """A plan named "Week 1" created through the API by ``owner``."""
    resp = await client.post("/api/meal-plans", headers=owner["headers"], json={
        "name": "Week 1", "description": "First week of the month",
    })
    assert resp.status_code == 201
    return resp.json()

"""
Pytest configuration and fixtures for async API testing.

Every test gets its own SQLite database file (sqlite+aiosqlite) with the
schema created up front, and the app's ``get_session`` dependency is
overridden to hand out sessions bound to it. No external services are used:
the AI assistant runs on its local fallback because OPENAI_API_KEY is empty.
"""
import os

# Settings are cached on first use, so the environment must be in place before
# anything under roombook is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["OPENAI_API_KEY"] = ""
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["APP_ENV"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


@pytest.fixture(scope="function")
async def async_engine(tmp_path):
    """Engine on a fresh database file with all tables created."""
    from roombook import models  # noqa: F401 - registers tables on Base.metadata
    from roombook.core.db import Base

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'roombook_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def client(session_factory):
    """
    Create FastAPI AsyncClient with database session override.

    Each request gets its own session, as it would in production.
    """
    # Import here so the environment above is applied first
    from roombook.main import app
    from roombook.core.db import get_session

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def register(client: AsyncClient, email: str = "ana@example.com", password: str = "secret123", name: str = "Ana"):
    response = await client.post("/auth/register", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def auth_headers(client: AsyncClient) -> dict:
    """Authorization header for a freshly registered client."""
    body = await register(client)
    return {"Authorization": f"Bearer {body['token']}"}


@pytest.fixture
async def other_auth_headers(client: AsyncClient) -> dict:
    """Authorization header for a second, unrelated client."""
    body = await register(client, email="bruno@example.com", name="Bruno")
    return {"Authorization": f"Bearer {body['token']}"}

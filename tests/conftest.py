import os

# Settings are read once and cached; configure before importing the app
os.environ["ENVIRONMENT"] = "DEV"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_DIR"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["S3_ACCESS_KEY"] = "test-access-key"
os.environ["S3_SECRET_KEY"] = "test-secret-key"
os.environ["S3_ENDPOINT_URL"] = "http://localhost:9000"
os.environ["STORAGE_BUCKET"] = "test-bucket"

from typing import AsyncGenerator, Dict

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from memoria.database import Base, get_db
from memoria.main import app
from memoria.models.user import User
from memoria.services.identity import IdentityService
from memoria.utils.prometheus_metrics import ready
from memoria.utils.security import create_access_token

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# Service-level session: flushes only, discarded after the test
@pytest_asyncio.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    ready.set(1)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(sub: str, **claims) -> Dict[str, str]:
    """Bearer header for an identity; profile claims allow auto provisioning."""
    claims.setdefault("email", f"{sub}@example.com")
    claims.setdefault("username", sub)
    claims.setdefault("name", sub.title())
    token = create_access_token(sub, **claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers() -> Dict[str, str]:
    return auth_headers("alice")


@pytest.fixture
def bob_headers() -> Dict[str, str]:
    return auth_headers("bob")


@pytest_asyncio.fixture
async def alice(db) -> User:
    return await IdentityService(db).sync_user("ext-alice", "alice@example.com", "Alice", "alice")


@pytest_asyncio.fixture
async def bob(db) -> User:
    return await IdentityService(db).sync_user("ext-bob", "bob@example.com", "Bob", "bob")


@pytest.fixture
def make_headers():
    return auth_headers

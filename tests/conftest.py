"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; configure before importing the app.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("SQLITE_PATH", ":memory:")
os.environ.pop("EMBEDDING_API_URL", None)

import pytest
from collections.abc import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from learning_buddy.api.deps import create_access_token
from learning_buddy.db.session import get_db, init_models
from learning_buddy.main import app

TEST_USER_ID = "teacher-123"


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory bound to a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(engine)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session on the in-memory database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def user_id() -> str:
    return TEST_USER_ID


@pytest.fixture
def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
async def client(session_factory, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    # The streaming route opens its own session
    monkeypatch.setattr("learning_buddy.db.session.AsyncSessionLocal", session_factory)
    # sse-starlette keeps a process-wide exit event bound to the first event loop
    monkeypatch.setattr("sse_starlette.sse.AppStatus.should_exit_event", None, raising=False)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

# tests/conftest.py

from __future__ import annotations

from typing import Any, Dict

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.session import build_engine, get_db, init_models
from app.features.tasks.repository import TaskRepository
from app.features.tasks.validation import validate_new_task
from app.main import app


@pytest.fixture()
async def engine():
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps the single connection alive so every session sees the
    same in-memory database.
    """
    test_engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as db:
        yield db


@pytest.fixture()
def repo(session: AsyncSession) -> TaskRepository:
    return TaskRepository(session)


@pytest.fixture()
def make_task(repo: TaskRepository):
    """Create a task through validation + repository, like the API does"""

    async def _make(**payload: Any):
        data: Dict[str, Any] = {"title": "Task"}
        data.update(payload)
        return await repo.create(validate_new_task(data).to_record())

    return _make


@pytest.fixture()
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as db:
            yield db

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()

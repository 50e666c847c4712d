"""Async test fixtures for TaskFlow tests using SQLite."""

from __future__ import annotations

from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from taskflow.config import TaskFlowSettings
from taskflow.database import build_session_factory
from taskflow.events import ChangeFeed
from taskflow.models.base import Base
from taskflow.sync.manager import SyncRegistry


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def change_feed():
    return ChangeFeed()


@pytest.fixture
def session_factory(engine, test_settings, change_feed):
    return build_session_factory(engine, test_settings, change_feed)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def user_id():
    return "user-1"


@pytest.fixture
def test_settings():
    return TaskFlowSettings(
        database_url="sqlite+aiosqlite:///:memory:",
        auth_tokens="user-1:secret-token",
        _env_file=None,
    )


@pytest.fixture
def make_client(engine, change_feed):
    """Build HTTPX clients for TaskFlow apps created from given settings."""
    from taskflow.app import create_app

    @asynccontextmanager
    async def _make(settings: TaskFlowSettings):
        app = create_app(settings)
        # ASGITransport does not run the lifespan; wire state the way it would.
        session_factory = build_session_factory(engine, settings, change_feed)
        app.state.change_feed = change_feed
        app.state.session_factory = session_factory
        app.state.sync_registry = SyncRegistry(
            session_factory,
            interval=settings.sync_interval_seconds,
            enabled=settings.enable_offline_sync,
        )

        transport = ASGITransport(app=app)
        try:
            async with AsyncClient(
                transport=transport,
                base_url="http://test",
                headers={"Authorization": "Bearer secret-token"},
            ) as c:
                yield c
        finally:
            await app.state.sync_registry.stop_all()

    return _make


@pytest_asyncio.fixture
async def client(make_client, test_settings):
    """HTTPX async test client against a TaskFlow app wired to the test engine."""
    async with make_client(test_settings) as c:
        yield c


@pytest.fixture
def open_session(engine, change_feed):
    """Open a session whose settings override the test defaults."""

    def _open(**overrides):
        settings = TaskFlowSettings(
            database_url="sqlite+aiosqlite:///:memory:", _env_file=None, **overrides
        )
        return build_session_factory(engine, settings, change_feed)()

    return _open

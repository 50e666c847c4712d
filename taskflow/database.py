"""Async database engine and session factory construction.

Nothing here runs at import time: the application factory (or the CLI, or a
test fixture) builds the engine and session factory and owns their lifecycle.
Sessions carry the settings they were built with in ``Session.info`` so
services read limits and defaults from the owning application.
"""

from __future__ import annotations

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import TaskFlowSettings
from .events import FEED_KEY, ChangeFeed
from .models import Base

SETTINGS_KEY = "settings"


def build_engine(settings: TaskFlowSettings) -> AsyncEngine:
    return create_async_engine(settings.database_url, echo=settings.echo_sql)


def build_session_factory(
    engine: AsyncEngine,
    settings: TaskFlowSettings,
    change_feed: ChangeFeed | None = None,
) -> async_sessionmaker[AsyncSession]:
    info = {SETTINGS_KEY: settings}
    if change_feed is not None:
        info[FEED_KEY] = change_feed
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, info=info)


def session_settings(db: AsyncSession) -> TaskFlowSettings:
    """Settings of the application that opened *db*."""
    return db.info[SETTINGS_KEY]


async def create_all(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request):
    """FastAPI dependency that yields an async session."""
    async with request.app.state.session_factory() as session:
        yield session

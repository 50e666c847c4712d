"""FastAPI application factory for TaskFlow."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import TaskFlowSettings, settings as default_settings
from .database import build_engine, build_session_factory, create_all
from .errors import ErrorCode, TaskFlowError
from .events import ChangeFeed
from .logging_setup import configure_logging
from .schemas.common import fail
from .sync.manager import SyncRegistry

log = logging.getLogger(__name__)


def create_app(settings: TaskFlowSettings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings)
        change_feed = ChangeFeed()
        session_factory = build_session_factory(engine, settings, change_feed)

        # Auto-create tables for SQLite (local dev); PostgreSQL uses Alembic migrations
        if "sqlite" in settings.database_url:
            await create_all(engine)

        app.state.engine = engine
        app.state.change_feed = change_feed
        app.state.session_factory = session_factory
        app.state.sync_registry = SyncRegistry(
            session_factory,
            interval=settings.sync_interval_seconds,
            enabled=settings.enable_offline_sync,
        )
        log.info("TaskFlow started (%s)", settings.environment)
        try:
            yield
        finally:
            await app.state.sync_registry.stop_all()
            await engine.dispose()

    app = FastAPI(title=settings.app_title, lifespan=lifespan)
    app.state.settings = settings

    @app.exception_handler(TaskFlowError)
    async def taskflow_error_handler(request: Request, exc: TaskFlowError):
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(exc.message, exc.code.value, exc.errors),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            f"{'.'.join(str(part) for part in err['loc'][1:])}: {err['msg']}"
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=fail("Invalid request", ErrorCode.INVALID_INPUT.value, errors),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        log.exception("Database error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=fail("Database operation failed", ErrorCode.DATABASE_ERROR.value),
        )

    from .routers import health, projects, sync, tags, tasks, users

    app.include_router(tasks.router)
    app.include_router(projects.router)
    app.include_router(tags.router)
    app.include_router(users.router)
    app.include_router(sync.router)
    app.include_router(health.router)
    return app


app = create_app()

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from librarian.api.v1 import get_api_router
from librarian.core.config import get_settings
from librarian.core.db import create_engine, create_session_factory
from librarian.core.logging import configure_logging, get_logger, level_from_name


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level), fmt=settings.log_format)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    logger = get_logger(component="app")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = session_factory
        logger.info("app_started", environment=settings.environment, job_backend=settings.normalized_job_backend)
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )
    app.include_router(get_api_router())
    return app


__all__ = ["create_app"]

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from librarian.core.auth import AuthContext, get_auth_context
from librarian.core.config import Settings, get_settings
from librarian.core.jobs import get_job_queue
from librarian.db.catalog import SqlCatalog
from librarian.services.library_service import LibraryService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover - defensive
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_app_settings() -> Settings:
    return get_settings()


async def get_library_service(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[LibraryService]:
    yield LibraryService(settings, SqlCatalog(session), get_job_queue())


LibraryServiceDependency = Annotated[LibraryService, Depends(get_library_service)]
AuthDependency = Annotated[AuthContext, Depends(get_auth_context)]


__all__ = [
    "get_session",
    "get_app_settings",
    "get_library_service",
    "LibraryServiceDependency",
    "AuthDependency",
]

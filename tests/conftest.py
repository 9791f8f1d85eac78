import asyncio
from pathlib import Path
from typing import Any

import jwt
import pytest
from fastapi.testclient import TestClient

from librarian.core.config import get_settings
from librarian.core.db import Base, create_engine, create_session_factory
from librarian.core.jobs import BaseJobQueue, get_job_queue
from librarian.core.locks import LocalPathLocks, get_path_locks
from librarian.db.catalog import SqlCatalog
from librarian.domain import JobName
from librarian.main import create_app


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default Librarian environment bootstrap fixture",
    )


def _clear_caches() -> None:
    get_settings.cache_clear()
    get_job_queue.cache_clear()
    get_path_locks.cache_clear()


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    if request.node.get_closest_marker("no_default_env"):
        _clear_caches()
        yield None
        _clear_caches()
        return
    db_path = tmp_path / "librarian_test.db"

    monkeypatch.setenv("LIBRARIAN_ENV", "test")
    monkeypatch.setenv("LIBRARIAN_LOG_LEVEL", "debug")
    monkeypatch.setenv("LIBRARIAN_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("LIBRARIAN_JOB_BACKEND", "inline")
    monkeypatch.setenv("LIBRARIAN_PATH_LOCK_BACKEND", "local")
    monkeypatch.setenv("LIBRARIAN_REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("LIBRARIAN_JWT_SECRET", "test-secret")
    monkeypatch.setenv("LIBRARIAN_JWT_ISSUER", "librarian-test")
    monkeypatch.setenv("LIBRARIAN_JWT_AUDIENCE", "librarian")

    _clear_caches()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_setup())

    yield settings

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_teardown())
    _clear_caches()


class RecordingJobQueue(BaseJobQueue):
    """Captures emitted jobs instead of running them."""

    def __init__(self) -> None:
        self.jobs: list[tuple[JobName, dict[str, Any]]] = []

    async def enqueue(self, name: JobName, payload: dict[str, Any]) -> None:
        self.jobs.append((name, dict(payload)))

    def of(self, name: JobName) -> list[dict[str, Any]]:
        return [payload for job_name, payload in self.jobs if job_name == name]

    def names(self) -> list[JobName]:
        return [job_name for job_name, _ in self.jobs]


@pytest.fixture()
def queue() -> RecordingJobQueue:
    return RecordingJobQueue()


@pytest.fixture()
def locks() -> LocalPathLocks:
    return LocalPathLocks(timeout_s=5)


@pytest.fixture()
def with_catalog(configure_environment):
    """Run ``fn(catalog)`` against the test database on a fresh engine and return its result."""

    settings = configure_environment

    def _run(fn):
        async def _inner():
            engine = create_engine(settings)
            try:
                async with create_session_factory(engine)() as session:
                    return await fn(SqlCatalog(session))
            finally:
                await engine.dispose()

        return asyncio.run(_inner())

    return _run


@pytest.fixture()
def media_root(tmp_path) -> Path:
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture()
def client(configure_environment):
    app = create_app()
    with TestClient(app) as client:
        yield client


def build_token(user_id: str, *, scopes: list[str] | None = None) -> str:
    payload: dict[str, Any] = {"sub": user_id, "iss": "librarian-test", "aud": "librarian"}
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, "test-secret", algorithm="HS256")


@pytest.fixture()
def user_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-1')}"}


@pytest.fixture()
def other_user_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token('user-2')}"}


def write_file(path: Path, payload: bytes = b"not really a jpeg") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path

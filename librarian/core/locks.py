from __future__ import annotations

import asyncio
import hashlib
import threading
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncContextManager, AsyncIterator

from redis import Redis

from librarian.domain.errors import PathLockTimeout

from .config import Settings, get_settings


def lock_key(library_id: str, path: str) -> str:
    digest = hashlib.sha1(path.encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"librarian:path-lock:{library_id}:{digest}"


class PathLocks(ABC):
    """Mutual exclusion per (library, path) around a worker's read-decide-write sequence."""

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s

    @abstractmethod
    def hold(self, library_id: str, path: str) -> AsyncContextManager[None]: ...


class LocalPathLocks(PathLocks):
    """Thread locks shared by every job running in this process."""

    def __init__(self, timeout_s: float):
        super().__init__(timeout_s)
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: dict[str, list] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def _abandon(self, key: str, lock: threading.Lock, done: "asyncio.Future[bool]") -> None:
        if not done.cancelled() and done.exception() is None and done.result():
            lock.release()
        self._checkin(key)

    @asynccontextmanager
    async def hold(self, library_id: str, path: str) -> AsyncIterator[None]:
        key = lock_key(library_id, path)
        lock = self._checkout(key)
        pending = asyncio.ensure_future(asyncio.to_thread(lock.acquire, True, self.timeout_s))
        try:
            acquired = await asyncio.shield(pending)
        except asyncio.CancelledError:
            # The acquiring thread keeps running; give the lock back once it returns.
            pending.add_done_callback(lambda done: self._abandon(key, lock, done))
            raise
        try:
            if not acquired:
                raise PathLockTimeout(f"Timed out waiting for lock on {path}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)


class RedisPathLocks(PathLocks):  # pragma: no cover - requires redis
    """Locks visible to every worker process connected to the same Redis."""

    def __init__(self, connection: Redis, timeout_s: float, lease_s: float = 300.0):
        super().__init__(timeout_s)
        self.connection = connection
        self.lease_s = lease_s

    @asynccontextmanager
    async def hold(self, library_id: str, path: str) -> AsyncIterator[None]:
        lock = self.connection.lock(lock_key(library_id, path), timeout=self.lease_s, blocking_timeout=self.timeout_s)
        acquired = await asyncio.to_thread(lock.acquire)
        if not acquired:
            raise PathLockTimeout(f"Timed out waiting for lock on {path}")
        try:
            yield
        finally:
            await asyncio.to_thread(lock.release)


def build_path_locks(settings: Settings) -> PathLocks:
    if settings.path_lock_backend == "redis":  # pragma: no cover - requires redis
        return RedisPathLocks(Redis.from_url(settings.redis_url), settings.path_lock_timeout_s)
    return LocalPathLocks(settings.path_lock_timeout_s)


@lru_cache()
def get_path_locks() -> PathLocks:
    return build_path_locks(get_settings())


__all__ = [
    "PathLocks",
    "LocalPathLocks",
    "RedisPathLocks",
    "build_path_locks",
    "get_path_locks",
    "lock_key",
]

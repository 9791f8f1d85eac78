from __future__ import annotations

import asyncio

import pytest

from librarian.core.db import create_engine, create_session_factory
from librarian.core.locks import LocalPathLocks, lock_key
from librarian.db.catalog import SqlCatalog
from librarian.db.models import LibraryType
from librarian.domain import JobName, LibraryJob, PathLockTimeout
from librarian.services.ingest_service import IngestService
from tests.conftest import write_file


def test_lock_key_is_scoped_by_library_and_path():
    assert lock_key("lib-1", "/a.jpg") == lock_key("lib-1", "/a.jpg")
    assert lock_key("lib-1", "/a.jpg") != lock_key("lib-2", "/a.jpg")
    assert lock_key("lib-1", "/a.jpg") != lock_key("lib-1", "/b.jpg")


def test_second_holder_times_out():
    locks = LocalPathLocks(timeout_s=0.05)

    async def _run():
        async with locks.hold("lib-1", "/a.jpg"):
            with pytest.raises(PathLockTimeout):
                async with locks.hold("lib-1", "/a.jpg"):
                    pass
            async with locks.hold("lib-1", "/b.jpg"):
                pass

    asyncio.run(_run())
    assert locks._locks == {}


def test_cancelled_waiter_does_not_strand_the_lock():
    locks = LocalPathLocks(timeout_s=1)

    async def _wait_for_lock():
        async with locks.hold("lib-1", "/a.jpg"):
            pass

    async def _run():
        async with locks.hold("lib-1", "/a.jpg"):
            abandoned = asyncio.ensure_future(_wait_for_lock())
            await asyncio.sleep(0.05)
            abandoned.cancel()
            with pytest.raises(asyncio.CancelledError):
                await abandoned
            follower = asyncio.ensure_future(_wait_for_lock())
            await asyncio.sleep(0.05)
        await follower
        await asyncio.sleep(0.1)

    asyncio.run(_run())
    assert locks._locks == {}


def test_lock_is_released_after_errors():
    locks = LocalPathLocks(timeout_s=0.05)

    async def _run():
        with pytest.raises(RuntimeError):
            async with locks.hold("lib-1", "/a.jpg"):
                raise RuntimeError("boom")
        async with locks.hold("lib-1", "/a.jpg"):
            pass

    asyncio.run(_run())


def test_concurrent_refreshes_of_one_path_create_one_asset(configure_environment, queue, locks, media_root):
    settings = configure_environment
    photo = write_file(media_root / "a.jpg")

    async def _run():
        engine = create_engine(settings)
        factory = create_session_factory(engine)
        try:
            async with factory() as session:
                library = await SqlCatalog(session).create_library(
                    owner_id="user-1", name="Photos", type=LibraryType.IMPORT
                )
            job = LibraryJob(asset_path=str(photo), owner_id="user-1", library_id=library.id)

            async def _refresh():
                async with factory() as session:
                    return await IngestService(settings, SqlCatalog(session), queue, locks).refresh_file(job)

            results = await asyncio.gather(_refresh(), _refresh())
            async with factory() as session:
                assets = await SqlCatalog(session).get_assets_by_library([library.id])
            return results, assets
        finally:
            await engine.dispose()

    results, assets = asyncio.run(_run())

    assert results == [True, True]
    assert len(assets) == 1
    assert queue.names() == [JobName.METADATA_EXTRACTION]


def test_unlocked_concurrent_refreshes_still_create_one_asset(configure_environment, queue, media_root):
    settings = configure_environment
    photo = write_file(media_root / "a.jpg")

    async def _run():
        engine = create_engine(settings)
        factory = create_session_factory(engine)
        try:
            async with factory() as session:
                library = await SqlCatalog(session).create_library(
                    owner_id="user-1", name="Photos", type=LibraryType.IMPORT
                )
            job = LibraryJob(asset_path=str(photo), owner_id="user-1", library_id=library.id)

            async def _refresh():
                async with factory() as session:
                    service = IngestService(settings, SqlCatalog(session), queue, LocalPathLocks(timeout_s=5))
                    return await service.refresh_file(job)

            results = await asyncio.gather(_refresh(), _refresh())
            async with factory() as session:
                assets = await SqlCatalog(session).get_assets_by_library([library.id])
            return results, assets
        finally:
            await engine.dispose()

    results, assets = asyncio.run(_run())

    assert results == [True, True]
    assert len(assets) == 1


class StaleReadCatalog(SqlCatalog):
    """Misses the asset on its first lookup, as if another worker inserted it just after."""

    def __init__(self, session):
        super().__init__(session)
        self.lookups = 0

    async def get_asset_by_library_and_path(self, library_id, path):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return await super().get_asset_by_library_and_path(library_id, path)


def test_insert_conflict_updates_the_existing_asset(configure_environment, queue, locks, media_root):
    settings = configure_environment
    photo = write_file(media_root / "a.jpg")

    async def _run():
        engine = create_engine(settings)
        factory = create_session_factory(engine)
        try:
            async with factory() as session:
                catalog = SqlCatalog(session)
                library = await catalog.create_library(owner_id="user-1", name="Photos", type=LibraryType.IMPORT)
                job = LibraryJob(asset_path=str(photo), owner_id="user-1", library_id=library.id)
                await IngestService(settings, catalog, queue, locks).refresh_file(job)
                first = await catalog.get_asset_by_library_and_path(library.id, str(photo))

            async with factory() as session:
                stale = StaleReadCatalog(session)
                result = await IngestService(settings, stale, queue, locks).refresh_file(job)
                lookups = stale.lookups

            async with factory() as session:
                assets = await SqlCatalog(session).get_assets_by_library([library.id])
            return first.id, result, lookups, assets
        finally:
            await engine.dispose()

    first_id, result, lookups, assets = asyncio.run(_run())

    assert result is True
    assert lookups == 2
    assert [asset.id for asset in assets] == [first_id]
    assert queue.names() == [JobName.METADATA_EXTRACTION, JobName.METADATA_EXTRACTION]

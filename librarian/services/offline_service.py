from __future__ import annotations

from librarian.core.locks import PathLocks
from librarian.core.logging import get_logger
from librarian.db.catalog import Catalog
from librarian.domain import LibraryJob, NotFoundError
from librarian.library.crawler import normalize_path


class OfflineService:
    """Handles cataloged paths that the last crawl did not find on disk."""

    def __init__(self, catalog: Catalog, locks: PathLocks):
        self.catalog = catalog
        self.locks = locks
        self.logger = get_logger(component="offline_service")

    async def mark_offline(self, job: LibraryJob) -> bool:
        asset_path = normalize_path(job.asset_path)
        async with self.locks.hold(job.library_id, asset_path):
            existing = await self.catalog.get_asset_by_library_and_path(job.library_id, asset_path)
            if existing is None:
                raise NotFoundError(f"Asset does not exist in database: {asset_path}")

            if job.empty_trash:
                await self.catalog.delete_asset(existing.id)
                self.logger.info("asset_removed", library_id=job.library_id, asset_path=asset_path, asset_id=existing.id)
            else:
                await self.catalog.update_asset(existing.id, {"is_offline": True})
                self.logger.info(
                    "asset_marked_offline", library_id=job.library_id, asset_path=asset_path, asset_id=existing.id
                )
        return True


__all__ = ["OfflineService"]

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Sequence

from librarian.core.config import Settings
from librarian.core.jobs import BaseJobQueue
from librarian.core.logging import get_logger
from librarian.db.catalog import Catalog
from librarian.db.models import Library, LibraryType
from librarian.domain import InvalidRequestError, JobName, LibraryJob, NotFoundError
from librarian.library.crawler import LibraryCrawler, normalize_path


@dataclass(slots=True)
class RefreshStats:
    crawled: int = 0
    queued_refresh: int = 0
    queued_offline: int = 0


class LibraryService:
    def __init__(
        self,
        settings: Settings,
        catalog: Catalog,
        queue: BaseJobQueue,
        crawler: LibraryCrawler | None = None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.queue = queue
        self.crawler = crawler or LibraryCrawler(follow_symlinks=settings.crawl_follow_symlinks)
        self.logger = get_logger(component="library_service")

    async def create(
        self,
        *,
        owner_id: str,
        name: str,
        library_type: LibraryType,
        is_visible: bool = True,
    ) -> Library:
        library = await self.catalog.create_library(
            owner_id=owner_id, name=name, type=library_type, is_visible=is_visible
        )
        self.logger.info("library_created", library_id=library.id, owner_id=owner_id, type=library_type.value)
        return library

    async def get(self, *, owner_id: str, library_id: str) -> Library:
        library = await self.catalog.get_library(library_id)
        if library is None or library.owner_id != owner_id:
            raise NotFoundError("Library not found")
        return library

    async def get_all(self, *, owner_id: str) -> Sequence[Library]:
        return await self.catalog.get_libraries_by_owner(owner_id)

    async def get_count(self, *, owner_id: str) -> int:
        return await self.catalog.count_libraries_by_owner(owner_id)

    async def get_import_paths(self, *, owner_id: str, library_id: str) -> list[str]:
        library = await self.get(owner_id=owner_id, library_id=library_id)
        return list(library.import_paths)

    async def set_import_paths(self, *, owner_id: str, library_id: str, paths: list[str]) -> Library:
        library = await self.get(owner_id=owner_id, library_id=library_id)
        if library.type != LibraryType.IMPORT:
            raise InvalidRequestError("Can only set import paths on an Import type library")
        relative = [path for path in paths if not os.path.isabs(path)]
        if relative:
            raise InvalidRequestError(f"Import paths must be absolute: {relative[0]}")
        normalized = list(dict.fromkeys(normalize_path(path) for path in paths))
        updated = await self.catalog.set_library_import_paths(library_id, normalized)
        self.logger.info("library_import_paths_set", library_id=library_id, import_paths=normalized)
        return updated

    async def refresh(
        self,
        *,
        owner_id: str,
        library_id: str,
        force_refresh: bool = False,
        empty_trash: bool = False,
    ) -> RefreshStats:
        """Diff the library's import paths against its catalog and queue one job per divergent path.

        Both views are fully materialised before the first job is queued, so a
        crawl or catalog failure leaves nothing half-emitted.
        """
        library = await self.get(owner_id=owner_id, library_id=library_id)
        if library.type != LibraryType.IMPORT:
            self.logger.error("library_refresh_rejected", library_id=library_id, type=library.type.value)
            raise InvalidRequestError("Only imported libraries can be refreshed")

        crawled = await asyncio.to_thread(self._crawl, list(library.import_paths))
        assets = await self.catalog.get_assets_by_library([library_id])
        cataloged = {normalize_path(asset.original_path) for asset in assets}

        stats = RefreshStats(crawled=len(crawled))
        for asset_path in sorted(crawled):
            job = LibraryJob(
                asset_path=asset_path,
                owner_id=library.owner_id,
                library_id=library_id,
                force_refresh=force_refresh,
                empty_trash=empty_trash,
            )
            await self.queue.enqueue(JobName.REFRESH_LIBRARY_FILE, job.model_dump())
            stats.queued_refresh += 1

        for asset_path in sorted(cataloged - crawled):
            job = LibraryJob(
                asset_path=asset_path,
                owner_id=library.owner_id,
                library_id=library_id,
                force_refresh=False,
                empty_trash=empty_trash,
            )
            await self.queue.enqueue(JobName.OFFLINE_LIBRARY_FILE, job.model_dump())
            stats.queued_offline += 1

        self.logger.info(
            "library_refresh_queued",
            library_id=library_id,
            requested_by=owner_id,
            force_refresh=force_refresh,
            empty_trash=empty_trash,
            crawled=stats.crawled,
            queued_refresh=stats.queued_refresh,
            queued_offline=stats.queued_offline,
        )
        return stats

    def _crawl(self, import_paths: list[str]) -> set[str]:
        return {normalize_path(path) for path in self.crawler.find_all_media(import_paths)}


__all__ = ["LibraryService", "RefreshStats", "normalize_path"]

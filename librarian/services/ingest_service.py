from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError

from librarian.core.config import Settings
from librarian.core.jobs import BaseJobQueue
from librarian.core.locks import PathLocks
from librarian.core.logging import get_logger
from librarian.db.catalog import Catalog
from librarian.db.models import Asset, AssetType
from librarian.domain import AssetJob, InvalidRequestError, JobName, LibraryJob, UnprocessableAssetError
from librarian.ingest.asset_id import FileStat, compute_checksum, derive_device_asset_id, detect_sidecar, stat_file
from librarian.library.crawler import normalize_path
from librarian.library.mime import Classifier, MediaClassifier, asset_type_for

LIBRARY_DEVICE_ID = "Library Import"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class IngestService:
    """Decides, per crawled path, whether the file must be (re)imported and writes the asset."""

    def __init__(
        self,
        settings: Settings,
        catalog: Catalog,
        queue: BaseJobQueue,
        locks: PathLocks,
        classifier: Classifier | None = None,
    ):
        self.settings = settings
        self.catalog = catalog
        self.queue = queue
        self.locks = locks
        self.classifier = classifier or MediaClassifier()
        self.logger = get_logger(component="ingest_service")

    async def refresh_file(self, job: LibraryJob) -> bool:
        asset_path = normalize_path(job.asset_path)
        logger = self.logger.bind(library_id=job.library_id, asset_path=asset_path)

        async with self.locks.hold(job.library_id, asset_path):
            existing = await self.catalog.get_asset_by_library_and_path(job.library_id, asset_path)
            try:
                stat = await asyncio.to_thread(stat_file, asset_path)
            except OSError as exc:
                if existing is None:
                    raise InvalidRequestError(f"Can't access file: {asset_path}") from exc
                if not existing.is_offline:
                    await self.catalog.update_asset(existing.id, {"is_offline": True})
                logger.info("asset_marked_offline", asset_id=existing.id, error=str(exc))
                return True

            if existing is not None and existing.is_offline:
                existing = await self.catalog.update_asset(existing.id, {"is_offline": False})
                logger.info("asset_back_online", asset_id=existing.id)

            if not self._needs_import(job, existing, stat):
                logger.debug("asset_unchanged", asset_id=existing.id if existing else None)
                return True

            asset = await self._import(job, asset_path, stat, existing)
            logger.info(
                "asset_imported",
                asset_id=asset.id,
                asset_type=asset.type.value,
                reimport=existing is not None,
                sidecar_path=asset.sidecar_path,
            )

        await self.queue.enqueue(JobName.METADATA_EXTRACTION, AssetJob(id=asset.id).model_dump())
        if asset.type == AssetType.VIDEO:
            await self.queue.enqueue(JobName.VIDEO_CONVERSION, {"id": asset.id})
        return True

    @staticmethod
    def _needs_import(job: LibraryJob, existing: Asset | None, stat: FileStat) -> bool:
        if job.force_refresh or existing is None:
            return True
        return _as_utc(existing.file_modified_at) != stat.modified_at

    async def _import(self, job: LibraryJob, asset_path: str, stat: FileStat, existing: Asset | None) -> Asset:
        mime_type = self.classifier.lookup(asset_path)
        if not mime_type:
            raise UnprocessableAssetError(f"Cannot determine mime type of asset: {asset_path}")
        if not self.classifier.is_supported(asset_path):
            raise UnprocessableAssetError(f"Unsupported file type {mime_type}")

        checksum = await asyncio.to_thread(
            compute_checksum, asset_path, chunk_size=self.settings.checksum_chunk_size
        )
        sidecar_path = await asyncio.to_thread(detect_sidecar, asset_path)

        fields: dict[str, Any] = {
            "checksum": checksum,
            "device_asset_id": derive_device_asset_id(asset_path, stat.size_bytes),
            "file_created_at": stat.created_at,
            "file_modified_at": stat.modified_at,
            "type": asset_type_for(mime_type),
            "sidecar_path": sidecar_path,
            "is_read_only": True,
            "is_offline": False,
        }
        if existing is not None:
            return await self.catalog.update_asset(existing.id, fields)

        try:
            return await self.catalog.create_asset(
                {
                    **fields,
                    "owner_id": job.owner_id,
                    "library_id": job.library_id,
                    "original_path": asset_path,
                    "original_file_name": os.path.splitext(os.path.basename(asset_path))[0],
                    "device_id": LIBRARY_DEVICE_ID,
                }
            )
        except IntegrityError:
            # A worker outside this lock scope inserted the same path first.
            winner = await self.catalog.get_asset_by_library_and_path(job.library_id, asset_path)
            if winner is None:
                raise
            self.logger.warning("asset_create_conflict", library_id=job.library_id, asset_path=asset_path)
            return await self.catalog.update_asset(winner.id, fields)


__all__ = ["IngestService", "LIBRARY_DEVICE_ID"]

from __future__ import annotations

import asyncio
from typing import Any

from rq import get_current_job

from librarian.core.config import get_settings
from librarian.core.db import create_engine, create_session_factory
from librarian.core.jobs import get_job_queue
from librarian.core.locks import get_path_locks
from librarian.core.logging import configure_logging, get_logger, level_from_name
from librarian.db.catalog import SqlCatalog
from librarian.domain import JobName, LibraryJob, is_permanent
from librarian.services.ingest_service import IngestService
from librarian.services.offline_service import OfflineService


def _disable_retries() -> None:
    current = get_current_job()
    if current is not None:  # pragma: no cover - only set inside an RQ worker
        current.retries_left = 0


def run_job(job_name: str, payload: dict[str, Any]) -> bool:
    """Entry-point executed by the job backend (RQ or inline)."""

    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level), fmt=settings.log_format)
    name = JobName(job_name)
    job = LibraryJob.model_validate(payload)
    logger = get_logger(job_name=name.value, library_id=job.library_id, asset_path=job.asset_path)

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    async def _runner() -> bool:
        try:
            async with session_factory() as session:
                catalog = SqlCatalog(session)
                if name == JobName.REFRESH_LIBRARY_FILE:
                    service = IngestService(settings, catalog, get_job_queue(), get_path_locks())
                    return await service.refresh_file(job)
                if name == JobName.OFFLINE_LIBRARY_FILE:
                    return await OfflineService(catalog, get_path_locks()).mark_offline(job)
                raise ValueError(f"Unsupported library job: {name.value}")
        finally:
            await engine.dispose()

    try:
        return asyncio.run(_runner())
    except Exception as exc:
        if is_permanent(exc):
            logger.error("job_failed_permanently", error=str(exc), error_type=type(exc).__name__)
            _disable_retries()
        else:
            logger.exception("job_failed_transiently")
        raise


__all__ = ["run_job"]

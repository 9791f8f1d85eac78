from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any

from redis import Redis
from rq import Queue, Retry

from librarian.domain.jobs import LIBRARY_JOBS, JobName

from .config import Settings, get_settings
from .logging import get_logger


class BaseJobQueue(ABC):
    """Fire-and-forget job submission with at-least-once delivery."""

    @abstractmethod
    async def enqueue(self, name: JobName, payload: dict[str, Any]) -> None: ...


class ImmediateJobQueue(BaseJobQueue):
    """Runs library jobs right away in a worker thread; failures are logged, never raised to the producer."""

    def __init__(self) -> None:
        self.logger = get_logger(component="job_queue", backend="immediate")

    async def enqueue(self, name: JobName, payload: dict[str, Any]) -> None:
        if name not in LIBRARY_JOBS:
            self.logger.info("job_without_local_consumer", job_name=name.value, payload=payload)
            return

        from librarian.workers.tasks import run_job

        try:
            await asyncio.to_thread(run_job, name.value, payload)
        except Exception as exc:
            # run_job already logged the failure with its traceback.
            self.logger.warning(
                "job_failed", job_name=name.value, asset_path=payload.get("asset_path"), error=str(exc)
            )


class RQJobQueue(BaseJobQueue):
    def __init__(self, library_queue: Queue, downstream_queue: Queue, *, downstream_module: str, retry: Retry | None):
        self.library_queue = library_queue
        self.downstream_queue = downstream_queue
        self.downstream_module = downstream_module
        self.retry = retry

    async def enqueue(self, name: JobName, payload: dict[str, Any]) -> None:  # pragma: no cover - requires redis
        if name in LIBRARY_JOBS:
            from librarian.workers.tasks import run_job

            self.library_queue.enqueue(run_job, name.value, payload, retry=self.retry)
            return
        # Downstream processors live outside this package; RQ resolves the dotted path on their workers.
        self.downstream_queue.enqueue(f"{self.downstream_module}.{name.value.lower()}", payload)


def build_rq_queue(settings: Settings) -> RQJobQueue:  # pragma: no cover - requires redis
    connection = Redis.from_url(settings.redis_url)
    retry = Retry(max=settings.job_max_retries, interval=settings.retry_intervals) if settings.job_max_retries else None
    return RQJobQueue(
        Queue(settings.job_queue_name, connection=connection),
        Queue(settings.downstream_queue_name, connection=connection),
        downstream_module=settings.downstream_task_module,
        retry=retry,
    )


@lru_cache()
def get_job_queue() -> BaseJobQueue:
    settings = get_settings()
    backend = settings.normalized_job_backend
    if backend == "immediate":
        return ImmediateJobQueue()
    if backend == "rq":  # pragma: no cover - requires redis
        return build_rq_queue(settings)
    raise ValueError(f"Unsupported job backend: {settings.job_queue_backend}")


__all__ = ["BaseJobQueue", "ImmediateJobQueue", "RQJobQueue", "build_rq_queue", "get_job_queue"]

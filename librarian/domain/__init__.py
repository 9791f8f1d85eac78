"""Domain value objects and error types reused by the API, services and workers."""

from librarian.domain.errors import (
    InvalidRequestError,
    LibrarianError,
    NotFoundError,
    PathLockTimeout,
    UnprocessableAssetError,
    is_permanent,
)
from librarian.domain.jobs import LIBRARY_JOBS, AssetJob, JobName, LibraryJob

__all__ = [
    "AssetJob",
    "JobName",
    "LIBRARY_JOBS",
    "LibraryJob",
    "LibrarianError",
    "InvalidRequestError",
    "NotFoundError",
    "UnprocessableAssetError",
    "PathLockTimeout",
    "is_permanent",
]

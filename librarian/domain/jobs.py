from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field


class JobName(str, enum.Enum):
    REFRESH_LIBRARY_FILE = "REFRESH_LIBRARY_FILE"
    OFFLINE_LIBRARY_FILE = "OFFLINE_LIBRARY_FILE"
    METADATA_EXTRACTION = "METADATA_EXTRACTION"
    VIDEO_CONVERSION = "VIDEO_CONVERSION"


LIBRARY_JOBS = frozenset({JobName.REFRESH_LIBRARY_FILE, JobName.OFFLINE_LIBRARY_FILE})


class LibraryJob(BaseModel):
    """One unit of reconciliation work, scoped to a single path of a single library."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    asset_path: str = Field(..., min_length=1)
    owner_id: str
    library_id: str
    force_refresh: bool = False
    empty_trash: bool = False


class AssetJob(BaseModel):
    """Payload handed to downstream processors for a freshly imported asset."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    source: str = "upload"


__all__ = ["JobName", "LIBRARY_JOBS", "LibraryJob", "AssetJob"]

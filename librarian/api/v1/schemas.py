from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from librarian.db.models import LibraryType


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Health status indicator.")
    time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CreateLibraryRequest(BaseModel):
    name: str = Field(..., min_length=1, json_schema_extra={"example": "Family photos"})
    library_type: LibraryType = Field(..., json_schema_extra={"example": "IMPORT"})
    is_visible: bool = True


class LibraryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    type: LibraryType
    import_paths: List[str]
    is_visible: bool
    created_at: datetime
    updated_at: datetime


class LibraryCountResponse(BaseModel):
    count: int


class SetImportPathsRequest(BaseModel):
    import_paths: List[str] = Field(..., json_schema_extra={"example": ["/mnt/media/photos"]})


class ImportPathsResponse(BaseModel):
    import_paths: List[str]


class RefreshLibraryRequest(BaseModel):
    force_refresh: bool = Field(default=False, description="Re-import every file regardless of its modification time.")
    empty_trash: bool = Field(default=False, description="Delete assets whose files are gone instead of marking them offline.")


class RefreshLibraryResponse(BaseModel):
    library_id: str
    crawled: int
    queued_refresh: int
    queued_offline: int


__all__ = [
    "HealthResponse",
    "CreateLibraryRequest",
    "LibraryResponse",
    "LibraryCountResponse",
    "SetImportPathsRequest",
    "ImportPathsResponse",
    "RefreshLibraryRequest",
    "RefreshLibraryResponse",
]

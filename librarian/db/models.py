from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Index, LargeBinary, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from librarian.core.db import Base


class LibraryType(str, enum.Enum):
    IMPORT = "IMPORT"
    UPLOAD = "UPLOAD"


class AssetType(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    OTHER = "OTHER"


class Library(Base):
    __tablename__ = "libraries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[LibraryType] = mapped_column(Enum(LibraryType), nullable=False)
    import_paths: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    assets: Mapped[List["Asset"]] = relationship(back_populates="library", cascade="all, delete-orphan")


class Asset(Base):
    __tablename__ = "assets"
    __table_args__ = (
        UniqueConstraint("library_id", "original_path", name="uq_assets_library_original_path"),
        Index("ix_assets_owner_id", "owner_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    library_id: Mapped[str] = mapped_column(ForeignKey("libraries.id", ondelete="CASCADE"), nullable=False)
    original_path: Mapped[str] = mapped_column(String(4096), nullable=False)
    original_file_name: Mapped[str] = mapped_column(String(1024), nullable=False)
    device_asset_id: Mapped[str] = mapped_column(String(1024), nullable=False)
    device_id: Mapped[str] = mapped_column(String(64), nullable=False)
    checksum: Mapped[bytes] = mapped_column(LargeBinary(20), nullable=False)
    type: Mapped[AssetType] = mapped_column(Enum(AssetType), nullable=False)
    file_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    file_modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_offline: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_read_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sidecar_path: Mapped[Optional[str]] = mapped_column(String(4096), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    library: Mapped[Library] = relationship(back_populates="assets")


__all__ = [
    "Library",
    "Asset",
    "LibraryType",
    "AssetType",
]

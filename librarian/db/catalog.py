from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Sequence
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from librarian.db.models import Asset, Library, LibraryType
from librarian.domain.errors import NotFoundError


class Catalog(ABC):
    """CRUD over library and asset records. Every mutation is a single-row write."""

    @abstractmethod
    async def get_library(self, library_id: str) -> Library | None: ...

    @abstractmethod
    async def create_library(
        self, *, owner_id: str, name: str, type: LibraryType, is_visible: bool = True
    ) -> Library: ...

    @abstractmethod
    async def get_libraries_by_owner(self, owner_id: str) -> Sequence[Library]: ...

    @abstractmethod
    async def count_libraries_by_owner(self, owner_id: str) -> int: ...

    @abstractmethod
    async def set_library_import_paths(self, library_id: str, paths: list[str]) -> Library: ...

    @abstractmethod
    async def get_assets_by_library(self, library_ids: Iterable[str]) -> Sequence[Asset]: ...

    @abstractmethod
    async def get_asset_by_library_and_path(self, library_id: str, path: str) -> Asset | None: ...

    @abstractmethod
    async def create_asset(self, fields: dict[str, Any]) -> Asset: ...

    @abstractmethod
    async def update_asset(self, asset_id: str, fields: dict[str, Any]) -> Asset: ...

    @abstractmethod
    async def delete_asset(self, asset_id: str) -> None: ...


class SqlCatalog(Catalog):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_library(self, library_id: str) -> Library | None:
        return await self.session.get(Library, library_id)

    async def create_library(
        self, *, owner_id: str, name: str, type: LibraryType, is_visible: bool = True
    ) -> Library:
        library = Library(
            id=str(uuid4()),
            owner_id=owner_id,
            name=name,
            type=type,
            import_paths=[],
            is_visible=is_visible,
        )
        self.session.add(library)
        await self.session.commit()
        await self.session.refresh(library)
        return library

    async def get_libraries_by_owner(self, owner_id: str) -> Sequence[Library]:
        stmt = select(Library).where(Library.owner_id == owner_id).order_by(Library.created_at, Library.id)
        return (await self.session.execute(stmt)).scalars().all()

    async def count_libraries_by_owner(self, owner_id: str) -> int:
        stmt = select(func.count()).select_from(Library).where(Library.owner_id == owner_id)
        return int((await self.session.execute(stmt)).scalar_one())

    async def set_library_import_paths(self, library_id: str, paths: list[str]) -> Library:
        library = await self.get_library(library_id)
        if library is None:
            raise NotFoundError(f"Library not found: {library_id}")
        library.import_paths = list(paths)
        await self.session.commit()
        await self.session.refresh(library)
        return library

    async def get_assets_by_library(self, library_ids: Iterable[str]) -> Sequence[Asset]:
        ids = list(library_ids)
        if not ids:
            return []
        stmt = select(Asset).where(Asset.library_id.in_(ids))
        return (await self.session.execute(stmt)).scalars().all()

    async def get_asset_by_library_and_path(self, library_id: str, path: str) -> Asset | None:
        stmt = select(Asset).where(Asset.library_id == library_id, Asset.original_path == path)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create_asset(self, fields: dict[str, Any]) -> Asset:
        asset = Asset(id=str(uuid4()), **fields)
        self.session.add(asset)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(asset)
        return asset

    async def update_asset(self, asset_id: str, fields: dict[str, Any]) -> Asset:
        asset = await self.session.get(Asset, asset_id)
        if asset is None:
            raise NotFoundError(f"Asset not found: {asset_id}")
        for key, value in fields.items():
            setattr(asset, key, value)
        await self.session.commit()
        await self.session.refresh(asset)
        return asset

    async def delete_asset(self, asset_id: str) -> None:
        asset = await self.session.get(Asset, asset_id)
        if asset is None:
            return
        await self.session.delete(asset)
        await self.session.commit()


__all__ = ["Catalog", "SqlCatalog"]

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from librarian.api import deps
from librarian.domain import InvalidRequestError, NotFoundError

from . import schemas


router = APIRouter(prefix="/libraries", tags=["libraries"])


def _not_found(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _bad_request(exc: InvalidRequestError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("", response_model=schemas.LibraryResponse, status_code=status.HTTP_201_CREATED)
async def create_library(
    payload: schemas.CreateLibraryRequest,
    service: deps.LibraryServiceDependency,
    context: deps.AuthDependency,
) -> schemas.LibraryResponse:
    library = await service.create(
        owner_id=context.user_id,
        name=payload.name,
        library_type=payload.library_type,
        is_visible=payload.is_visible,
    )
    return schemas.LibraryResponse.model_validate(library)


@router.get("", response_model=list[schemas.LibraryResponse])
async def list_libraries(
    service: deps.LibraryServiceDependency,
    context: deps.AuthDependency,
) -> list[schemas.LibraryResponse]:
    libraries = await service.get_all(owner_id=context.user_id)
    return [schemas.LibraryResponse.model_validate(library) for library in libraries]


@router.get("/count", response_model=schemas.LibraryCountResponse)
async def count_libraries(
    service: deps.LibraryServiceDependency,
    context: deps.AuthDependency,
) -> schemas.LibraryCountResponse:
    return schemas.LibraryCountResponse(count=await service.get_count(owner_id=context.user_id))


@router.get("/{library_id}", response_model=schemas.LibraryResponse)
async def get_library(
    library_id: str,
    service: deps.LibraryServiceDependency,
    context: deps.AuthDependency,
) -> schemas.LibraryResponse:
    try:
        library = await service.get(owner_id=context.user_id, library_id=library_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return schemas.LibraryResponse.model_validate(library)


@router.get("/{library_id}/import-paths", response_model=schemas.ImportPathsResponse)
async def get_import_paths(
    library_id: str,
    service: deps.LibraryServiceDependency,
    context: deps.AuthDependency,
) -> schemas.ImportPathsResponse:
    try:
        paths = await service.get_import_paths(owner_id=context.user_id, library_id=library_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return schemas.ImportPathsResponse(import_paths=paths)


@router.put("/{library_id}/import-paths", response_model=schemas.LibraryResponse)
async def set_import_paths(
    library_id: str,
    payload: schemas.SetImportPathsRequest,
    service: deps.LibraryServiceDependency,
    context: deps.AuthDependency,
) -> schemas.LibraryResponse:
    try:
        library = await service.set_import_paths(
            owner_id=context.user_id, library_id=library_id, paths=payload.import_paths
        )
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    except InvalidRequestError as exc:
        raise _bad_request(exc) from exc
    return schemas.LibraryResponse.model_validate(library)


@router.post(
    "/{library_id}/refresh",
    response_model=schemas.RefreshLibraryResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def refresh_library(
    library_id: str,
    service: deps.LibraryServiceDependency,
    context: deps.AuthDependency,
    payload: schemas.RefreshLibraryRequest | None = None,
) -> schemas.RefreshLibraryResponse:
    payload = payload or schemas.RefreshLibraryRequest()
    try:
        stats = await service.refresh(
            owner_id=context.user_id,
            library_id=library_id,
            force_refresh=payload.force_refresh,
            empty_trash=payload.empty_trash,
        )
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    except InvalidRequestError as exc:
        raise _bad_request(exc) from exc
    return schemas.RefreshLibraryResponse(
        library_id=library_id,
        crawled=stats.crawled,
        queued_refresh=stats.queued_refresh,
        queued_offline=stats.queued_offline,
    )


__all__ = ["router"]

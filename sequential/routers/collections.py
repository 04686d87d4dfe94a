"""Collections API router."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from sequential.db import connection
from sequential.models import (
    CollectionCreateRequest,
    CollectionResponse,
    CollectionSummary,
    OpenedCollection,
)
from sequential.preferences import preferences_manager
from sequential.resolution.errors import TotalResolutionFailure
from sequential.services.collections import CollectionNotFoundError, CollectionService, root_warning


collections_router = APIRouter(prefix="/api/collections", tags=["collections"])


async def _get_service() -> CollectionService:
    db = await connection.get_connection()
    return CollectionService(db)


@collections_router.post("", response_model=CollectionResponse)
async def create_collection(request: CollectionCreateRequest):
    """Resolve the selected paths into an ordered, persisted token list."""
    preferences = preferences_manager.get()
    include_hidden = preferences.importHidden if request.includeHidden is None else request.includeHidden
    recursive = preferences.importSubdirectories if request.recursive is None else request.recursive

    service = await _get_service()
    try:
        return await service.create_collection(
            request.paths,
            title=request.title,
            include_hidden=include_hidden,
            recursive=recursive,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except TotalResolutionFailure as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(exc),
                "warnings": [root_warning(error).model_dump() for error in exc.errors],
            },
        ) from exc


@collections_router.get("", response_model=list[CollectionSummary])
async def list_collections():
    service = await _get_service()
    return await service.list_collections()


@collections_router.get("/{collection_id}", response_model=OpenedCollection)
async def open_collection(collection_id: str):
    """Reopen a stored collection's tokens in their original order."""
    service = await _get_service()
    try:
        return await service.open_collection(collection_id)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@collections_router.delete("/{collection_id}")
async def delete_collection(collection_id: str):
    service = await _get_service()
    try:
        await service.delete_collection(collection_id)
    except CollectionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"status": "deleted", "id": collection_id}

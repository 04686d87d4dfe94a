"""Collection service: resolve a selection, persist its tokens, reopen them."""
from __future__ import annotations

import base64
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional, Union

import aiosqlite

from sequential.db.repositories.collections import SqliteCollectionRepository
from sequential.models import (
    CollectionItem,
    CollectionResponse,
    CollectionSummary,
    OpenedCollection,
    OpenedItem,
    RootWarning,
)
from sequential.observability import record_resolution, record_root_failure, record_token_open, start_span
from sequential.resolution.errors import RootError, TotalResolutionFailure
from sequential.resolution.orchestrator import ResolutionOrchestrator, ResolutionResult
from sequential.tokens.factory import AccessTokenFactory, InvalidTokenError

logger = logging.getLogger("sequential.collections")

_token_factory: AccessTokenFactory | None = None


def get_token_factory() -> AccessTokenFactory:
    """Process-wide factory; its scope registry holds the granted roots."""
    global _token_factory
    if _token_factory is None:
        _token_factory = AccessTokenFactory()
    return _token_factory


class CollectionNotFoundError(LookupError):
    pass


def display_path(path: Union[str, Path]) -> str:
    """UTF-8 safe rendering of a filesystem path; undecodable bytes become ``\\xNN``."""
    return os.fsencode(path).decode("utf-8", "backslashreplace")


def root_warning(error: RootError) -> RootWarning:
    return RootWarning(
        rootIndex=error.root_index,
        path=display_path(error.path),
        errorKind=error.kind,
        message=error.message.encode("utf-8", "backslashreplace").decode("utf-8"),
    )


def _record_failures(errors: list[RootError]) -> None:
    counts: dict[str, int] = {}
    for error in errors:
        counts[error.kind] = counts.get(error.kind, 0) + 1
    for kind, count in counts.items():
        record_root_failure(kind, count)


class CollectionService:
    """Glue between the resolution pipeline and collection storage."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        orchestrator: Optional[ResolutionOrchestrator] = None,
        token_factory: Optional[AccessTokenFactory] = None,
    ):
        self.repo = SqliteCollectionRepository(db)
        self.token_factory = token_factory or (orchestrator.token_factory if orchestrator else get_token_factory())
        self.orchestrator = orchestrator or ResolutionOrchestrator(
            token_factory=self.token_factory,
            logger=logging.getLogger("sequential.resolution"),
        )

    async def resolve(self, paths: list[str], *, include_hidden: bool, recursive: bool) -> ResolutionResult:
        started = time.perf_counter()
        with start_span(
            "sequential.resolve",
            {"roots": len(paths), "include_hidden": include_hidden, "recursive": recursive},
        ):
            try:
                result = await self.orchestrator.resolve(
                    list(enumerate(paths)),
                    include_hidden=include_hidden,
                    recursive=recursive,
                )
            except TotalResolutionFailure as exc:
                _record_failures(exc.errors)
                record_resolution("failed", (time.perf_counter() - started) * 1000)
                raise

        _record_failures(result.errors)
        record_resolution(
            "partial" if result.errors else "ok",
            (time.perf_counter() - started) * 1000,
            classifications=[token.classification.value for token in result.tokens],
        )
        return result

    async def create_collection(
        self,
        paths: list[str],
        *,
        title: str = "",
        include_hidden: bool = False,
        recursive: bool = True,
    ) -> CollectionResponse:
        if not paths:
            raise ValueError("At least one path is required")

        result = await self.resolve(paths, include_hidden=include_hidden, recursive=recursive)
        warnings = [root_warning(error) for error in result.errors]
        collection_id = uuid.uuid4().hex
        # Nothing is stored unless the response renders.
        response = CollectionResponse(
            id=collection_id,
            title=title,
            includeHidden=include_hidden,
            recursive=recursive,
            items=[
                CollectionItem(
                    position=position,
                    path=display_path(token.path),
                    classification=token.classification.value,
                    token=base64.b64encode(token.blob).decode("ascii"),
                )
                for position, token in enumerate(result.tokens)
            ],
            warnings=warnings,
        )

        await self.repo.create(
            collection_id,
            [token.to_record() for token in result.tokens],
            title=title,
            include_hidden=include_hidden,
            recursive=recursive,
            root_count=len(paths),
            warnings=[warning.model_dump() for warning in warnings],
        )
        logger.info(f"Stored collection {collection_id} with {len(result.tokens)} item(s)")
        return response

    async def list_collections(self) -> list[CollectionSummary]:
        rows = await self.repo.list_all()
        return [
            CollectionSummary(
                id=row["id"],
                title=row.get("title") or "",
                itemCount=int(row.get("item_count") or 0),
                rootCount=int(row.get("root_count") or 0),
                warningCount=len(row.get("warnings") or []),
                createdAt=row.get("created_at") or "",
            )
            for row in rows
        ]

    async def open_collection(self, collection_id: str) -> OpenedCollection:
        """Reopen every stored token, in stored order."""
        row = await self.repo.get_by_id(collection_id)
        if row is None:
            raise CollectionNotFoundError(f"Collection not found: {collection_id}")

        items: list[OpenedItem] = []
        for record in await self.repo.list_items(collection_id):
            try:
                opened = await self.token_factory.open(record["token"])
            except InvalidTokenError as exc:
                logger.warning(f"Invalid token at position {record['position']} in {collection_id}: {exc}")
                items.append(
                    OpenedItem(
                        position=record["position"],
                        path="",
                        classification=record["classification"],
                        stale=True,
                        valid=False,
                    )
                )
                continue
            record_token_open(opened.stale)
            items.append(
                OpenedItem(
                    position=record["position"],
                    path=display_path(opened.path),
                    classification=opened.classification.value,
                    stale=opened.stale,
                )
            )

        return OpenedCollection(
            id=collection_id,
            title=row.get("title") or "",
            items=items,
            staleCount=sum(1 for item in items if item.stale),
            invalidCount=sum(1 for item in items if not item.valid),
        )

    async def delete_collection(self, collection_id: str) -> None:
        if not await self.repo.delete(collection_id):
            raise CollectionNotFoundError(f"Collection not found: {collection_id}")

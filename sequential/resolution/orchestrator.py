"""Turn an ordered user selection into an ordered list of access tokens."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from sequential import config
from sequential.resolution.errors import (
    ENUMERATION,
    PERMISSION,
    EnumerationError,
    RootError,
    TotalResolutionFailure,
)
from sequential.resolution.matcher import canonicalize
from sequential.resolution.ordering import finder_sort
from sequential.resolution.walker import DirectoryWalker, WalkError
from sequential.tokens.factory import AccessToken, AccessTokenFactory

PathInput = Union[str, Path]
SelectionInput = Union[Iterable[tuple[int, PathInput]], Sequence[PathInput]]


@dataclass(frozen=True)
class ResolvedEntry:
    root_index: int
    path: Path
    source: Path


@dataclass
class RootWalk:
    """Private buffer for one root's walk."""

    root_index: int
    root: Path
    source: Path
    leaves: list[Path] = field(default_factory=list)
    errors: list[WalkError] = field(default_factory=list)
    failure: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.failure is not None


@dataclass
class ResolutionResult:
    tokens: list[AccessToken] = field(default_factory=list)
    errors: list[RootError] = field(default_factory=list)
    entries: list[ResolvedEntry] = field(default_factory=list)

    @property
    def paths(self) -> list[Path]:
        return [token.path for token in self.tokens]


def normalize_selection(selection: SelectionInput) -> list[tuple[int, Path]]:
    """Accept ``enumerate(paths)``-style pairs or a plain list of absolute paths."""
    items = list(selection)
    if items and all(isinstance(item, (str, Path)) for item in items):
        pairs = [(index, _selected_path(item)) for index, item in enumerate(items)]
    else:
        pairs = []
        for item in items:
            if not isinstance(item, tuple) or len(item) != 2:
                raise ValueError(f"Selection entries must be (index, path) pairs, got {item!r}")
            index, path = item
            pairs.append((int(index), _selected_path(path)))

    seen: set[int] = set()
    for index, _ in pairs:
        if index in seen:
            raise ValueError(f"Duplicate selection index: {index}")
        seen.add(index)
    return pairs


def _selected_path(raw: PathInput) -> Path:
    # Path("") is ".", so emptiness is checked on the raw value.
    if not str(raw).strip():
        raise ValueError("Selected paths must not be empty")
    path = Path(raw)
    if not path.is_absolute():
        raise ValueError(f"Selected paths must be absolute: {raw}")
    return path


def merge_walks(walks: Iterable[RootWalk]) -> list[ResolvedEntry]:
    """Concatenate per-root ordered leaves by root index, keeping first occurrences.

    Within a root, leaves are ordered by their canonical paths. Across roots,
    the canonical path string is the only dedupe key.
    """
    merged: list[ResolvedEntry] = []
    seen: set[str] = set()
    for walk in sorted(walks, key=lambda item: item.root_index):
        if walk.failed:
            continue
        # Leaves may sit behind a different virtualization layer than their root.
        sources: dict[Path, Path] = {}
        for leaf in walk.leaves:
            canonical = canonicalize(leaf)
            current = sources.get(canonical)
            if current is None or str(leaf) < str(current):
                sources[canonical] = leaf
        for canonical in finder_sort(sources):
            key = str(canonical)
            if key in seen:
                continue
            seen.add(key)
            merged.append(ResolvedEntry(walk.root_index, canonical, sources[canonical]))
    return merged


class ResolutionOrchestrator:
    """Fans out one walk per selected root, then merges, dedupes, and mints.

    Selected paths are enumerated where they physically are; their canonical
    forms drive ordering, deduplication and the identity stored in tokens.
    """

    def __init__(
        self,
        walker: Optional[DirectoryWalker] = None,
        token_factory: Optional[AccessTokenFactory] = None,
        logger: Optional[logging.Logger] = None,
        mint_concurrency: Optional[int] = None,
    ):
        self.walker = walker or DirectoryWalker()
        self.token_factory = token_factory or AccessTokenFactory()
        self.logger = logger or logging.getLogger("sequential.resolution")
        self.mint_concurrency = max(1, mint_concurrency or config.MINT_CONCURRENCY)

    async def resolve(
        self,
        selection: SelectionInput,
        *,
        include_hidden: bool = False,
        recursive: bool = True,
    ) -> ResolutionResult:
        pairs = normalize_selection(selection)
        # Selecting a path is the user's consent to access it.
        for _, path in pairs:
            self.token_factory.scopes.grant(path)

        walks = await self._walk_all(pairs, include_hidden=include_hidden, recursive=recursive)
        scopes = {walk.root_index: walk.source for walk in walks}

        errors: list[RootError] = []
        for walk in sorted(walks, key=lambda item: item.root_index):
            if walk.failed:
                self.logger.warning(
                    "Root %s (%s, canonical %s) could not be resolved: %s",
                    walk.root_index,
                    walk.source,
                    walk.root,
                    walk.failure,
                )
                errors.append(RootError(walk.root_index, walk.source, ENUMERATION, walk.failure or ""))
            for error in walk.errors:
                errors.append(RootError(walk.root_index, error.path, ENUMERATION, error.message))

        entries = merge_walks(walks)
        minted = await self._mint_all(entries, scopes)

        result = ResolutionResult(errors=errors)
        for entry, token, failure in minted:
            if token is None:
                self.logger.warning("Dropping %s: %s", entry.path, failure)
                result.errors.append(RootError(entry.root_index, entry.path, PERMISSION, failure or ""))
                continue
            result.tokens.append(token)
            result.entries.append(entry)

        if not result.tokens and result.errors:
            raise TotalResolutionFailure(result.errors)

        self.logger.info(
            "Resolved %d path(s) from %d root(s) with %d warning(s)",
            len(result.tokens),
            len(pairs),
            len(result.errors),
        )
        return result

    async def _walk_all(
        self,
        pairs: list[tuple[int, Path]],
        *,
        include_hidden: bool,
        recursive: bool,
    ) -> list[RootWalk]:
        tasks = [
            asyncio.create_task(
                self._walk_root(index, path, include_hidden=include_hidden, recursive=recursive),
                name=f"walk-{index}",
            )
            for index, path in pairs
        ]
        return await _gather_or_cancel(tasks)

    async def _walk_root(self, index: int, source: Path, *, include_hidden: bool, recursive: bool) -> RootWalk:
        buffer = RootWalk(root_index=index, root=canonicalize(source), source=source)
        try:
            async for leaf in self.walker.iter_leaves(
                source,
                include_hidden=include_hidden,
                recursive=recursive,
                errors=buffer.errors,
            ):
                buffer.leaves.append(leaf)
        except EnumerationError as exc:
            buffer.failure = str(exc)
            buffer.leaves.clear()
        return buffer

    async def _mint_all(
        self,
        entries: list[ResolvedEntry],
        scopes: dict[int, Path],
    ) -> list[tuple[ResolvedEntry, Optional[AccessToken], Optional[str]]]:
        semaphore = asyncio.Semaphore(self.mint_concurrency)

        async def mint(entry: ResolvedEntry) -> tuple[ResolvedEntry, Optional[AccessToken], Optional[str]]:
            async with semaphore:
                try:
                    token = await self.token_factory.mint(
                        entry.path,
                        scope=scopes[entry.root_index],
                        source=entry.source,
                    )
                except PermissionError as exc:
                    return entry, None, str(exc)
                return entry, token, None

        tasks = [asyncio.create_task(mint(entry)) for entry in entries]
        return await _gather_or_cancel(tasks)


async def _gather_or_cancel(tasks: list[asyncio.Task]) -> list:
    """Await every task in order; on cancellation or error cancel the rest."""
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

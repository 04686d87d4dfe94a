"""Directory enumeration under the hidden-file / subdirectory policy."""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Optional

from sequential.resolution.errors import EnumerationError

logger = logging.getLogger("sequential.resolution")

HIDDEN_PREFIX = "."


@dataclass(frozen=True)
class DirEntry:
    path: Path
    is_dir: bool
    identity: Optional[tuple[int, int]] = None


@dataclass(frozen=True)
class WalkError:
    path: Path
    message: str


@dataclass
class WalkResult:
    root: Path
    leaves: list[Path] = field(default_factory=list)
    errors: list[WalkError] = field(default_factory=list)


def _identity(path: Path) -> Optional[tuple[int, int]]:
    try:
        stat = path.stat()
    except OSError:
        return None
    return (stat.st_dev, stat.st_ino)


def _scan_directory(directory: Path) -> list[DirEntry]:
    """List one directory. Runs in a worker thread; OSError propagates."""
    entries: list[DirEntry] = []
    with os.scandir(directory) as iterator:
        for entry in iterator:
            try:
                is_dir = entry.is_dir()
            except OSError:
                # Dangling or unreadable entry; let token minting decide.
                is_dir = False
            identity = None
            if is_dir:
                try:
                    stat = entry.stat()
                    identity = (stat.st_dev, stat.st_ino)
                except OSError:
                    identity = None
            entries.append(DirEntry(Path(entry.path), is_dir, identity))
    return entries


def _probe_root(root: Path) -> DirEntry:
    if not root.exists():
        raise FileNotFoundError(f"No such file or directory: {root}")
    is_dir = root.is_dir()
    return DirEntry(root, is_dir, _identity(root) if is_dir else None)


def is_hidden(path: Path) -> bool:
    return path.name.startswith(HIDDEN_PREFIX)


class DirectoryWalker:
    """Enumerates leaf files below a selected root.

    Each directory listing happens in a worker thread, so a cancelled walk
    stops at the next directory boundary.
    """

    async def iter_leaves(
        self,
        root: Path,
        *,
        include_hidden: bool = False,
        recursive: bool = True,
        errors: Optional[list[WalkError]] = None,
    ) -> AsyncIterator[Path]:
        """Yield leaf paths lazily, in filesystem enumeration order.

        Raises ``EnumerationError`` when the root itself can't be inspected or
        listed. Nested listing failures are appended to ``errors`` and that
        subtree is skipped.
        """
        try:
            probe = await asyncio.to_thread(_probe_root, root)
        except OSError as exc:
            raise EnumerationError(root, f"Failed to inspect {root}: {exc}") from exc

        if not probe.is_dir:
            yield root
            return

        visited: set[tuple[int, int]] = set()
        if probe.identity is not None:
            visited.add(probe.identity)

        pending: list[Path] = [root]
        while pending:
            directory = pending.pop()
            try:
                entries = await asyncio.to_thread(_scan_directory, directory)
            except OSError as exc:
                if directory == root:
                    raise EnumerationError(root, f"Failed to enumerate {root}: {exc}") from exc
                logger.warning("Skipping unreadable directory %s: %s", directory, exc)
                if errors is not None:
                    errors.append(WalkError(directory, str(exc)))
                continue

            subdirectories: list[Path] = []
            for entry in entries:
                if not include_hidden and is_hidden(entry.path):
                    continue
                if not entry.is_dir:
                    yield entry.path
                    continue
                if not recursive:
                    continue
                if entry.identity is not None:
                    if entry.identity in visited:
                        logger.debug("Skipping already visited directory %s", entry.path)
                        continue
                    visited.add(entry.identity)
                subdirectories.append(entry.path)
            # Reversed so the stack pops subdirectories in enumeration order.
            pending.extend(reversed(subdirectories))

    async def walk(
        self,
        root: Path,
        *,
        include_hidden: bool = False,
        recursive: bool = True,
    ) -> WalkResult:
        result = WalkResult(root=root)
        async for leaf in self.iter_leaves(
            root,
            include_hidden=include_hidden,
            recursive=recursive,
            errors=result.errors,
        ):
            result.leaves.append(leaf)
        return result

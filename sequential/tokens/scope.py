"""Secure-access scopes: the process-wide permission grants for user-chosen roots.

A root becomes accessible once it is granted (the user picked it, or a stored
token for it was reopened). Access is then activated with ``begin_access`` and
deactivated with ``end_access``; activation is reference counted, so the same
scope can be entered again while already active.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger("sequential.tokens")


def _covers(scope: Path, path: Path) -> bool:
    return path == scope or scope in path.parents


class ScopeRegistry:
    """Tracks granted scopes and how many callers are currently using each."""

    def __init__(self) -> None:
        self._grants: set[Path] = set()
        self._active: dict[Path, int] = {}

    def grant(self, root: Union[str, Path]) -> None:
        self._grants.add(Path(root))

    def revoke(self, root: Union[str, Path]) -> None:
        self._grants.discard(Path(root))

    def is_granted(self, path: Union[str, Path]) -> bool:
        target = Path(path)
        return any(_covers(scope, target) for scope in self._grants)

    def is_active(self, path: Union[str, Path]) -> bool:
        target = Path(path)
        return any(_covers(scope, target) for scope in self._active)

    def active_count(self, root: Union[str, Path]) -> int:
        return self._active.get(Path(root), 0)

    def begin_access(self, root: Union[str, Path]) -> None:
        scope = Path(root)
        if not self.is_granted(scope):
            raise PermissionError(f"No access grant covers {scope}")
        self._active[scope] = self._active.get(scope, 0) + 1

    def end_access(self, root: Union[str, Path]) -> None:
        scope = Path(root)
        count = self._active.get(scope, 0)
        if count <= 0:
            logger.warning("end_access called for inactive scope %s", scope)
            return
        if count == 1:
            del self._active[scope]
        else:
            self._active[scope] = count - 1

    @contextmanager
    def accessing(self, root: Union[str, Path]) -> Iterator[Path]:
        """Activate ``root`` for the duration of the block; always released."""
        scope = Path(root)
        self.begin_access(scope)
        try:
            yield scope
        finally:
            self.end_access(scope)

"""Error types raised while resolving an import selection."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

ENUMERATION = "enumeration"
PERMISSION = "permission"


@dataclass(frozen=True)
class RootError:
    """Non-fatal failure attached to one selected root."""

    root_index: int
    path: Path
    kind: str
    message: str = ""


class ResolutionError(Exception):
    """Base class for resolution failures."""


class EnumerationError(ResolutionError):
    """A directory (or the root itself) could not be listed."""

    def __init__(self, path: Path, message: str = ""):
        self.path = path
        super().__init__(message or f"Failed to enumerate {path}")


class TotalResolutionFailure(ResolutionError):
    """Nothing could be resolved and at least one root failed."""

    def __init__(self, errors: list[RootError]):
        self.errors = list(errors)
        super().__init__(f"Nothing could be resolved ({len(self.errors)} error(s))")

"""Rewrite sandbox-virtualized paths to their real-world locations.

A per-app container sees the user's home (and the trash folders) through
paths that differ from the ones Finder shows. Two selections naming the same
file must compare equal, so every root and every discovered leaf is passed
through ``canonicalize`` before ordering and deduplication.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePath
from typing import Callable, Optional, Sequence, Union

PathLike = Union[str, PurePath]

ROOT = "/"


class Classification(str, Enum):
    HOME = "home"
    TRASH = "trash"
    VOLUME = "volume"
    VOLUME_TRASH = "volumeTrash"
    OTHER = "other"


def match_slots(slots: Sequence[Optional[str]], parts: Sequence[str]) -> list[str] | None:
    """Return the wildcard captures, or None if the leading parts don't fit."""
    if len(parts) < len(slots):
        return None
    captured: list[str] = []
    for component, slot in zip(parts, slots):
        if slot is None:
            captured.append(component)
        elif component != slot:
            return None
    return captured


@dataclass(frozen=True)
class PathPattern:
    """Literal-or-wildcard slots plus the canonical root they rebuild."""

    classification: Classification
    slots: tuple[Optional[str], ...]
    rebuild: Callable[[list[str]], tuple[str, ...]]

    def match(self, parts: Sequence[str]) -> list[str] | None:
        return match_slots(self.slots, parts)

    def apply(self, parts: Sequence[str]) -> tuple[str, ...] | None:
        captured = self.match(parts)
        if captured is None:
            return None
        return (*self.rebuild(captured), *parts[len(self.slots):])


# Priority order matters: first match wins.
# Home and volume match container views only; a bare /Users/<user> prefix would shadow the trash rewrite.
PATTERNS: tuple[PathPattern, ...] = (
    # /Users/<user>/Library/Containers/<app>/Data -> /Users/<user>
    PathPattern(
        Classification.HOME,
        (ROOT, "Users", None, "Library", "Containers", None, "Data"),
        lambda captured: (ROOT, "Users", captured[0]),
    ),
    # /Users/<user>/.Trash -> /Users/<user>/Trash
    PathPattern(
        Classification.TRASH,
        (ROOT, "Users", None, ".Trash"),
        lambda captured: (ROOT, "Users", captured[0], "Trash"),
    ),
    # /Volumes/<volume>/Users/<user>/Library/Containers/<app>/Data -> /Volumes/<volume>/Users/<user>
    PathPattern(
        Classification.VOLUME,
        (ROOT, "Volumes", None, "Users", None, "Library", "Containers", None, "Data"),
        lambda captured: (ROOT, "Volumes", captured[0], "Users", captured[1]),
    ),
    # /Volumes/<volume>/.Trashes/<uid> -> /Volumes/<volume>/Trash
    PathPattern(
        Classification.VOLUME_TRASH,
        (ROOT, "Volumes", None, ".Trashes", None),
        lambda captured: (ROOT, "Volumes", captured[0], "Trash"),
    ),
)

# Shapes of canonical output, most specific first.
_CANONICAL_SHAPES: tuple[tuple[Classification, tuple[Optional[str], ...]], ...] = (
    (Classification.TRASH, (ROOT, "Users", None, "Trash")),
    (Classification.HOME, (ROOT, "Users", None)),
    (Classification.VOLUME_TRASH, (ROOT, "Volumes", None, "Trash")),
    (Classification.VOLUME, (ROOT, "Volumes", None)),
)


def rewrite_once(parts: Sequence[str], patterns: Sequence[PathPattern] = PATTERNS) -> tuple[str, ...] | None:
    for pattern in patterns:
        rewritten = pattern.apply(parts)
        if rewritten is not None:
            return rewritten
    return None


def canonicalize(path: PathLike, patterns: Sequence[PathPattern] = PATTERNS) -> Path:
    """Return the real-world form of ``path``; unmatched paths pass through.

    Rewriting repeats until nothing matches: every rewrite either drops a
    container prefix or renames a hidden trash folder, so it terminates.
    """
    parts = tuple(PurePath(path).parts)
    for _ in range(len(parts) + 1):
        rewritten = rewrite_once(parts, patterns)
        if rewritten is None:
            break
        parts = rewritten
    return Path(*parts) if parts else Path(path)


def classify(path: PathLike) -> Classification:
    """Diagnostic hint describing where a canonical path lives."""
    parts = tuple(PurePath(path).parts)
    for classification, shape in _CANONICAL_SHAPES:
        if match_slots(shape, parts) is not None:
            return classification
    return Classification.OTHER

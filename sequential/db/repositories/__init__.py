"""Repository package for database access."""

from .collections import SqliteCollectionRepository

__all__ = [
    "SqliteCollectionRepository",
]

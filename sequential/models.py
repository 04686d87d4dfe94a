"""Pydantic models matching the frontend TypeScript types."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional

# ── Preferences ────────────────────────────────────────────────────

class ImportPreferences(BaseModel):
    importHidden: bool = False
    importSubdirectories: bool = True


class ImportPreferencesUpdate(BaseModel):
    importHidden: Optional[bool] = None
    importSubdirectories: Optional[bool] = None


# ── Collection-related models ──────────────────────────────────────

class CollectionCreateRequest(BaseModel):
    paths: list[str] = Field(default_factory=list)
    title: str = ""
    includeHidden: Optional[bool] = None  # falls back to stored preferences
    recursive: Optional[bool] = None


class RootWarning(BaseModel):
    rootIndex: int
    path: str
    errorKind: str  # "enumeration" | "permission"
    message: str = ""


class CollectionItem(BaseModel):
    position: int
    path: str
    classification: str = "other"  # "home" | "trash" | "volume" | "volumeTrash" | "other"
    token: str = ""  # base64 of the opaque token blob


class CollectionResponse(BaseModel):
    id: str
    title: str = ""
    includeHidden: bool = False
    recursive: bool = True
    items: list[CollectionItem] = Field(default_factory=list)
    warnings: list[RootWarning] = Field(default_factory=list)


class CollectionSummary(BaseModel):
    id: str
    title: str = ""
    itemCount: int = 0
    rootCount: int = 0
    warningCount: int = 0
    createdAt: str = ""


class OpenedItem(BaseModel):
    position: int
    path: str
    classification: str = "other"
    stale: bool = False
    valid: bool = True


class OpenedCollection(BaseModel):
    id: str
    title: str = ""
    items: list[OpenedItem] = Field(default_factory=list)
    staleCount: int = 0
    invalidCount: int = 0

"""Database schema creation and versioning.

Uses IF NOT EXISTS for idempotent runs.
"""
from __future__ import annotations

import logging

import aiosqlite

logger = logging.getLogger("sequential.db")

SCHEMA_VERSION = 1

_TABLES = """
-- ── Schema version tracking ────────────────────────────────────────
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied   TEXT NOT NULL DEFAULT (datetime('now'))
);

-- ── 1. Collections (one resolution call each) ─────────────────────
CREATE TABLE IF NOT EXISTS collections (
    id              TEXT PRIMARY KEY,
    title           TEXT DEFAULT '',
    include_hidden  INTEGER NOT NULL DEFAULT 0,
    recursive       INTEGER NOT NULL DEFAULT 1,
    root_count      INTEGER NOT NULL DEFAULT 0,
    warnings_json   TEXT DEFAULT '[]',
    created_at      TEXT NOT NULL
);

-- ── 2. Ordered token records ───────────────────────────────────────
CREATE TABLE IF NOT EXISTS collection_items (
    collection_id   TEXT NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL,
    token           BLOB NOT NULL,
    classification  TEXT NOT NULL DEFAULT 'other',
    PRIMARY KEY (collection_id, position)
);

CREATE INDEX IF NOT EXISTS idx_collections_created ON collections(created_at);
"""


async def run_migrations(db: aiosqlite.Connection) -> None:
    """Create all tables. Idempotent."""
    # Check current schema version
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cur:
            row = await cur.fetchone()
            current_version = row[0] if row and row[0] else 0
    except aiosqlite.OperationalError:
        current_version = 0

    if current_version >= SCHEMA_VERSION:
        logger.info(f"Schema is up to date (version {current_version})")
        return

    logger.info(f"Running migrations: {current_version} → {SCHEMA_VERSION}")

    # Execute all CREATE TABLE statements
    await db.executescript(_TABLES)

    # Record schema version
    await db.execute(
        "INSERT INTO schema_version (version) VALUES (?)",
        (SCHEMA_VERSION,),
    )
    await db.commit()
    logger.info(f"Migrations complete — schema version {SCHEMA_VERSION}")

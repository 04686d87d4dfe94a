"""SQLite storage for ordered access-token collections."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import aiosqlite


class SqliteCollectionRepository:
    """SQLite-backed collection storage.

    Items are order-significant: ``position`` is the index in the resolved
    token list and reads always return them in that order.
    """

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def create(
        self,
        collection_id: str,
        records: list[dict[str, Any]],
        *,
        title: str = "",
        include_hidden: bool = False,
        recursive: bool = True,
        root_count: int = 0,
        warnings: list[dict[str, Any]] | None = None,
    ) -> None:
        now = datetime.now(timezone.utc).isoformat()
        await self.db.execute(
            """INSERT INTO collections (
                id, title, include_hidden, recursive, root_count, warnings_json, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                collection_id,
                title,
                1 if include_hidden else 0,
                1 if recursive else 0,
                root_count,
                json.dumps(warnings or []),
                now,
            ),
        )
        await self.db.executemany(
            """INSERT INTO collection_items (collection_id, position, token, classification)
            VALUES (?, ?, ?, ?)""",
            [
                (collection_id, position, record["token"], record.get("classification", "other"))
                for position, record in enumerate(records)
            ],
        )
        await self.db.commit()

    async def get_by_id(self, collection_id: str) -> dict | None:
        async with self.db.execute(
            """SELECT c.*, (
                SELECT COUNT(*) FROM collection_items i WHERE i.collection_id = c.id
            ) AS item_count
            FROM collections c WHERE c.id = ?""",
            (collection_id,),
        ) as cur:
            row = await cur.fetchone()
            return _collection_row(row) if row else None

    async def list_items(self, collection_id: str) -> list[dict]:
        async with self.db.execute(
            """SELECT position, token, classification FROM collection_items
            WHERE collection_id = ? ORDER BY position""",
            (collection_id,),
        ) as cur:
            return [
                {
                    "position": row["position"],
                    "token": bytes(row["token"]),
                    "classification": row["classification"],
                }
                for row in await cur.fetchall()
            ]

    async def list_all(self) -> list[dict]:
        async with self.db.execute(
            """SELECT c.*, COUNT(i.position) AS item_count
            FROM collections c
            LEFT JOIN collection_items i ON i.collection_id = c.id
            GROUP BY c.id
            ORDER BY c.created_at DESC, c.id"""
        ) as cur:
            return [_collection_row(row) for row in await cur.fetchall()]

    async def delete(self, collection_id: str) -> bool:
        await self.db.execute("DELETE FROM collection_items WHERE collection_id = ?", (collection_id,))
        cursor = await self.db.execute("DELETE FROM collections WHERE id = ?", (collection_id,))
        await self.db.commit()
        return (cursor.rowcount or 0) > 0


def _collection_row(row: aiosqlite.Row) -> dict:
    data = dict(row)
    data["include_hidden"] = bool(data.get("include_hidden"))
    data["recursive"] = bool(data.get("recursive"))
    try:
        data["warnings"] = json.loads(data.pop("warnings_json", None) or "[]")
    except json.JSONDecodeError:
        data["warnings"] = []
    return data

import unittest

import aiosqlite

from sequential.db.repositories.collections import SqliteCollectionRepository
from sequential.db.sqlite_migrations import run_migrations


class SqliteCollectionRepositoryTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.db = await aiosqlite.connect(":memory:")
        self.db.row_factory = aiosqlite.Row
        await run_migrations(self.db)
        self.repo = SqliteCollectionRepository(self.db)

    async def asyncTearDown(self) -> None:
        await self.db.close()

    async def test_items_are_returned_in_stored_order(self) -> None:
        records = [
            {"token": b"tok-c", "classification": "home"},
            {"token": b"tok-a", "classification": "trash"},
            {"token": b"tok-b"},
        ]
        await self.repo.create("C-1", records, title="Holiday", root_count=2)

        items = await self.repo.list_items("C-1")
        self.assertEqual([item["token"] for item in items], [b"tok-c", b"tok-a", b"tok-b"])
        self.assertEqual([item["position"] for item in items], [0, 1, 2])
        self.assertEqual(items[2]["classification"], "other")

    async def test_get_by_id_decodes_flags_and_warnings(self) -> None:
        warnings = [{"rootIndex": 1, "path": "/gone", "errorKind": "enumeration", "message": "missing"}]
        await self.repo.create(
            "C-2",
            [{"token": b"x", "classification": "other"}],
            include_hidden=True,
            recursive=False,
            root_count=2,
            warnings=warnings,
        )

        row = await self.repo.get_by_id("C-2")
        self.assertIsNotNone(row)
        self.assertTrue(row["include_hidden"])
        self.assertFalse(row["recursive"])
        self.assertEqual(row["item_count"], 1)
        self.assertEqual(row["warnings"], warnings)
        self.assertIsNone(await self.repo.get_by_id("missing"))

    async def test_list_all_counts_items(self) -> None:
        await self.repo.create("C-1", [{"token": b"a"}, {"token": b"b"}])
        await self.repo.create("C-2", [])
        rows = {row["id"]: row for row in await self.repo.list_all()}
        self.assertEqual(rows["C-1"]["item_count"], 2)
        self.assertEqual(rows["C-2"]["item_count"], 0)

    async def test_delete_removes_items(self) -> None:
        await self.repo.create("C-1", [{"token": b"a"}])
        self.assertTrue(await self.repo.delete("C-1"))
        self.assertEqual(await self.repo.list_items("C-1"), [])
        self.assertFalse(await self.repo.delete("C-1"))

    async def test_migrations_are_idempotent(self) -> None:
        await run_migrations(self.db)
        async with self.db.execute("SELECT COUNT(*) FROM schema_version") as cur:
            row = await cur.fetchone()
        self.assertEqual(row[0], 1)


if __name__ == "__main__":
    unittest.main()

import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from sequential import config
from sequential.resolution.matcher import Classification
from sequential.tokens.factory import AccessTokenFactory, InvalidTokenError
from sequential.tokens.scope import ScopeRegistry


class ScopeRegistryTests(unittest.TestCase):
    def test_begin_access_requires_grant(self) -> None:
        scopes = ScopeRegistry()
        with self.assertRaises(PermissionError):
            scopes.begin_access("/data")

    def test_grant_covers_descendants(self) -> None:
        scopes = ScopeRegistry()
        scopes.grant("/data")
        self.assertTrue(scopes.is_granted("/data/a/b.png"))
        self.assertFalse(scopes.is_granted("/database/b.png"))
        scopes.revoke("/data")
        self.assertFalse(scopes.is_granted("/data/a/b.png"))

    def test_access_is_reference_counted(self) -> None:
        scopes = ScopeRegistry()
        scopes.grant("/data")
        with scopes.accessing("/data"):
            with scopes.accessing("/data"):
                self.assertEqual(scopes.active_count("/data"), 2)
            self.assertTrue(scopes.is_active("/data/a.png"))
        self.assertEqual(scopes.active_count("/data"), 0)

    def test_access_released_on_error(self) -> None:
        scopes = ScopeRegistry()
        scopes.grant("/data")
        with self.assertRaises(RuntimeError):
            with scopes.accessing("/data"):
                raise RuntimeError("boom")
        self.assertFalse(scopes.is_active("/data"))

    def test_unbalanced_end_access_is_logged(self) -> None:
        scopes = ScopeRegistry()
        with self.assertLogs("sequential.tokens", level="WARNING"):
            scopes.end_access("/data")


class TokenSecretTests(unittest.TestCase):
    def test_default_secret_is_warned_about(self) -> None:
        with patch.object(config, "TOKEN_SECRET", config.DEFAULT_TOKEN_SECRET):
            with self.assertLogs("sequential.tokens", level="WARNING") as logs:
                AccessTokenFactory()
        self.assertIn("SEQUENTIAL_TOKEN_SECRET", logs.output[0])

    def test_configured_secret_is_silent(self) -> None:
        with patch.object(config, "TOKEN_SECRET", "deployment-secret"):
            with self.assertNoLogs("sequential.tokens", level="WARNING"):
                AccessTokenFactory()
        with self.assertNoLogs("sequential.tokens", level="WARNING"):
            AccessTokenFactory(secret="explicit")


class AccessTokenFactoryTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.image = self.root / "a.png"
        self.image.write_bytes(b"png")
        self.factory = AccessTokenFactory(secret="test-secret")
        self.factory.scopes.grant(self.root)

    async def asyncTearDown(self) -> None:
        self.tmpdir.cleanup()

    async def test_mint_and_open_round_trip(self) -> None:
        token = await self.factory.mint(self.image, scope=self.root)
        self.assertEqual(token.path, self.image)
        self.assertEqual(token.classification, Classification.OTHER)
        self.assertEqual(token.to_record()["classification"], "other")

        opened = await AccessTokenFactory(secret="test-secret").open(token.blob)
        self.assertEqual(opened.path, self.image)
        self.assertEqual(opened.scope, self.root)
        self.assertFalse(opened.stale)

    async def test_open_regrants_scope(self) -> None:
        token = await self.factory.mint(self.image, scope=self.root)
        reopened = AccessTokenFactory(secret="test-secret")
        self.assertFalse(reopened.scopes.is_granted(self.image))
        await reopened.open(token.blob)
        self.assertTrue(reopened.scopes.is_granted(self.image))

    async def test_missing_file_reopens_as_stale(self) -> None:
        token = await self.factory.mint(self.image, scope=self.root)
        self.image.unlink()
        with self.assertLogs("sequential.tokens", level="INFO"):
            opened = await self.factory.open(token.blob)
        self.assertTrue(opened.stale)

    async def test_canonical_path_is_kept_separate_from_source(self) -> None:
        canonical = Path("/Users/alice/Trash/a.png")
        token = await self.factory.mint(canonical, scope=self.root, source=self.image)
        self.assertEqual(token.classification, Classification.TRASH)
        opened = await self.factory.open(token.blob)
        self.assertEqual(opened.path, canonical)
        self.assertEqual(opened.source, self.image)

    async def test_mint_without_grant_is_denied(self) -> None:
        factory = AccessTokenFactory(secret="test-secret")
        with self.assertRaises(PermissionError):
            await factory.mint(self.image, scope=self.root)

    async def test_mint_outside_scope_is_denied(self) -> None:
        other = self.root / "nested"
        other.mkdir()
        with self.assertRaises(PermissionError):
            await self.factory.mint(self.image, scope=other)
        self.assertEqual(self.factory.scopes.active_count(other), 0)

    async def test_mint_unreadable_is_denied_and_scope_released(self) -> None:
        with self.assertRaises(PermissionError):
            await self.factory.mint(self.root / "missing.png", scope=self.root)
        self.assertEqual(self.factory.scopes.active_count(self.root), 0)

    async def test_each_mint_is_unique(self) -> None:
        first = await self.factory.mint(self.image, scope=self.root)
        second = await self.factory.mint(self.image, scope=self.root)
        self.assertNotEqual(first.blob, second.blob)

    async def test_tampered_token_rejected(self) -> None:
        token = await self.factory.mint(self.image, scope=self.root)
        prefix, body, signature = token.blob.split(b".")
        forged = b".".join((prefix, body[:-2] + b"AA", signature))
        with self.assertRaises(InvalidTokenError):
            await self.factory.open(forged)

    async def test_foreign_secret_rejected(self) -> None:
        token = await self.factory.mint(self.image, scope=self.root)
        with self.assertRaises(InvalidTokenError):
            await AccessTokenFactory(secret="other-secret").open(token.blob)

    async def test_garbage_rejected(self) -> None:
        for blob in (b"", b"not-a-token", b"seqtok1.abc", b"other.abc.def"):
            with self.assertRaises(InvalidTokenError):
                self.factory.decode(blob)


if __name__ == "__main__":
    unittest.main()

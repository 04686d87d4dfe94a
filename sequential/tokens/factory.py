"""Mint and reopen persistent access tokens for resolved paths."""
from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import logging
import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from sequential import config
from sequential.resolution.matcher import Classification, classify
from sequential.tokens.scope import ScopeRegistry

logger = logging.getLogger("sequential.tokens")

TOKEN_PREFIX = b"seqtok1"
TOKEN_VERSION = 1


class InvalidTokenError(ValueError):
    """The blob is not a token minted with this secret."""


@dataclass(frozen=True)
class AccessToken:
    blob: bytes
    path: Path
    classification: Classification
    source: Optional[Path] = None

    def to_record(self) -> dict[str, Any]:
        return {"token": self.blob, "classification": self.classification.value}


@dataclass(frozen=True)
class OpenedToken:
    path: Path
    source: Path
    scope: Path
    classification: Classification
    stale: bool


def _b64encode(raw: bytes) -> bytes:
    return base64.urlsafe_b64encode(raw).rstrip(b"=")


def _b64decode(raw: bytes) -> bytes:
    return base64.urlsafe_b64decode(raw + b"=" * (-len(raw) % 4))


def _check_readable(path: Path) -> bool:
    return os.access(path, os.R_OK)


class AccessTokenFactory:
    """Signs a (path, scope) pair into an opaque, persistent blob.

    Minting activates the scope of the root the user selected for the
    duration of the call; the scope is released on every exit path.
    """

    def __init__(self, scopes: Optional[ScopeRegistry] = None, secret: Optional[str] = None):
        self.scopes = scopes if scopes is not None else ScopeRegistry()
        if secret is None:
            secret = config.TOKEN_SECRET
            if secret == config.DEFAULT_TOKEN_SECRET:
                logger.warning("SEQUENTIAL_TOKEN_SECRET is not set; stored access tokens can be forged")
        self._secret = secret.encode("utf-8")

    def _sign(self, payload: bytes) -> bytes:
        return hmac.new(self._secret, payload, hashlib.sha256).digest()

    def encode(self, payload: dict[str, Any]) -> bytes:
        body = _b64encode(json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8"))
        return b".".join((TOKEN_PREFIX, body, _b64encode(self._sign(body))))

    def decode(self, blob: bytes) -> dict[str, Any]:
        try:
            prefix, body, signature = bytes(blob).split(b".")
        except ValueError as exc:
            raise InvalidTokenError("Malformed access token") from exc
        if prefix != TOKEN_PREFIX:
            raise InvalidTokenError("Unknown access token format")
        try:
            received = _b64decode(signature)
        except ValueError as exc:
            raise InvalidTokenError("Corrupt access token") from exc
        if not hmac.compare_digest(self._sign(body), received):
            raise InvalidTokenError("Access token signature mismatch")
        try:
            payload = json.loads(_b64decode(body))
        except ValueError as exc:
            raise InvalidTokenError("Corrupt access token") from exc
        if not isinstance(payload, dict) or payload.get("v") != TOKEN_VERSION:
            raise InvalidTokenError("Unsupported access token version")
        return payload

    async def mint(
        self,
        path: Union[str, Path],
        scope: Union[str, Path, None] = None,
        source: Union[str, Path, None] = None,
    ) -> AccessToken:
        """Create a token for the canonical ``path`` while ``scope`` is active.

        ``source`` is where the file was actually found (defaults to ``path``);
        it must lie within ``scope`` (defaults to ``source``) and be readable,
        otherwise ``PermissionError`` is raised. ``PermissionError`` is also
        raised when no grant covers the scope.
        """
        target = Path(path)
        location = Path(source) if source is not None else target
        root = Path(scope) if scope is not None else location
        with self.scopes.accessing(root):
            if location != root and root not in location.parents:
                raise PermissionError(f"{location} is outside of access scope {root}")
            readable = await asyncio.to_thread(_check_readable, location)
            if not readable:
                raise PermissionError(f"Access denied: {location}")
            classification = classify(target)
            blob = self.encode(
                {
                    "v": TOKEN_VERSION,
                    "path": str(target),
                    "source": str(location),
                    "scope": str(root),
                    "class": classification.value,
                    "issued": int(time.time()),
                    "nonce": uuid.uuid4().hex,
                }
            )
        return AccessToken(blob=blob, path=target, classification=classification, source=location)

    async def open(self, blob: bytes) -> OpenedToken:
        """Verify a stored token and re-grant its scope."""
        payload = self.decode(blob)
        path = Path(str(payload.get("path") or ""))
        source = Path(str(payload.get("source") or path))
        scope = Path(str(payload.get("scope") or source))
        try:
            classification = Classification(payload.get("class", Classification.OTHER.value))
        except ValueError:
            classification = Classification.OTHER
        self.scopes.grant(scope)
        exists = await asyncio.to_thread(source.exists)
        if not exists:
            logger.info("Access token for %s is stale", path)
        return OpenedToken(
            path=path,
            source=source,
            scope=scope,
            classification=classification,
            stale=not exists,
        )

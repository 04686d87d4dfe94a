"""Persistent access tokens and the scopes they are minted under."""

from sequential.tokens.factory import AccessToken, AccessTokenFactory, InvalidTokenError, OpenedToken
from sequential.tokens.scope import ScopeRegistry

__all__ = [
    "AccessToken",
    "AccessTokenFactory",
    "InvalidTokenError",
    "OpenedToken",
    "ScopeRegistry",
]

"""Expiring key-value store contract and key layout."""
from __future__ import annotations

from typing import Protocol

# Redis glob metacharacters; ids are escaped before being used in a prefix scan.
_GLOB_SPECIAL = "\\*?[]^"

# Returned by TTL for a key that does not exist / has no expiry.
TTL_MISSING = -2
TTL_PERSISTENT = -1


class KeyValueStore(Protocol):
    """Operations the sink needs from its store; every call may raise StoreUnavailableError."""

    async def get(self, key: str) -> str | None: ...

    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl_seconds: int | None = None,
        ttl_ms: int | None = None,
        keep_ttl: bool = False,
        only_if_exists: bool = False,
    ) -> bool: ...

    async def exists(self, key: str) -> bool: ...

    async def delete(self, *keys: str) -> int: ...

    async def keys_with_prefix(self, prefix: str) -> list[str]: ...

    async def ttl(self, key: str) -> int: ...

    async def pttl(self, key: str) -> int: ...

    async def close(self) -> None: ...


def escape_glob(value: str) -> str:
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in value)


class KeySpace:
    """Builds storage keys for tokens and their captured requests.

    tokens:   {prefix}token:{token_id}
    captures: {prefix}request:{token_id}:{request_id}
    """

    def __init__(self, prefix: str = "webhook:"):
        self._prefix = prefix

    @property
    def token_prefix(self) -> str:
        return f"{self._prefix}token:"

    @property
    def capture_prefix(self) -> str:
        return f"{self._prefix}request:"

    def token(self, token_id: str) -> str:
        return f"{self.token_prefix}{token_id}"

    def capture(self, token_id: str, request_id: str) -> str:
        return f"{self.capture_prefix}{token_id}:{request_id}"

    def captures_of(self, token_id: str) -> str:
        """Prefix shared by every capture of one token."""
        return f"{self.capture_prefix}{token_id}:"

    def token_id_from_key(self, key: str) -> str:
        return key[len(self.token_prefix):]

    def split_capture_key(self, key: str) -> tuple[str, str]:
        """Return ``(token_id, request_id)`` for a capture key."""
        token_id, _, request_id = key[len(self.capture_prefix):].partition(":")
        return token_id, request_id

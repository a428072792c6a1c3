"""Redis-backed implementation of the expiring key-value store."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, TypeVar

import structlog
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

from webhook_sink.core.exceptions import StoreUnavailableError
from webhook_sink.settings import Settings
from webhook_sink.store.base import KeyValueStore, escape_glob

logger = structlog.get_logger(__name__)

T = TypeVar("T")

STORE_KEY = "kv_store"


class RedisStore:
    """Thin wrapper over ``redis.asyncio`` that bounds every call with a timeout.

    Redis and socket failures are re-raised as StoreUnavailableError. The
    client is built without retries, callers decide whether to try again.
    """

    def __init__(self, client: Redis, *, operation_timeout: float = 5.0):
        self._client = client
        self._operation_timeout = operation_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisStore":
        client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.redis_connect_timeout_seconds,
            socket_timeout=settings.redis_socket_timeout_seconds,
            retry=Retry(NoBackoff(), 0),
        )
        return cls(client, operation_timeout=settings.store_operation_timeout_seconds)

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._operation_timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.warning(
                "store operation failed",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise StoreUnavailableError(f"Store operation {operation} failed") from exc

    async def get(self, key: str) -> str | None:
        return await self._call("GET", self._client.get(key))

    async def set(
        self,
        key: str,
        value: str,
        *,
        ttl_seconds: int | None = None,
        ttl_ms: int | None = None,
        keep_ttl: bool = False,
        only_if_exists: bool = False,
    ) -> bool:
        if sum((ttl_seconds is not None, ttl_ms is not None, keep_ttl)) > 1:
            raise ValueError("ttl_seconds, ttl_ms and keep_ttl are mutually exclusive")
        result = await self._call(
            "SET",
            self._client.set(key, value, ex=ttl_seconds, px=ttl_ms, keepttl=keep_ttl, xx=only_if_exists),
        )
        return bool(result)

    async def exists(self, key: str) -> bool:
        return bool(await self._call("EXISTS", self._client.exists(key)))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._call("DEL", self._client.delete(*keys)))

    async def keys_with_prefix(self, prefix: str) -> list[str]:
        # KEYS is a full scan; acceptable for a sink holding short-lived data.
        found: list[Any] = await self._call("KEYS", self._client.keys(f"{escape_glob(prefix)}*"))
        return [key.decode() if isinstance(key, bytes) else key for key in found]

    async def ttl(self, key: str) -> int:
        return int(await self._call("TTL", self._client.ttl(key)))

    async def pttl(self, key: str) -> int:
        return int(await self._call("PTTL", self._client.pttl(key)))

    async def close(self) -> None:
        await self._client.aclose()


def create_store_hooks(settings: Settings, store: KeyValueStore | None = None):
    """Create on_startup/on_cleanup hooks that own the store on the app.

    A pre-built store (tests) is attached as-is and left open on cleanup.
    """

    async def init_store(app) -> None:
        if store is not None:
            app[STORE_KEY] = store
            return
        app[STORE_KEY] = RedisStore.from_settings(settings)
        logger.info("redis store initialised")

    async def close_store(app) -> None:
        if store is None and STORE_KEY in app:
            await app[STORE_KEY].close()

    return init_store, close_store

"""Shared key-value helpers for repositories."""
from __future__ import annotations

import asyncio

from webhook_sink.store.base import KeySpace, KeyValueStore


class BaseRepository:
    """Thin wrapper over store operations."""

    def __init__(self, store: KeyValueStore, keys: KeySpace):
        self._store = store
        self._keys = keys

    async def _get_many(self, keys: list[str]) -> list[tuple[str, str]]:
        """Fetch values concurrently, dropping keys that expired since they were listed."""
        values = await asyncio.gather(*(self._store.get(key) for key in keys))
        return [(key, value) for key, value in zip(keys, values) if value is not None]

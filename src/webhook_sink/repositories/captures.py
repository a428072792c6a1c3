"""Captured request repository."""
from __future__ import annotations

from typing import List

import structlog
from pydantic import ValidationError

from webhook_sink.domain.models import CapturedRequest
from webhook_sink.repositories.base import BaseRepository
from webhook_sink.store.base import KeySpace, KeyValueStore

logger = structlog.get_logger(__name__)


class CaptureRepository(BaseRepository):
    def __init__(self, store: KeyValueStore, keys: KeySpace):
        super().__init__(store, keys)

    @staticmethod
    def _to_model(raw: str) -> CapturedRequest:
        return CapturedRequest.model_validate_json(raw)

    async def save(self, capture: CapturedRequest, *, ttl_ms: int) -> None:
        await self._store.set(
            self._keys.capture(capture.token_id, capture.id),
            capture.model_dump_json(),
            ttl_ms=ttl_ms,
        )

    async def get(self, token_id: str, request_id: str) -> CapturedRequest | None:
        raw = await self._store.get(self._keys.capture(token_id, request_id))
        if raw is None:
            return None
        try:
            return self._to_model(raw)
        except ValidationError:
            logger.error("unreadable capture record", token_id=token_id, request_id=request_id)
            return None

    async def keys_for_token(self, token_id: str) -> List[str]:
        return await self._store.keys_with_prefix(self._keys.captures_of(token_id))

    async def all_keys(self) -> List[str]:
        return await self._store.keys_with_prefix(self._keys.capture_prefix)

    async def list_for_token(self, token_id: str) -> List[CapturedRequest]:
        keys = await self.keys_for_token(token_id)
        captures: List[CapturedRequest] = []
        for key, raw in await self._get_many(keys):
            try:
                captures.append(self._to_model(raw))
            except ValidationError:
                logger.warning("skipping unreadable capture record", key=key)
        return captures

    async def delete_keys(self, keys: List[str]) -> int:
        return await self._store.delete(*keys)

    def token_id_of(self, key: str) -> str:
        return self._keys.split_capture_key(key)[0]

"""Capture store: ingestion and retrieval of captured webhook calls."""
from __future__ import annotations

import asyncio
from typing import List

import structlog

from webhook_sink.core.exceptions import NotFoundError, StoreUnavailableError
from webhook_sink.domain.models import CapturedRequest
from webhook_sink.repositories.captures import CaptureRepository
from webhook_sink.repositories.tokens import TokenRepository
from webhook_sink.store.base import TTL_PERSISTENT

logger = structlog.get_logger(__name__)

DELETE_BATCH_SIZE = 500


class CaptureStore:
    def __init__(
        self,
        capture_repository: CaptureRepository,
        token_repository: TokenRepository,
        *,
        fallback_ttl_seconds: int,
    ):
        self._captures = capture_repository
        self._tokens = token_repository
        self._fallback_ttl_ms = fallback_ttl_seconds * 1000

    async def append(self, token_id: str, record: CapturedRequest) -> CapturedRequest:
        """Store ``record`` with the parent token's remaining lifetime.

        The TTL is read at write time with millisecond precision, so a
        capture never outlives its token.
        Raises NotFoundError, without writing, when the token is gone.
        """
        remaining_ms = await self._tokens.pttl(token_id)
        if remaining_ms == TTL_PERSISTENT:
            ttl_ms = self._fallback_ttl_ms
        elif remaining_ms > 0:
            ttl_ms = remaining_ms
        else:
            raise NotFoundError("Token not found")

        if record.token_id != token_id:
            record = record.model_copy(update={"token_id": token_id})
        await self._captures.save(record, ttl_ms=ttl_ms)
        logger.debug("capture stored", token_id=token_id, request_id=record.id, ttl_ms=ttl_ms)
        return record

    async def list(self, token_id: str) -> List[CapturedRequest]:
        """Captures for a token, newest first. Empty when there are none."""
        captures = await self._captures.list_for_token(token_id)
        captures.sort(key=lambda item: (item.received_at, item.id), reverse=True)
        return captures

    async def get(self, token_id: str, request_id: str) -> CapturedRequest:
        capture = await self._captures.get(token_id, request_id)
        if capture is None:
            raise NotFoundError("Captured request not found")
        return capture

    async def delete_all(self, token_id: str) -> int:
        """Remove every capture of a token; returns how many keys were deleted.

        Best effort: a failing batch is logged and skipped, its records keep
        their inherited expiry and go away on their own.
        """
        keys = await self._captures.keys_for_token(token_id)
        return await self._delete_in_batches(keys, token_id=token_id)

    async def sweep_orphans(self) -> int:
        """Delete captures whose parent token no longer exists."""
        by_token: dict[str, list[str]] = {}
        for key in await self._captures.all_keys():
            by_token.setdefault(self._captures.token_id_of(key), []).append(key)
        if not by_token:
            return 0

        token_ids = list(by_token)
        alive = await asyncio.gather(*(self._tokens.exists(token_id) for token_id in token_ids))
        orphaned = [key for token_id, exists in zip(token_ids, alive) if not exists for key in by_token[token_id]]
        return await self._delete_in_batches(orphaned)

    async def _delete_in_batches(self, keys: List[str], *, token_id: str | None = None) -> int:
        deleted = 0
        failed = 0
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            try:
                deleted += await self._captures.delete_keys(batch)
            except StoreUnavailableError:
                failed += len(batch)
        if failed:
            logger.warning(
                "capture deletion incomplete",
                token_id=token_id,
                deleted=deleted,
                failed=failed,
            )
        return deleted

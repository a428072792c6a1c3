"""Token registry: lifecycle and response configuration of webhook tokens."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping
from uuid import uuid4

import structlog
from pydantic import ValidationError

from webhook_sink.core.clock import now_ms
from webhook_sink.core.exceptions import InvalidArgumentError, NotFoundError, StoreUnavailableError
from webhook_sink.domain.dto import ResponseConfigUpdateDTO
from webhook_sink.domain.models import ResponseConfig, Token
from webhook_sink.repositories.tokens import TokenRepository
from webhook_sink.services.captures import CaptureStore
from webhook_sink.store.base import TTL_MISSING

logger = structlog.get_logger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
        if value == 0:
            return "".join(reversed(digits))


def generate_token_id(timestamp_ms: int) -> str:
    """Millisecond timestamp prefix plus a random suffix; unique without a store round trip."""
    return f"{_base36(timestamp_ms)}{uuid4().hex[:8]}"


def default_token_name(timestamp_ms: int) -> str:
    created = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return f"New Token-{created:%Y%m%d%H%M}"


def _clean_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgumentError("Name must be a non-empty string")
    return name.strip()


class TokenRegistry:
    def __init__(
        self,
        token_repository: TokenRepository,
        capture_store: CaptureStore,
        *,
        ttl_seconds: int,
        clock: Callable[[], int] = now_ms,
    ):
        self._tokens = token_repository
        self._captures = capture_store
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    async def create(self, name: str | None = None) -> Token:
        created_at = self._clock()
        token = Token(
            id=generate_token_id(created_at),
            name=default_token_name(created_at) if name is None else _clean_name(name),
            created_at=created_at,
            config=ResponseConfig(),
        )
        await self._tokens.create(token, ttl_seconds=self._ttl_seconds)
        logger.info("token created", token_id=token.id)
        return token

    async def get(self, token_id: str) -> Token:
        token = await self._tokens.get(token_id)
        if token is None:
            raise NotFoundError("Token not found")
        return token

    async def remaining_ttl(self, token_id: str) -> int:
        remaining = await self._tokens.ttl(token_id)
        if remaining == TTL_MISSING:
            raise NotFoundError("Token not found")
        return remaining

    async def rename(self, token_id: str, new_name: str) -> Token:
        name = _clean_name(new_name)
        token = await self.get(token_id)
        return await self._save(token.model_copy(update={"name": name}))

    async def update_config(
        self,
        token_id: str,
        config: ResponseConfigUpdateDTO | Mapping[str, Any],
    ) -> Token:
        if not isinstance(config, ResponseConfigUpdateDTO):
            try:
                config = ResponseConfigUpdateDTO.model_validate(config)
            except ValidationError as exc:
                raise InvalidArgumentError(exc.json()) from exc
        token = await self.get(token_id)
        return await self._save(token.model_copy(update={"config": config.to_config()}))

    async def _save(self, token: Token) -> Token:
        # Lands only while the key exists and keeps its expiry; a token that
        # expired or was deleted since it was read stays gone.
        if not await self._tokens.save_keep_ttl(token):
            raise NotFoundError("Token not found")
        logger.info("token updated", token_id=token.id)
        return token

    async def delete(self, token_id: str) -> bool:
        """Delete a token and cascade to its captures.

        Idempotent: returns False when there was no token record, the capture
        cascade still runs so strays are cleaned up. Cascade failures never
        undo or block the token deletion.
        """
        removed = await self._tokens.delete(token_id)
        try:
            purged = await self._captures.delete_all(token_id)
        except StoreUnavailableError:
            logger.warning("capture cascade skipped, captures will expire on their own", token_id=token_id)
            purged = 0
        logger.info("token deleted", token_id=token_id, existed=removed, captures_deleted=purged)
        return removed

    async def list_tokens(self) -> List[Token]:
        tokens = await self._tokens.list_all()
        tokens.sort(key=lambda token: (token.created_at, token.id), reverse=True)
        return tokens

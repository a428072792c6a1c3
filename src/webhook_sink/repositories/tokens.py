"""Token repository."""
from __future__ import annotations

import json
from typing import Any, List

import structlog
from pydantic import ValidationError

from webhook_sink.domain.models import Token
from webhook_sink.repositories.base import BaseRepository
from webhook_sink.store.base import KeySpace, KeyValueStore

logger = structlog.get_logger(__name__)

# Field names written by the first version of the sink.
_LEGACY_CONFIG_FIELDS = {"status": "status_code", "type": "body_kind"}


class TokenRepository(BaseRepository):
    def __init__(self, store: KeyValueStore, keys: KeySpace):
        super().__init__(store, keys)

    @staticmethod
    def _normalize(payload: dict[str, Any]) -> dict[str, Any]:
        if "created_at" not in payload and "created" in payload:
            payload["created_at"] = payload.pop("created")
        config = payload.get("config")
        if isinstance(config, dict):
            for old, new in _LEGACY_CONFIG_FIELDS.items():
                if old in config and new not in config:
                    config[new] = config.pop(old)
        elif config is None:
            payload.pop("config", None)
        return payload

    def _to_model(self, key: str, raw: str) -> Token:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("token record is not an object")
        payload = self._normalize(payload)
        token_id = self._keys.token_id_from_key(key)
        payload["id"] = token_id
        payload.setdefault("name", token_id)
        return Token.model_validate(payload)

    @staticmethod
    def _dump(token: Token) -> str:
        return token.model_dump_json()

    async def create(self, token: Token, *, ttl_seconds: int) -> None:
        await self._store.set(self._keys.token(token.id), self._dump(token), ttl_seconds=ttl_seconds)

    async def get(self, token_id: str) -> Token | None:
        key = self._keys.token(token_id)
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return self._to_model(key, raw)
        except (ValueError, ValidationError):
            logger.error("unreadable token record", token_id=token_id, exc_info=True)
            return None

    async def save_keep_ttl(self, token: Token) -> bool:
        """Overwrite an existing token without touching its expiry.

        Returns False when the key is gone (expired or deleted), in which case
        nothing is written.
        """
        return await self._store.set(
            self._keys.token(token.id),
            self._dump(token),
            keep_ttl=True,
            only_if_exists=True,
        )

    async def exists(self, token_id: str) -> bool:
        return await self._store.exists(self._keys.token(token_id))

    async def ttl(self, token_id: str) -> int:
        return await self._store.ttl(self._keys.token(token_id))

    async def pttl(self, token_id: str) -> int:
        return await self._store.pttl(self._keys.token(token_id))

    async def delete(self, token_id: str) -> bool:
        return await self._store.delete(self._keys.token(token_id)) > 0

    async def list_all(self) -> List[Token]:
        keys = await self._store.keys_with_prefix(self._keys.token_prefix)
        tokens: List[Token] = []
        for key, raw in await self._get_many(keys):
            try:
                tokens.append(self._to_model(key, raw))
            except (ValueError, ValidationError):
                logger.warning("skipping unreadable token record", key=key)
        return tokens

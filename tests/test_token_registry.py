import itertools
import json
from unittest.mock import AsyncMock

import pytest

from conftest import make_capture
from webhook_sink.core.exceptions import InvalidArgumentError, NotFoundError, StoreUnavailableError
from webhook_sink.domain.enums import BodyKind
from webhook_sink.domain.models import ResponseConfig
from webhook_sink.repositories import TokenRepository
from webhook_sink.services.tokens import TokenRegistry, default_token_name, generate_token_id
from webhook_sink.settings import TOKEN_TTL_SECONDS


def test_generated_ids_are_url_safe_and_distinct():
    ids = {generate_token_id(1700000000000) for _ in range(100)}

    assert len(ids) == 100
    assert all(token_id.isalnum() and token_id == token_id.lower() for token_id in ids)


def test_default_token_name_uses_utc_minutes():
    assert default_token_name(1700000000000) == "New Token-202311142213"


@pytest.mark.asyncio
async def test_create_stores_default_config_with_full_ttl(registry, fake_redis, keys):
    token = await registry.create()

    assert token.name.startswith("New Token-")
    assert token.config == ResponseConfig()
    assert TOKEN_TTL_SECONDS - 2 <= await fake_redis.ttl(keys.token(token.id)) <= TOKEN_TTL_SECONDS


@pytest.mark.asyncio
async def test_default_config_round_trip(registry):
    token = await registry.create("orders")

    loaded = await registry.get(token.id)

    assert loaded == token
    assert loaded.config.status_code == 200
    assert loaded.config.body_kind is BodyKind.JSON
    assert loaded.config.body == '{"success": true}'
    assert [(h.name, h.value) for h in loaded.config.headers] == [("X-Powered-By", "DevTools")]


@pytest.mark.asyncio
async def test_create_rejects_blank_name(registry):
    with pytest.raises(InvalidArgumentError):
        await registry.create("   ")


@pytest.mark.asyncio
async def test_get_unknown_token(registry):
    with pytest.raises(NotFoundError):
        await registry.get("missing")


@pytest.mark.asyncio
async def test_rename_preserves_remaining_ttl(registry, fake_redis, keys):
    token = await registry.create()
    await fake_redis.expire(keys.token(token.id), 100)

    renamed = await registry.rename(token.id, "  billing  ")

    assert renamed.name == "billing"
    assert (await registry.get(token.id)).name == "billing"
    assert 0 < await fake_redis.ttl(keys.token(token.id)) <= 100


@pytest.mark.asyncio
async def test_rename_rejects_blank_name_and_keeps_old_one(registry):
    token = await registry.create("original")

    with pytest.raises(InvalidArgumentError):
        await registry.rename(token.id, "")

    assert (await registry.get(token.id)).name == "original"


@pytest.mark.asyncio
async def test_rename_unknown_token(registry):
    with pytest.raises(NotFoundError):
        await registry.rename("missing", "name")


@pytest.mark.asyncio
async def test_save_after_delete_does_not_resurrect_token(registry, store, keys, fake_redis):
    token = await registry.create()
    await registry.delete(token.id)

    saved = await TokenRepository(store, keys).save_keep_ttl(token.model_copy(update={"name": "late"}))

    assert saved is False
    assert await fake_redis.exists(keys.token(token.id)) == 0


@pytest.mark.asyncio
async def test_update_config_preserves_ttl_and_accepts_key_alias(registry, fake_redis, keys):
    token = await registry.create()
    await fake_redis.expire(keys.token(token.id), 500)

    updated = await registry.update_config(
        token.id,
        {
            "status_code": 201,
            "body_kind": "text",
            "body": "accepted",
            "headers": [{"key": "X-Source", "value": "sink"}],
        },
    )

    assert updated.config.status_code == 201
    assert updated.config.body_kind is BodyKind.TEXT
    assert updated.config.headers[0].name == "X-Source"
    assert (await registry.get(token.id)).config == updated.config
    assert 0 < await fake_redis.ttl(keys.token(token.id)) <= 500


@pytest.mark.asyncio
async def test_update_config_unknown_body_kind_defaults_to_json(registry):
    token = await registry.create()

    updated = await registry.update_config(token.id, {"status_code": 200, "body_kind": "yaml"})

    assert updated.config.body_kind is BodyKind.JSON


@pytest.mark.parametrize("payload", [{"status_code": 700}, {"status_code": 42}, {"body": "no status"}])
@pytest.mark.asyncio
async def test_update_config_rejects_invalid_status(registry, payload):
    token = await registry.create()

    with pytest.raises(InvalidArgumentError):
        await registry.update_config(token.id, payload)

    assert (await registry.get(token.id)).config == ResponseConfig()


@pytest.mark.asyncio
async def test_delete_is_idempotent(registry):
    token = await registry.create()

    assert await registry.delete(token.id) is True
    assert await registry.delete(token.id) is False
    with pytest.raises(NotFoundError):
        await registry.get(token.id)


@pytest.mark.asyncio
async def test_delete_cascades_to_captures(registry, capture_store):
    token = await registry.create()
    await capture_store.append(token.id, make_capture(token.id, "r1", 1))
    await capture_store.append(token.id, make_capture(token.id, "r2", 2))

    await registry.delete(token.id)

    assert await capture_store.list(token.id) == []


@pytest.mark.asyncio
async def test_delete_of_absent_token_still_sweeps_strays(registry, capture_store, fake_redis, keys):
    token = await registry.create()
    await capture_store.append(token.id, make_capture(token.id, "stray", 1))
    await fake_redis.delete(keys.token(token.id))

    assert await registry.delete(token.id) is False
    assert await capture_store.list(token.id) == []


@pytest.mark.asyncio
async def test_cascade_failure_does_not_block_token_delete(store, keys, settings):
    capture_store = AsyncMock()
    capture_store.delete_all.side_effect = StoreUnavailableError("down")
    registry = TokenRegistry(TokenRepository(store, keys), capture_store, ttl_seconds=settings.token_ttl_seconds)
    token = await registry.create()

    assert await registry.delete(token.id) is True
    with pytest.raises(NotFoundError):
        await registry.get(token.id)


@pytest.mark.asyncio
async def test_list_tokens_newest_first(store, keys, capture_store, settings):
    ticks = itertools.count(1700000000000, 60000)
    registry = TokenRegistry(
        TokenRepository(store, keys),
        capture_store,
        ttl_seconds=settings.token_ttl_seconds,
        clock=lambda: next(ticks),
    )
    first = await registry.create("first")
    second = await registry.create("second")
    third = await registry.create("third")

    tokens = await registry.list_tokens()

    assert [token.id for token in tokens] == [third.id, second.id, first.id]


@pytest.mark.asyncio
async def test_list_skips_unreadable_records(registry, fake_redis, keys):
    token = await registry.create()
    await fake_redis.set(keys.token("garbage"), "not json")

    tokens = await registry.list_tokens()

    assert [item.id for item in tokens] == [token.id]


@pytest.mark.asyncio
async def test_reads_records_written_with_legacy_field_names(registry, fake_redis, keys):
    await fake_redis.set(
        keys.token("legacy1"),
        json.dumps({"name": "old", "created": 5, "config": {"status": "404", "type": "weird", "body": "x"}}),
        ex=60,
    )

    token = await registry.get("legacy1")

    assert token.created_at == 5
    assert token.config.status_code == 404
    assert token.config.body_kind is BodyKind.JSON
    assert token.config.body == "x"


@pytest.mark.parametrize(
    "header",
    [
        {"name": "X-Evil", "value": "a\r\nSet-Cookie: x=1"},
        {"name": "X-Nul", "value": "a\0b"},
        {"name": "Bad Name", "value": "x"},
        {"name": "", "value": "x"},
        {"name": "X-Colon:", "value": "x"},
    ],
)
@pytest.mark.asyncio
async def test_update_config_rejects_unsendable_headers(registry, header):
    token = await registry.create()

    with pytest.raises(InvalidArgumentError):
        await registry.update_config(token.id, {"status_code": 200, "headers": [header]})

    assert (await registry.get(token.id)).config == ResponseConfig()


@pytest.mark.parametrize("status_code", [100, 101, 199])
@pytest.mark.asyncio
async def test_update_config_rejects_interim_statuses(registry, status_code):
    token = await registry.create()

    with pytest.raises(InvalidArgumentError):
        await registry.update_config(token.id, {"status_code": status_code})

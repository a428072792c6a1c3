from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import make_capture
from webhook_sink.core.exceptions import NotFoundError
from webhook_sink.repositories import CaptureRepository
from webhook_sink.services.captures import CaptureStore
from webhook_sink.workers import orphan_capture_sweep


@pytest.mark.asyncio
async def test_capture_inherits_remaining_token_ttl(registry, capture_store, fake_redis, keys):
    token = await registry.create()
    await fake_redis.pexpire(keys.token(token.id), 50_500)

    await capture_store.append(token.id, make_capture(token.id, "r1", 1))

    # second-granularity TTL would round 50.5 s up to 51 s
    assert 49_000 < await fake_redis.pttl(keys.capture(token.id, "r1")) <= 50_500


@pytest.mark.asyncio
async def test_append_for_missing_token_writes_nothing(capture_store, fake_redis, keys):
    with pytest.raises(NotFoundError):
        await capture_store.append("ghost", make_capture("ghost", "r1", 1))

    assert await fake_redis.keys(f"{keys.capture_prefix}*") == []


@pytest.mark.asyncio
async def test_token_without_expiry_falls_back_to_configured_ttl(registry, capture_store, fake_redis, keys, settings):
    token = await registry.create()
    await fake_redis.persist(keys.token(token.id))

    await capture_store.append(token.id, make_capture(token.id, "r1", 1))

    capture_ttl = await fake_redis.ttl(keys.capture(token.id, "r1"))
    assert settings.token_ttl_seconds - 2 <= capture_ttl <= settings.token_ttl_seconds


@pytest.mark.asyncio
async def test_list_is_newest_first_with_ties_broken_by_id(registry, capture_store):
    token = await registry.create()
    for request_id, received_at in [("a", 10), ("c", 30), ("b", 30), ("d", 20)]:
        await capture_store.append(token.id, make_capture(token.id, request_id, received_at))

    captures = await capture_store.list(token.id)

    assert [item.id for item in captures] == ["c", "b", "d", "a"]


@pytest.mark.asyncio
async def test_list_without_captures_is_empty(registry, capture_store):
    token = await registry.create()

    assert await capture_store.list(token.id) == []


@pytest.mark.asyncio
async def test_list_is_scoped_to_token(registry, capture_store):
    first = await registry.create()
    second = await registry.create()
    await capture_store.append(first.id, make_capture(first.id, "r1", 1))
    await capture_store.append(second.id, make_capture(second.id, "r2", 2))

    assert [item.id for item in await capture_store.list(first.id)] == ["r1"]


@pytest.mark.asyncio
async def test_list_skips_unreadable_records(registry, capture_store, fake_redis, keys):
    token = await registry.create()
    await capture_store.append(token.id, make_capture(token.id, "good", 1))
    await fake_redis.set(keys.capture(token.id, "bad"), "{}", ex=60)

    assert [item.id for item in await capture_store.list(token.id)] == ["good"]


@pytest.mark.asyncio
async def test_get_single_capture(registry, capture_store):
    token = await registry.create()
    stored = await capture_store.append(token.id, make_capture(token.id, "r1", 1, method="PUT"))

    assert await capture_store.get(token.id, "r1") == stored
    with pytest.raises(NotFoundError):
        await capture_store.get(token.id, "missing")


@pytest.mark.asyncio
async def test_delete_all_returns_number_of_removed_captures(registry, capture_store):
    token = await registry.create()
    for index in range(3):
        await capture_store.append(token.id, make_capture(token.id, f"r{index}", index))

    assert await capture_store.delete_all(token.id) == 3
    assert await capture_store.list(token.id) == []
    assert (await registry.get(token.id)).id == token.id


@pytest.mark.asyncio
async def test_sweep_removes_only_orphaned_captures(registry, capture_store, store, keys):
    live = await registry.create()
    gone = await registry.create()
    await capture_store.append(live.id, make_capture(live.id, "keep", 1))
    await registry.delete(gone.id)
    # a capture written after the cascade ran, as in a delete racing an ingestion
    await CaptureRepository(store, keys).save(make_capture(gone.id, "orphan", 2), ttl_ms=60_000)

    assert await capture_store.sweep_orphans() == 1
    assert [item.id for item in await capture_store.list(live.id)] == ["keep"]
    assert await capture_store.list(gone.id) == []


@pytest.mark.asyncio
async def test_orphan_sweep_worker_task(service_client, store, keys):
    await CaptureRepository(store, keys).save(make_capture("deleted1", "orphan", 1), ttl_ms=60_000)

    summary = await orphan_capture_sweep(service_client.app, datetime.now(timezone.utc))

    assert summary == "deleted=1"
    assert await orphan_capture_sweep(service_client.app, datetime.now(timezone.utc)) is None


@pytest.mark.asyncio
async def test_capture_ttl_is_exact_remaining_milliseconds():
    tokens = AsyncMock()
    tokens.pttl.return_value = 1_234
    captures = AsyncMock()
    capture_store = CaptureStore(captures, tokens, fallback_ttl_seconds=60)

    await capture_store.append("tok", make_capture("tok", "r1", 1))

    captures.save.assert_awaited_once()
    assert captures.save.await_args.kwargs == {"ttl_ms": 1_234}

import pytest
from fakeredis import FakeAsyncRedis, FakeServer

from webhook_sink.domain.models import CapturedRequest, SynthesizedResponse
from webhook_sink.main import create_app
from webhook_sink.services.dependencies import build_capture_store, build_token_registry
from webhook_sink.settings import Settings
from webhook_sink.store.base import KeySpace
from webhook_sink.store.redis_store import RedisStore

KEY_PREFIX = "test:"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        key_prefix=KEY_PREFIX,
        orphan_sweep_enabled=False,
        otel_exporter_endpoint=None,
    )


@pytest.fixture
async def fake_redis():
    client = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(fake_redis):
    """The real Redis adapter on top of an in-memory server."""
    return RedisStore(fake_redis, operation_timeout=1.0)


@pytest.fixture
def keys():
    return KeySpace(KEY_PREFIX)


@pytest.fixture
def capture_store(store, settings):
    return build_capture_store(store, settings)


@pytest.fixture
def registry(store, settings):
    return build_token_registry(store, settings)


@pytest.fixture
async def service_client(aiohttp_client, settings, store):
    """Client for calling the service API backed by fakeredis."""
    app = create_app(settings, store)
    return await aiohttp_client(app)


def make_capture(token_id: str, request_id: str, received_at: int, **overrides) -> CapturedRequest:
    fields = {
        "id": request_id,
        "token_id": token_id,
        "received_at": received_at,
        "method": "POST",
        "path": f"/webhook/{token_id}",
        "responded_with": SynthesizedResponse(status=200, headers={}, body=""),
    }
    fields.update(overrides)
    return CapturedRequest(**fields)

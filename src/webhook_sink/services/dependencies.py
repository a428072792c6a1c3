"""Shared dependency providers for aiohttp handlers."""
from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from aiohttp import web

from webhook_sink.repositories import CaptureRepository, TokenRepository
from webhook_sink.services import CaptureStore, IngestionPipeline, TokenRegistry
from webhook_sink.settings import Settings
from webhook_sink.store.base import KeySpace, KeyValueStore
from webhook_sink.store.redis_store import STORE_KEY

TService = TypeVar("TService")

SETTINGS_KEY = "settings"

_TOKEN_REGISTRY_KEY = "token_registry"
_CAPTURE_STORE_KEY = "capture_store"
_INGESTION_PIPELINE_KEY = "ingestion_pipeline"


def get_app_settings(app: web.Application) -> Settings:
    return app[SETTINGS_KEY]


def get_store(app: web.Application) -> KeyValueStore:
    return app[STORE_KEY]


def build_capture_store(store: KeyValueStore, settings: Settings) -> CaptureStore:
    keys = KeySpace(settings.key_prefix)
    return CaptureStore(
        CaptureRepository(store, keys),
        TokenRepository(store, keys),
        fallback_ttl_seconds=settings.token_ttl_seconds,
    )


def build_token_registry(store: KeyValueStore, settings: Settings) -> TokenRegistry:
    keys = KeySpace(settings.key_prefix)
    return TokenRegistry(
        TokenRepository(store, keys),
        build_capture_store(store, settings),
        ttl_seconds=settings.token_ttl_seconds,
    )


async def _get_or_create_service(
    request: web.Request,
    cache_key: str,
    builder: Callable[[web.Request], Awaitable[TService]],
) -> TService:
    service = request.get(cache_key)
    if service is None:
        service = await builder(request)
        request[cache_key] = service
    return service


async def get_capture_store(request: web.Request) -> CaptureStore:
    async def builder(req: web.Request) -> CaptureStore:
        return build_capture_store(get_store(req.app), get_app_settings(req.app))

    return await _get_or_create_service(request, _CAPTURE_STORE_KEY, builder)


async def get_token_registry(request: web.Request) -> TokenRegistry:
    async def builder(req: web.Request) -> TokenRegistry:
        return build_token_registry(get_store(req.app), get_app_settings(req.app))

    return await _get_or_create_service(request, _TOKEN_REGISTRY_KEY, builder)


async def get_ingestion_pipeline(request: web.Request) -> IngestionPipeline:
    async def builder(req: web.Request) -> IngestionPipeline:
        registry = await get_token_registry(req)
        captures = await get_capture_store(req)
        return IngestionPipeline(registry, captures)

    return await _get_or_create_service(request, _INGESTION_PIPELINE_KEY, builder)

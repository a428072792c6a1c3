"""aiohttp application helpers: base app, health, OpenAPI and CORS wiring."""
from __future__ import annotations

from pathlib import Path
from typing import Literal, Protocol

from aiohttp import hdrs, web
from aiohttp_cors import CorsConfig, ResourceOptions, setup as cors_setup

from webhook_sink.middleware.errors import store_error_middleware
from webhook_sink.middleware.trace import create_trace_middleware

# aiohttp_cors expects a sequence of strings (or "*"), not a comma-separated string.
_ALLOWED_HEADERS = (
    "Accept",
    "Accept-Language",
    "Content-Language",
    "Content-Type",
    "X-Trace-Id",
    "X-Request-Id",
)

_ALLOWED_METHODS = (
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "OPTIONS",
)

_EXPOSED_HEADERS = (
    "X-Trace-Id",
    "X-Request-Id",
)


class SettingsProtocol(Protocol):
    app_name: str
    env: Literal["development", "staging", "production"]
    cors_allowed_origins: list[str]
    client_max_size_bytes: int


def create_base_app(settings: SettingsProtocol) -> tuple[web.Application, CorsConfig]:
    """Create a base aiohttp app with tracing, store error mapping and CORS configured."""
    app = web.Application(client_max_size=settings.client_max_size_bytes)

    # Trace runs outermost so the 500 produced for store outages is logged with its ids.
    app.middlewares.append(create_trace_middleware(settings.app_name))
    app.middlewares.append(store_error_middleware)

    cors = cors_setup(
        app,
        defaults={
            origin: ResourceOptions(
                allow_credentials=True,
                expose_headers=_EXPOSED_HEADERS,
                allow_headers=_ALLOWED_HEADERS,
                allow_methods=_ALLOWED_METHODS,
            )
            for origin in settings.cors_allowed_origins
        },
    )

    return app, cors


def add_healthcheck(app: web.Application, settings: SettingsProtocol) -> None:
    async def healthcheck(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "service": settings.app_name, "env": settings.env})

    app.router.add_get("/health", healthcheck)


def add_openapi_spec(app: web.Application, openapi_path: Path) -> None:
    async def openapi_spec(_request: web.Request) -> web.StreamResponse:
        return web.FileResponse(openapi_path, headers={"Content-Type": "application/yaml"})

    app.router.add_get("/openapi.yaml", openapi_spec)


def add_cors_to_routes(app: web.Application, cors: CorsConfig) -> None:
    """Apply CORS configuration to the management routes.

    Catch-all method routes (the webhook endpoint) are left alone: aiohttp_cors
    cannot register them, and webhook senders are not browsers.
    """
    for route in list(app.router.routes()):
        if route.method == hdrs.METH_ANY:
            continue
        cors.add(route)

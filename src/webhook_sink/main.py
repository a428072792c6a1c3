"""aiohttp application entrypoint."""
from __future__ import annotations

from pathlib import Path

from aiohttp import web

from webhook_sink.aiohttp_app import add_cors_to_routes, add_healthcheck, add_openapi_spec, create_base_app
from webhook_sink.api.router import setup_routes
from webhook_sink.logging_config import configure_logging
from webhook_sink.otel import setup_otel, shutdown_otel
from webhook_sink.services.dependencies import SETTINGS_KEY
from webhook_sink.settings import Settings, get_settings
from webhook_sink.store.base import KeyValueStore
from webhook_sink.store.redis_store import create_store_hooks
from webhook_sink.workers import build_worker

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
OPENAPI_PATH = PROJECT_ROOT / "openapi" / "openapi.yaml"


def create_app(settings: Settings | None = None, store: KeyValueStore | None = None) -> web.Application:
    """Build the application; ``store`` replaces the Redis store built from settings."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app, cors = create_base_app(settings)
    app[SETTINGS_KEY] = settings

    add_healthcheck(app, settings)
    add_openapi_spec(app, OPENAPI_PATH)
    setup_routes(app)
    add_cors_to_routes(app, cors)

    init_store, close_store = create_store_hooks(settings, store)
    app.on_startup.append(init_store)
    app.on_cleanup.append(close_store)

    worker = build_worker(settings)
    if worker.tasks:
        app.on_startup.append(worker.start)
        app.on_cleanup.insert(0, worker.stop)

    if setup_otel(app, settings):
        app.on_cleanup.append(shutdown_otel)

    return app


def main() -> None:
    settings = get_settings()
    web.run_app(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()

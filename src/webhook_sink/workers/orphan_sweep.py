"""Worker: delete captured requests whose token is gone."""
from __future__ import annotations

from datetime import datetime

from aiohttp import web

from webhook_sink.services.dependencies import build_capture_store, get_app_settings, get_store


async def orphan_capture_sweep(app: web.Application, now: datetime) -> str | None:
    """Remove captures left behind by a delete that raced with an ingestion."""
    captures = build_capture_store(get_store(app), get_app_settings(app))
    deleted = await captures.sweep_orphans()
    return f"deleted={deleted}" if deleted else None

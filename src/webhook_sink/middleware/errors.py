"""Translate infrastructure failures into generic HTTP errors."""
from __future__ import annotations

import structlog
from aiohttp import web

from webhook_sink.core.exceptions import StoreUnavailableError

logger = structlog.get_logger(__name__)

STORE_UNAVAILABLE_MESSAGE = "Service temporarily unavailable, please retry later"


@web.middleware
async def store_error_middleware(request: web.Request, handler):
    """Report store outages as 500 without leaking the underlying error."""
    try:
        return await handler(request)
    except StoreUnavailableError:
        logger.exception("Store unavailable while handling request")
        raise web.HTTPInternalServerError(text=STORE_UNAVAILABLE_MESSAGE)

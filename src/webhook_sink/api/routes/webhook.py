"""Capture-and-reply endpoint hit by webhook senders."""
from __future__ import annotations

from typing import Mapping

from aiohttp import hdrs, web

from webhook_sink.api.utils import parse_token_id
from webhook_sink.core.exceptions import NotFoundError
from webhook_sink.middleware.trace import VERBATIM_RESPONSE_KEY
from webhook_sink.services.body_decoder import collapse_pairs, read_body
from webhook_sink.services.dependencies import get_ingestion_pipeline
from webhook_sink.services.ingestion import InboundRequest

routes = web.RouteTableDef()


def _joined_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Repeated headers are joined with ``, `` as they would be on a single line."""
    joined: dict[str, str] = {}
    for name, value in headers.items():
        name = str(name)
        joined[name] = f"{joined[name]}, {value}" if name in joined else value
    return joined


def inbound_from_request(request: web.Request) -> InboundRequest:
    return InboundRequest(
        method=request.method,
        path=request.path_qs,
        headers=_joined_headers(request.headers),
        query=collapse_pairs(request.rel_url.query.items()),
        remote=request.remote,
    )


@routes.route(hdrs.METH_ANY, "/webhook/{token}")
async def receive_webhook(request: web.Request):
    token_id = parse_token_id(request, "token")
    pipeline = await get_ingestion_pipeline(request)
    try:
        response = await pipeline.handle(
            token_id,
            inbound_from_request(request),
            lambda: read_body(request),
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    request[VERBATIM_RESPONSE_KEY] = True
    return web.Response(
        status=response.status,
        headers=response.headers,
        body=response.body.encode("utf-8"),
    )

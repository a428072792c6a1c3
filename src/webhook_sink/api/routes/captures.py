"""Captured request history endpoints."""
from __future__ import annotations

from aiohttp import web

from webhook_sink.api.utils import paginated_response, pagination_params, parse_token_id
from webhook_sink.core.exceptions import NotFoundError
from webhook_sink.services.dependencies import get_capture_store, get_token_registry

routes = web.RouteTableDef()


async def _require_token(request: web.Request) -> str:
    token_id = parse_token_id(request)
    registry = await get_token_registry(request)
    try:
        await registry.get(token_id)
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return token_id


@routes.get("/tokens/{token_id}/requests")
async def list_captured_requests(request: web.Request):
    token_id = await _require_token(request)
    captures = await get_capture_store(request)
    limit, offset = pagination_params(request)
    items = await captures.list(token_id)
    payload = paginated_response(
        [item.model_dump(mode="json") for item in items[offset:offset + limit]],
        limit=limit,
        offset=offset,
        key="requests",
        total=len(items),
    )
    return web.json_response(payload)


@routes.get("/tokens/{token_id}/requests/{request_id}")
async def get_captured_request(request: web.Request):
    token_id = await _require_token(request)
    captures = await get_capture_store(request)
    try:
        item = await captures.get(token_id, request.match_info["request_id"])
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(item.model_dump(mode="json"))


@routes.delete("/tokens/{token_id}/requests")
async def clear_captured_requests(request: web.Request):
    token_id = await _require_token(request)
    captures = await get_capture_store(request)
    deleted = await captures.delete_all(token_id)
    return web.json_response({"deleted": deleted})

"""Token management endpoints."""
from __future__ import annotations

from typing import Any

from aiohttp import web
from pydantic import ValidationError

from webhook_sink.api.utils import (
    paginated_response,
    pagination_params,
    parse_token_id,
    read_json,
    read_optional_json,
)
from webhook_sink.core.exceptions import InvalidArgumentError, NotFoundError
from webhook_sink.domain.dto import ResponseConfigUpdateDTO, TokenCreateDTO, TokenUpdateDTO
from webhook_sink.domain.models import Token
from webhook_sink.services.dependencies import get_token_registry
from webhook_sink.store.base import TTL_PERSISTENT

routes = web.RouteTableDef()


def token_payload(token: Token, *, expires_in: int | None = None, with_ttl: bool = False) -> dict[str, Any]:
    payload = token.model_dump(mode="json")
    payload["webhook_path"] = f"/webhook/{token.id}"
    if with_ttl:
        payload["expires_in_seconds"] = None if expires_in == TTL_PERSISTENT else expires_in
    return payload


@routes.post("/tokens")
async def create_token(request: web.Request):
    body = await read_optional_json(request)
    try:
        dto = TokenCreateDTO.model_validate(body)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc
    registry = await get_token_registry(request)
    try:
        token = await registry.create(dto.name)
    except InvalidArgumentError as exc:
        raise web.HTTPBadRequest(text=str(exc)) from exc
    return web.json_response(token_payload(token))


@routes.get("/tokens")
async def list_tokens(request: web.Request):
    registry = await get_token_registry(request)
    limit, offset = pagination_params(request)
    tokens = await registry.list_tokens()
    payload = paginated_response(
        [token_payload(token) for token in tokens[offset:offset + limit]],
        limit=limit,
        offset=offset,
        key="tokens",
        total=len(tokens),
    )
    return web.json_response(payload)


@routes.get("/tokens/{token_id}")
async def get_token(request: web.Request):
    token_id = parse_token_id(request)
    registry = await get_token_registry(request)
    try:
        token = await registry.get(token_id)
        remaining = await registry.remaining_ttl(token_id)
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(token_payload(token, expires_in=remaining, with_ttl=True))


@routes.patch("/tokens/{token_id}")
async def update_token(request: web.Request):
    token_id = parse_token_id(request)
    body = await read_json(request)
    try:
        dto = TokenUpdateDTO.model_validate(body)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc

    registry = await get_token_registry(request)
    try:
        if dto.name is not None:
            token = await registry.rename(token_id, dto.name)
        if dto.config is not None:
            token = await registry.update_config(token_id, dto.config)
    except InvalidArgumentError as exc:
        raise web.HTTPBadRequest(text=str(exc)) from exc
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(token_payload(token))


@routes.delete("/tokens/{token_id}")
async def delete_token(request: web.Request):
    token_id = parse_token_id(request)
    registry = await get_token_registry(request)
    if not await registry.delete(token_id):
        raise web.HTTPNotFound(text="Token not found")
    return web.Response(status=204)


@routes.get("/tokens/{token_id}/config")
async def get_token_config(request: web.Request):
    token_id = parse_token_id(request)
    registry = await get_token_registry(request)
    try:
        token = await registry.get(token_id)
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(token.config.model_dump(mode="json"))


@routes.put("/tokens/{token_id}/config")
async def replace_token_config(request: web.Request):
    token_id = parse_token_id(request)
    body = await read_json(request)
    try:
        dto = ResponseConfigUpdateDTO.model_validate(body)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc
    registry = await get_token_registry(request)
    try:
        token = await registry.update_config(token_id, dto)
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(token.config.model_dump(mode="json"))


@routes.get("/tokens/{token_id}/validate")
async def validate_token(request: web.Request):
    token_id = parse_token_id(request)
    registry = await get_token_registry(request)
    try:
        await registry.get(token_id)
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response({"valid": True})

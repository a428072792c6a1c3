"""Helper utilities for API handlers."""
from __future__ import annotations

import re
from typing import Any

from aiohttp import web

TOKEN_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


async def read_json(request: web.Request) -> dict[str, Any]:
    """Parse JSON body from request, raising HTTPBadRequest on invalid input."""
    try:
        data = await request.json()
    except Exception as exc:
        raise web.HTTPBadRequest(text="Invalid JSON payload") from exc
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="JSON body must be an object")
    return data


async def read_optional_json(request: web.Request) -> dict[str, Any]:
    """Like :func:`read_json`, but an empty body reads as ``{}``."""
    if not request.can_read_body:
        return {}
    raw = await request.read()
    if not raw.strip():
        return {}
    return await read_json(request)


def parse_token_id(request: web.Request, label: str = "token_id") -> str:
    """Token id from the path; malformed ids cannot exist, so they are a 404."""
    value = request.match_info[label]
    if not TOKEN_ID_PATTERN.match(value):
        raise web.HTTPNotFound(text="Token not found")
    return value


def pagination_params(
    request: web.Request,
    *,
    default_limit: int = 50,
    max_limit: int = 100,
) -> tuple[int, int]:
    query = request.rel_url.query
    try:
        limit = int(query.get("limit", str(default_limit)))
        offset = int(query.get("offset", "0"))
    except ValueError as exc:
        raise web.HTTPBadRequest(text="limit and offset must be integers") from exc
    if limit <= 0:
        limit = default_limit
    limit = min(limit, max_limit)
    if offset < 0:
        offset = 0
    return limit, offset


def paginated_response(
    items: list[Any],
    *,
    limit: int,
    offset: int,
    key: str,
    total: int,
) -> dict[str, Any]:
    page = offset // limit + 1 if limit else 1
    return {
        key: items,
        "total": total,
        "page": page,
        "page_size": limit,
    }

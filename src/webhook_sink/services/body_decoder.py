"""Decoding of inbound webhook bodies into a tagged variant."""
from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Iterable
from urllib.parse import parse_qsl

from aiohttp import web
from aiohttp.http_exceptions import HttpProcessingError
from aiohttp.web_request import FileField

from webhook_sink.core.exceptions import DecodeFailure
from webhook_sink.domain.enums import CaptureBodyKind

FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART_FORM = "multipart/form-data"

_TEXTUAL_TYPES = {
    "application/xml",
    "application/javascript",
    "application/x-ndjson",
    "application/graphql",
}


@dataclass(frozen=True)
class DecodedBody:
    kind: CaptureBodyKind
    value: Any = None


def _is_json(mimetype: str) -> bool:
    return mimetype == "application/json" or mimetype.endswith("+json")


def _is_textual(mimetype: str) -> bool:
    return mimetype.startswith("text/") or mimetype in _TEXTUAL_TYPES or mimetype.endswith("+xml")


def _text(raw: bytes, charset: str | None) -> str:
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


def collapse_pairs(pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Single values stay scalar, repeated field names become lists."""
    fields: dict[str, Any] = {}
    for name, value in pairs:
        if name not in fields:
            fields[name] = value
        elif isinstance(fields[name], list):
            fields[name].append(value)
        else:
            fields[name] = [fields[name], value]
    return fields


def _describe_file(field: FileField) -> dict[str, Any]:
    stream = field.file
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(0)
    return {"filename": field.filename, "content_type": field.content_type, "size": size}


def form_fields(form: Any) -> dict[str, Any]:
    """Flatten a parsed form multidict; uploaded files are described, not stored."""
    return collapse_pairs(
        (name, _describe_file(value) if isinstance(value, FileField) else value)
        for name, value in form.items()
    )


def decode_body(mimetype: str, raw: bytes, charset: str | None = None) -> DecodedBody:
    """Decode ``raw`` according to its media type.

    JSON and urlencoded bodies that do not parse raise DecodeFailure. Bodies
    of unknown type are kept as text when they are valid UTF-8, otherwise as
    base64.
    """
    if not raw:
        return DecodedBody(CaptureBodyKind.EMPTY)

    mimetype = (mimetype or "").lower()
    if _is_json(mimetype):
        try:
            return DecodedBody(CaptureBodyKind.JSON, json.loads(raw.decode(charset or "utf-8")))
        except (ValueError, LookupError) as exc:
            raise DecodeFailure(f"Invalid JSON body: {exc}") from exc

    if mimetype == FORM_URLENCODED:
        try:
            pairs = parse_qsl(raw.decode(charset or "utf-8"), keep_blank_values=True)
        except (ValueError, LookupError) as exc:
            raise DecodeFailure(f"Invalid form body: {exc}") from exc
        return DecodedBody(CaptureBodyKind.FORM, collapse_pairs(pairs))

    if _is_textual(mimetype):
        return DecodedBody(CaptureBodyKind.TEXT, _text(raw, charset))

    try:
        return DecodedBody(CaptureBodyKind.TEXT, raw.decode("utf-8"))
    except UnicodeDecodeError:
        return DecodedBody(CaptureBodyKind.BINARY, base64.b64encode(raw).decode("ascii"))


async def read_body(request: web.Request) -> DecodedBody:
    """Read and decode the body of an aiohttp request; any failure is a DecodeFailure."""
    try:
        if request.content_type == MULTIPART_FORM:
            form = await request.post()
            return DecodedBody(CaptureBodyKind.FORM, form_fields(form))
        raw = await request.read()
    except (web.HTTPException, HttpProcessingError, ValueError, AssertionError, OSError) as exc:
        raise DecodeFailure(f"Unreadable body: {exc}") from exc
    return decode_body(request.content_type, raw, request.charset)

"""Turns a token's response configuration into the reply sent to webhook callers."""
from __future__ import annotations

from webhook_sink.domain.enums import BodyKind
from webhook_sink.domain.models import (
    BODYLESS_STATUS_CODES,
    ResponseConfig,
    SynthesizedResponse,
    coerce_status_code,
    is_valid_header_name,
    is_valid_header_value,
)

CONTENT_TYPE_HEADER = "Content-Type"

CONTENT_TYPES: dict[BodyKind, str] = {
    BodyKind.JSON: "application/json",
    BodyKind.TEXT: "text/plain",
    BodyKind.XML: "application/xml",
    BodyKind.HTML: "text/html",
}

# Message framing belongs to the server; configured values would desync the caller.
FRAMING_HEADERS = frozenset({
    "connection",
    "content-length",
    "keep-alive",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


def _put_header(headers: dict[str, str], name: str, value: str) -> None:
    """Set a header, replacing any earlier one with the same name in any case."""
    lowered = name.lower()
    for existing in [key for key in headers if key.lower() == lowered]:
        del headers[existing]
    headers[name] = value


def _sendable(name: str, value: str) -> bool:
    return (
        is_valid_header_name(name)
        and is_valid_header_value(value)
        and name.lower() not in FRAMING_HEADERS
    )


def synthesize(config: ResponseConfig) -> SynthesizedResponse:
    """Build the response described by ``config``.

    Independent of the inbound request: the same config always yields the
    same response. The body is passed through untouched, even when it is not
    valid for its declared kind. Headers that cannot be sent as configured
    (framing headers, malformed names or values in old records) are left out,
    so the result is exactly what goes on the wire.
    """
    headers: dict[str, str] = {}
    for header in config.headers:
        if not _sendable(header.name, header.value):
            continue
        _put_header(headers, header.name, header.value)
    _put_header(headers, CONTENT_TYPE_HEADER, CONTENT_TYPES.get(config.body_kind, CONTENT_TYPES[BodyKind.JSON]))

    status = coerce_status_code(config.status_code)
    return SynthesizedResponse(
        status=status,
        headers=headers,
        body="" if status in BODYLESS_STATUS_CODES else config.body or "",
    )

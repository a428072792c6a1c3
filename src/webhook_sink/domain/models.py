"""Domain models stored in the key-value store."""
from __future__ import annotations

import re
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from webhook_sink.domain.enums import BodyKind, CaptureBodyKind

DEFAULT_STATUS_CODE = 200
DEFAULT_RESPONSE_BODY = '{"success": true}'
# 1xx are interim responses and cannot be the final reply to a webhook call.
MIN_STATUS_CODE = 200
MAX_STATUS_CODE = 599

# Replies to these carry no body, whatever is configured.
BODYLESS_STATUS_CODES = frozenset({204, 304})

# RFC 7230 token.
_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_FORBIDDEN_VALUE_CHARS = ("\r", "\n", "\0")


def is_valid_header_name(name: str) -> bool:
    return _HEADER_NAME.fullmatch(name) is not None


def is_valid_header_value(value: str) -> bool:
    return not any(char in value for char in _FORBIDDEN_VALUE_CHARS)


class ResponseHeader(BaseModel):
    """One configured response header; ``key`` is accepted for ``name``."""

    name: str = Field(validation_alias=AliasChoices("name", "key"))
    value: str = ""

    @field_validator("name", "value", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)


def default_headers() -> list[ResponseHeader]:
    return [ResponseHeader(name="X-Powered-By", value="DevTools")]


def coerce_status_code(value: Any) -> int:
    """Status to reply with; anything missing, non-numeric or out of range is 200."""
    if isinstance(value, bool):
        return DEFAULT_STATUS_CODE
    try:
        status = int(value)
    except (TypeError, ValueError):
        return DEFAULT_STATUS_CODE
    if not MIN_STATUS_CODE <= status <= MAX_STATUS_CODE:
        return DEFAULT_STATUS_CODE
    return status


def coerce_body_kind(value: Any) -> BodyKind:
    if isinstance(value, BodyKind):
        return value
    try:
        return BodyKind(str(value).lower())
    except ValueError:
        return BodyKind.JSON


class ResponseConfig(BaseModel):
    """Response a token replies with.

    Parsing is lenient: this model also reads records written by older
    versions, so bad values fall back to defaults instead of failing.
    """

    status_code: int = DEFAULT_STATUS_CODE
    body_kind: BodyKind = BodyKind.JSON
    body: str = DEFAULT_RESPONSE_BODY
    headers: list[ResponseHeader] = Field(default_factory=default_headers)

    @field_validator("status_code", mode="before")
    @classmethod
    def _status_code(cls, value: Any) -> int:
        return coerce_status_code(value)

    @field_validator("body_kind", mode="before")
    @classmethod
    def _body_kind(cls, value: Any) -> BodyKind:
        return coerce_body_kind(value)

    @field_validator("body", mode="before")
    @classmethod
    def _body(cls, value: Any) -> str:
        return "" if value is None else str(value)


class Token(BaseModel):
    id: str
    name: str
    created_at: int  # epoch milliseconds
    config: ResponseConfig = Field(default_factory=ResponseConfig)


class SynthesizedResponse(BaseModel):
    """Exact status, headers and body sent back to a webhook caller."""

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


class CapturedRequest(BaseModel):
    id: str
    token_id: str
    received_at: int  # epoch milliseconds
    method: str
    path: str
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str | list[str]] = Field(default_factory=dict)
    body: Any = None
    body_kind: CaptureBodyKind = CaptureBodyKind.EMPTY
    remote: str | None = None
    responded_with: SynthesizedResponse

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

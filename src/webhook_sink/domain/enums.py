"""Domain enums."""
from __future__ import annotations

from enum import Enum


class BodyKind(str, Enum):
    """Kind of body a token replies with; decides the Content-Type."""

    JSON = "json"
    TEXT = "text"
    XML = "xml"
    HTML = "html"


class CaptureBodyKind(str, Enum):
    """How an inbound webhook body was decoded."""

    JSON = "json"
    FORM = "form"
    TEXT = "text"
    BINARY = "binary"
    EMPTY = "empty"
    UNPARSEABLE = "unparseable"


class IngestionStage(str, Enum):
    """Stages an inbound webhook call moves through."""

    RECEIVED = "received"
    TOKEN_LOOKUP = "token_lookup"
    REJECTED = "rejected"
    AUTHORIZED = "authorized"
    BODY_PARSED = "body_parsed"
    RESPONSE_SYNTHESIZED = "response_synthesized"
    CAPTURED = "captured"
    REPLIED = "replied"

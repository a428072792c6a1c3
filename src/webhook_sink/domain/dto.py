"""Pydantic DTOs for management API payloads."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from webhook_sink.domain.enums import BodyKind
from webhook_sink.domain.models import (
    MAX_STATUS_CODE,
    MIN_STATUS_CODE,
    ResponseConfig,
    ResponseHeader,
    coerce_body_kind,
    is_valid_header_name,
    is_valid_header_value,
)


class TokenCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None


class ResponseHeaderDTO(ResponseHeader):
    """Configured header as submitted; must be sendable on the wire."""

    @field_validator("name")
    @classmethod
    def _token_name(cls, value: str) -> str:
        if not is_valid_header_name(value):
            raise ValueError("Header name must be a valid HTTP token")
        return value

    @field_validator("value")
    @classmethod
    def _single_line_value(cls, value: str) -> str:
        if not is_valid_header_value(value):
            raise ValueError("Header value must not contain CR, LF or NUL")
        return value


class ResponseConfigUpdateDTO(BaseModel):
    """Incoming response configuration; stricter than the stored model."""

    model_config = ConfigDict(extra="ignore")

    status_code: int = Field(ge=MIN_STATUS_CODE, le=MAX_STATUS_CODE)
    body_kind: BodyKind = BodyKind.JSON
    body: str = ""
    headers: list[ResponseHeaderDTO] = Field(default_factory=list)

    @field_validator("body_kind", mode="before")
    @classmethod
    def _unknown_kind_is_json(cls, value: Any) -> BodyKind:
        return coerce_body_kind(value)

    @field_validator("body", mode="before")
    @classmethod
    def _null_body(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_config(self) -> ResponseConfig:
        return ResponseConfig(
            status_code=self.status_code,
            body_kind=self.body_kind,
            body=self.body,
            headers=[ResponseHeader(name=header.name, value=header.value) for header in self.headers],
        )


class TokenUpdateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    config: ResponseConfigUpdateDTO | None = None

    @model_validator(mode="after")
    def _require_change(self) -> "TokenUpdateDTO":
        if self.name is None and self.config is None:
            raise ValueError("Provide name and/or config")
        return self

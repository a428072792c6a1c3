"""Ingestion pipeline for calls to ``/webhook/{token}``.

received -> token_lookup -> rejected (404) | authorized -> body_parsed
         -> response_synthesized -> captured -> replied

The response is computed before history is written; failing to record the
call never changes what the caller gets back.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable
from uuid import uuid4

import structlog

from webhook_sink.core.clock import now_ms
from webhook_sink.core.exceptions import DecodeFailure, NotFoundError
from webhook_sink.domain.enums import CaptureBodyKind, IngestionStage
from webhook_sink.domain.models import CapturedRequest, SynthesizedResponse, Token
from webhook_sink.services.body_decoder import DecodedBody
from webhook_sink.services.captures import CaptureStore
from webhook_sink.services.synthesizer import synthesize
from webhook_sink.services.tokens import TokenRegistry

logger = structlog.get_logger(__name__)

BodyReader = Callable[[], Awaitable[DecodedBody]]


@dataclass
class InboundRequest:
    """Transport-independent snapshot of an inbound webhook call."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str | list[str]] = field(default_factory=dict)
    remote: str | None = None


class IngestionPipeline:
    def __init__(
        self,
        registry: TokenRegistry,
        capture_store: CaptureStore,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self._registry = registry
        self._captures = capture_store
        self._clock = clock

    async def handle(self, token_id: str, inbound: InboundRequest, read_body: BodyReader) -> SynthesizedResponse:
        """Run one call through the pipeline.

        Raises NotFoundError for unknown or expired tokens; nothing is
        captured in that case and the body is never read.
        """
        log = logger.bind(token_id=token_id)
        log.debug("webhook stage", stage=IngestionStage.RECEIVED.value, http_method=inbound.method)

        token = await self.authorize(token_id)
        body = await self._parse_body(token, read_body)
        return await self.respond(token, inbound, body)

    async def authorize(self, token_id: str) -> Token:
        logger.debug("webhook stage", stage=IngestionStage.TOKEN_LOOKUP.value, token_id=token_id)
        try:
            token = await self._registry.get(token_id)
        except NotFoundError:
            logger.info("webhook rejected", stage=IngestionStage.REJECTED.value, token_id=token_id)
            raise
        logger.debug("webhook stage", stage=IngestionStage.AUTHORIZED.value, token_id=token_id)
        return token

    async def _parse_body(self, token: Token, read_body: BodyReader) -> DecodedBody:
        try:
            body = await read_body()
        except DecodeFailure as exc:
            logger.info("webhook body kept as placeholder", token_id=token.id, reason=str(exc))
            body = DecodedBody(CaptureBodyKind.UNPARSEABLE)
        logger.debug("webhook stage", stage=IngestionStage.BODY_PARSED.value, token_id=token.id, body_kind=body.kind.value)
        return body

    async def respond(self, token: Token, inbound: InboundRequest, body: DecodedBody) -> SynthesizedResponse:
        response = synthesize(token.config)
        if inbound.method == "HEAD":
            # HEAD replies carry headers only.
            response = response.model_copy(update={"body": ""})
        logger.debug(
            "webhook stage",
            stage=IngestionStage.RESPONSE_SYNTHESIZED.value,
            token_id=token.id,
            status_code=response.status,
        )

        record = CapturedRequest(
            id=str(uuid4()),
            token_id=token.id,
            received_at=self._clock(),
            method=inbound.method,
            path=inbound.path,
            headers=inbound.headers,
            query=inbound.query,
            body=body.value,
            body_kind=body.kind,
            remote=inbound.remote,
            responded_with=response,
        )
        try:
            await self._captures.append(token.id, record)
        except NotFoundError:
            logger.warning("token vanished before capture, reply sent without history", token_id=token.id)
        except Exception:
            logger.exception("failed to record webhook call", token_id=token.id, request_id=record.id)
        else:
            logger.debug("webhook stage", stage=IngestionStage.CAPTURED.value, token_id=token.id, request_id=record.id)

        logger.info(
            "webhook replied",
            stage=IngestionStage.REPLIED.value,
            token_id=token.id,
            status_code=response.status,
            body_kind=body.kind.value,
        )
        return response

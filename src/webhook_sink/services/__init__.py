"""Domain services exports."""

from webhook_sink.services.captures import CaptureStore
from webhook_sink.services.ingestion import InboundRequest, IngestionPipeline
from webhook_sink.services.synthesizer import synthesize
from webhook_sink.services.tokens import TokenRegistry

__all__ = [
    "TokenRegistry",
    "CaptureStore",
    "IngestionPipeline",
    "InboundRequest",
    "synthesize",
]

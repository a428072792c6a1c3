"""Repository package exports."""

from webhook_sink.repositories.captures import CaptureRepository
from webhook_sink.repositories.tokens import TokenRepository

__all__ = [
    "TokenRepository",
    "CaptureRepository",
]

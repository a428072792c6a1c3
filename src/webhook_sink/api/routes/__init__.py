"""Route modules."""

from . import captures, tokens, webhook

__all__ = [
    "captures",
    "tokens",
    "webhook",
]

"""Common exceptions for domain, store and repository layers."""
from __future__ import annotations


class WebhookSinkError(Exception):
    """Base error for service layer."""


class NotFoundError(WebhookSinkError):
    """Raised when a token or capture is missing or expired."""


class InvalidArgumentError(WebhookSinkError):
    """Raised when a rename or config payload is malformed."""


class StoreUnavailableError(WebhookSinkError):
    """Raised when the key-value store cannot be reached or timed out.

    Retryable from the caller's point of view; nothing in the service retries.
    """


class DecodeFailure(WebhookSinkError):
    """Raised when an inbound webhook body cannot be decoded."""

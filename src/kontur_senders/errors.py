"""Exceptions raised while composing and dispatching notifications."""

from __future__ import annotations


class SendError(Exception):
    """Base class for failures surfaced by a notification sender."""


class ValidationError(SendError):
    """Raised when the destination address is malformed.

    Always raised before any network call is attempted.
    """


class SerializationError(SendError):
    """Raised when a request body cannot be encoded as JSON."""


class TransportError(SendError):
    """Raised when the gateway could not be reached."""


class GatewayRejectionError(SendError):
    """Raised when the gateway replies with a non-success status."""

    def __init__(self, gateway: str, status_code: int, detail: str = "") -> None:
        super().__init__(f"{gateway} replied with error: {status_code} {detail}".rstrip())
        self.gateway = gateway
        self.status_code = status_code
        self.detail = detail


class ShortenerError(Exception):
    """Raised inside the link shortener; never propagates to callers."""

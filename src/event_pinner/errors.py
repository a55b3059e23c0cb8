"""Exception hierarchy for the event_pinner sidecar."""

from __future__ import annotations


class PinnerError(Exception):
    """Base class for all event_pinner errors."""


class ConfigurationError(PinnerError):
    """An event type cannot be scheduled (unknown event, missing field, bad cron)."""


class HashFormatError(PinnerError, ValueError):
    """A hash value cannot be converted to the fixed-width form."""


class TransientError(PinnerError):
    """An I/O failure that may succeed when retried."""


class ContentStoreError(TransientError):
    """The content store rejected or failed a pin/unpin/add call."""

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class PinStateStoreError(TransientError):
    """A pin-state store write failed."""

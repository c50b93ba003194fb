"""Domain errors. Per-message failures derive from MessageHandlingError and never stop the loop."""
from __future__ import annotations


class PollerError(Exception):
    """Base for poller errors."""


class HandlerRegistrationError(PollerError):
    """Raised for invalid handler registrations (duplicates, registry frozen)."""


class MessageHandlingError(PollerError):
    """Base for failures scoped to a single message; the message is left for redelivery."""


class MessageTypeNotFoundError(MessageHandlingError):
    """Neither the message attributes nor the envelope carry a message type."""


class EnvelopeParseError(MessageHandlingError):
    """Message body could not be parsed as a notification envelope."""


class HandlerNotFoundError(MessageHandlingError):
    """No handler is registered for the message type."""

    def __init__(self, message_type: str) -> None:
        super().__init__(f"no handler registered for message type: {message_type}")
        self.message_type = message_type


class HandlerFailedError(MessageHandlingError):
    """The handler raised or reported failure."""

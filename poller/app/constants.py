"""Poller-level constants shared across modules."""
from __future__ import annotations

MESSAGE_TYPE_ATTRIBUTE = "MessageType"


class MESSAGE_STATE:
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    RESOLUTION_FAILED = "RESOLUTION_FAILED"
    HANDLER_FAILED = "HANDLER_FAILED"
    DELETED = "DELETED"
    LEFT_FOR_REDELIVERY = "LEFT_FOR_REDELIVERY"

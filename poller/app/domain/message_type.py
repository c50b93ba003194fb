"""Message type extraction.

A message's logical type is read from its `MessageType` attribute. Producers that publish
through a notification topic instead deliver an envelope whose body carries the real payload
in `Message` and duplicates the attributes under `MessageAttributes`; the envelope is only
parsed when the direct attribute is missing, and the direct attribute always wins.
"""
from __future__ import annotations

from pydantic import ValidationError

from poller.app.constants import MESSAGE_TYPE_ATTRIBUTE
from poller.app.domain.errors import EnvelopeParseError, MessageTypeNotFoundError
from poller.app.domain.models import ExtractedMessage, MessageEnvelope, RawMessage
from poller.app.domain.results import StepResult

SOURCE_ATTRIBUTE = "attribute"
SOURCE_ENVELOPE = "envelope"


class MessageTypeExtractor:
    def __init__(self, attribute_name: str = MESSAGE_TYPE_ATTRIBUTE) -> None:
        self._attribute_name = attribute_name

    def extract(self, message: RawMessage) -> StepResult[ExtractedMessage]:
        direct = message.attributes.get(self._attribute_name)
        if direct:
            return StepResult.success(
                ExtractedMessage(message_type=direct, payload=message.body, source=SOURCE_ATTRIBUTE)
            )

        try:
            envelope = MessageEnvelope.model_validate_json(message.body)
        except ValidationError as exc:
            return StepResult.failure(
                EnvelopeParseError(f"body is not a valid envelope: {exc.error_count()} error(s)")
            )

        attribute = envelope.message_attributes.get(self._attribute_name)
        if attribute is None or not attribute.value:
            return StepResult.failure(
                MessageTypeNotFoundError(
                    f"{self._attribute_name} not found in message attributes or envelope"
                )
            )
        return StepResult.success(
            ExtractedMessage(
                message_type=attribute.value,
                payload=envelope.message,
                source=SOURCE_ENVELOPE,
            )
        )

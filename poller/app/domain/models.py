"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class RawMessage:
    """A message as received from the queue. Owned by one handling attempt."""

    message_id: str
    receipt_handle: str
    body: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.receipt_handle:
            raise ValueError("message missing required field: receipt_handle")
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))


class EnvelopeAttribute(BaseModel):
    """`{"Type": ..., "Value": ...}` entry of an envelope's MessageAttributes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field("", alias="Type")
    value: str | None = Field(None, alias="Value")


class MessageEnvelope(BaseModel):
    """Notification envelope wrapping the real payload (SNS-to-SQS shape).

    Only `Message` and `MessageAttributes` are read; other notification fields are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: str = Field(..., alias="Message")
    message_attributes: dict[str, EnvelopeAttribute] = Field(
        default_factory=dict,
        alias="MessageAttributes",
    )


@dataclass(frozen=True)
class ExtractedMessage:
    """Logical type plus the payload the handler should receive."""

    message_type: str
    payload: str
    source: str


@dataclass(frozen=True)
class CycleReport:
    """Outcome counters for one consumption cycle."""

    received: int = 0
    deleted: int = 0
    left_for_redelivery: int = 0
    delete_failures: int = 0
    receive_failed: bool = False
    interrupted: bool = False

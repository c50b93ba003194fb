"""In-memory queue transport for local mode and tests.

Received messages stay in flight until deleted; `redeliver()` stands in for the
visibility timeout and puts every in-flight message back on its queue.

`receive` filters message attributes by `attribute_names` as SQS does: `All` or `.*`
returns every attribute, a name ending in `.*` matches by prefix, anything else must
match exactly, and an empty list returns none.
"""
from __future__ import annotations

import asyncio
import uuid
from collections import deque
from typing import Mapping, Sequence

from poller.app.domain.models import RawMessage
from poller.app.ports.queue_transport import QueueTransportError

DEFAULT_BASE_URL = "https://sqs.local.invalid/000000000000/"
ALL_ATTRIBUTES = ("All", ".*")


def _select_attributes(attributes: Mapping[str, str], names: Sequence[str]) -> dict[str, str]:
    if any(name in ALL_ATTRIBUTES for name in names):
        return dict(attributes)
    prefixes = tuple(name[:-2] for name in names if name.endswith(".*"))
    exact = set(names)
    return {
        key: value
        for key, value in attributes.items()
        if key in exact or (prefixes and key.startswith(prefixes))
    }


class InMemoryQueueTransport:
    def __init__(self, base_url: str = DEFAULT_BASE_URL) -> None:
        self._base_url = base_url
        self._queues: dict[str, deque[RawMessage]] = {}
        self._in_flight: dict[str, tuple[str, RawMessage]] = {}
        self._arrived = asyncio.Event()
        self.deleted: list[str] = []
        self.resolve_calls: list[str] = []

    async def connect(self) -> None:
        return

    def queue_url(self, queue_name: str) -> str:
        return f"{self._base_url}{queue_name}"

    def send(
        self,
        queue_url: str,
        body: str,
        attributes: Mapping[str, str] | None = None,
    ) -> RawMessage:
        message = RawMessage(
            message_id=str(uuid.uuid4()),
            receipt_handle=str(uuid.uuid4()),
            body=body,
            attributes=dict(attributes or {}),
        )
        self._queues.setdefault(queue_url, deque()).append(message)
        self._arrived.set()
        return message

    def pending(self, queue_url: str) -> int:
        return len(self._queues.get(queue_url, ()))

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def redeliver(self) -> int:
        count = len(self._in_flight)
        for queue_url, message in self._in_flight.values():
            self._queues.setdefault(queue_url, deque()).append(
                RawMessage(
                    message_id=message.message_id,
                    receipt_handle=str(uuid.uuid4()),
                    body=message.body,
                    attributes=dict(message.attributes),
                )
            )
        self._in_flight.clear()
        if count:
            self._arrived.set()
        return count

    async def receive(
        self,
        queue_url: str,
        *,
        max_messages: int,
        wait_seconds: int,
        attribute_names: Sequence[str],
    ) -> list[RawMessage]:
        queue = self._queues.get(queue_url)
        if not queue and wait_seconds > 0:
            self._arrived.clear()
            try:
                await asyncio.wait_for(self._arrived.wait(), timeout=wait_seconds)
            except asyncio.TimeoutError:
                return []
            queue = self._queues.get(queue_url)

        batch: list[RawMessage] = []
        while queue and len(batch) < max_messages:
            message = queue.popleft()
            self._in_flight[message.receipt_handle] = (queue_url, message)
            batch.append(
                RawMessage(
                    message_id=message.message_id,
                    receipt_handle=message.receipt_handle,
                    body=message.body,
                    attributes=_select_attributes(message.attributes, attribute_names),
                )
            )
        return batch

    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        if receipt_handle not in self._in_flight:
            raise QueueTransportError(f"unknown receipt handle: {receipt_handle}")
        del self._in_flight[receipt_handle]
        self.deleted.append(receipt_handle)

    async def resolve_queue_url(self, queue_name: str, owner_account_id: str | None = None) -> str:
        self.resolve_calls.append(queue_name)
        return self.queue_url(queue_name)

    async def close(self) -> None:
        return

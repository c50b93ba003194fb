"""Queue transport factory: selects implementation from config. Only place that imports concrete transports."""
from __future__ import annotations

from poller.app.config.settings import Settings
from poller.app.infrastructure.messaging.inmemory.in_memory_transport import InMemoryQueueTransport
from poller.app.infrastructure.messaging.sqs.sqs_transport import SqsQueueTransport
from poller.app.ports.queue_transport import QueueTransport


def create_queue_transport(settings: Settings) -> QueueTransport:
    backend = settings.transport_backend.strip().lower()

    if backend == "sqs":
        return SqsQueueTransport(settings)

    if backend == "inmemory":
        return InMemoryQueueTransport()

    raise ValueError(f"Unsupported transport backend: {backend}")

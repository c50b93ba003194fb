"""Port: queue transport (receive, delete, resolve URL). Implementations live in infrastructure."""
from __future__ import annotations

from typing import Protocol, Sequence

from poller.app.domain.models import RawMessage


class QueueTransportError(Exception):
    """Base for transport failures (network, permissions, missing queue)."""


class QueueTransport(Protocol):
    """Transport-agnostic queue client. Retry, auth and networking are the adapter's concern."""

    async def connect(self) -> None: ...

    async def receive(
        self,
        queue_url: str,
        *,
        max_messages: int,
        wait_seconds: int,
        attribute_names: Sequence[str],
    ) -> list[RawMessage]:
        """Long-poll one batch; raise QueueTransportError on failure."""
        ...

    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        """Acknowledge a message; raise QueueTransportError on failure."""
        ...

    async def resolve_queue_url(self, queue_name: str, owner_account_id: str | None = None) -> str: ...

    async def close(self) -> None:
        """Release resources. No-op allowed if nothing to close."""
        ...

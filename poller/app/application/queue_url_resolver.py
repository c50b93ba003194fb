"""Queue URL resolution with a process-lifetime base URL cache.

Building queue URLs from a known base avoids a paid GetQueueUrl request per lookup. The
first lookup strips the queue name from the returned URL and caches the remainder; later
calls append the requested name to it. Two concurrent first calls may both hit the
transport; both write the same value, so no lock is taken.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from poller.app.core import SERVICE_NAME
from poller.app.ports.queue_transport import QueueTransport


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class QueueUrlResolver:
    def __init__(self, transport: QueueTransport) -> None:
        self._transport = transport
        self._base_url: str | None = None

    @property
    def base_url(self) -> str | None:
        return self._base_url

    async def resolve(self, queue_name: str, owner_account_id: str | None = None) -> str:
        base_url = self._base_url
        if base_url:
            return base_url + queue_name

        queue_url = await self._transport.resolve_queue_url(queue_name, owner_account_id or None)
        if queue_url.endswith("/" + queue_name):
            self._base_url = queue_url[: len(queue_url) - len(queue_name)]
        else:
            logger.warning("queue url {} does not end with {}; base url not cached", queue_url, queue_name)
        _log("queue_url_resolved", queue_name=queue_name, queue_url=queue_url)
        return queue_url

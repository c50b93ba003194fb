"""Polling loop: resolves the queue URL once, then runs consumption cycles until cancelled.

There is no sleep between cycles; the transport's long-poll wait paces empty polls.
"""
from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from poller.app.application.consumption_cycle import ConsumptionCycle
from poller.app.application.queue_url_resolver import QueueUrlResolver
from poller.app.core import SERVICE_NAME
from poller.app.core.backoff import exponential_backoff
from poller.app.ports.queue_transport import QueueTransportError


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class PollingLoop:
    def __init__(
        self,
        cycle: ConsumptionCycle,
        resolver: QueueUrlResolver,
        *,
        queue_name: str = "",
        queue_url: str = "",
        queue_owner_account_id: str = "",
        initial_backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 30.0,
        backoff_multiplier: float = 2.0,
        max_connection_attempts: int = 5,
    ) -> None:
        if not queue_url and not queue_name:
            raise ValueError("either queue_url or queue_name is required")
        self._cycle = cycle
        self._resolver = resolver
        self._queue_name = queue_name
        self._queue_url = queue_url
        self._queue_owner_account_id = queue_owner_account_id
        self._initial_backoff_seconds = initial_backoff_seconds
        self._max_backoff_seconds = max_backoff_seconds
        self._backoff_multiplier = backoff_multiplier
        self._max_connection_attempts = max_connection_attempts
        self._cycles = 0

    @property
    def cycles(self) -> int:
        return self._cycles

    async def resolve_queue_url(self, cancellation: asyncio.Event) -> str | None:
        """Return the configured URL, or resolve the queue name with backoff. None if cancelled."""
        if self._queue_url:
            return self._queue_url

        attempt = 0
        async for delay in exponential_backoff(
            self._initial_backoff_seconds,
            self._max_backoff_seconds,
            self._backoff_multiplier,
            self._max_connection_attempts,
            cancellation,
        ):
            if cancellation.is_set():
                return None
            attempt += 1
            _log("queue_url_resolve_attempt", attempt=attempt, delay=delay, queue_name=self._queue_name)
            try:
                return await self._resolver.resolve(
                    self._queue_name,
                    self._queue_owner_account_id or None,
                )
            except QueueTransportError as e:
                logger.warning("queue url resolution failed: {}", e)
                if attempt >= self._max_connection_attempts:
                    _log("queue_url_resolve_failed", attempt=attempt, queue_name=self._queue_name)
                    raise
        if cancellation.is_set():
            return None
        raise RuntimeError("queue url resolution failed")

    async def run(self, cancellation: asyncio.Event) -> None:
        queue_url = await self.resolve_queue_url(cancellation)
        if queue_url is None:
            _log("polling_cancelled_before_start")
            return

        _log("polling_started", queue_url=queue_url)
        while not cancellation.is_set():
            try:
                report = await self._cycle.run_once(queue_url, cancellation)
            except Exception as exc:
                logger.exception("consumption cycle failed: {}", exc)
                continue
            finally:
                self._cycles += 1
            if report.received:
                _log(
                    "cycle_completed",
                    received=report.received,
                    deleted=report.deleted,
                    left_for_redelivery=report.left_for_redelivery,
                    delete_failures=report.delete_failures,
                )
        _log("polling_stopped", queue_url=queue_url, cycles=self._cycles)

"""Poller composition root: build and lifecycle-manage concrete dependencies.

Composition may: import concrete classes, call factories, store interface types,
manage high-level lifecycle.
"""
from __future__ import annotations

from typing import Any, Callable

from loguru import logger

from poller.app.application.consumption_cycle import ConsumptionCycle
from poller.app.application.handler_loader import load_handlers
from poller.app.application.handler_registry import HandlerRegistry
from poller.app.application.polling_loop import PollingLoop
from poller.app.application.queue_url_resolver import QueueUrlResolver
from poller.app.config.settings import Settings
from poller.app.core import SERVICE_NAME
from poller.app.infrastructure.messaging.factory import create_queue_transport
from poller.app.ports.queue_transport import QueueTransport

HandlerSetup = Callable[[HandlerRegistry], None]


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class PollerDependencies:
    """Holds wired poller dependencies and their lifecycle."""

    def __init__(
        self,
        *,
        settings: Settings,
        configure_handlers: HandlerSetup | None = None,
        transport: QueueTransport | None = None,
    ) -> None:
        self._settings = settings
        self._configure_handlers = configure_handlers
        self._transport: QueueTransport | None = transport
        self._registry: HandlerRegistry | None = None
        self._resolver: QueueUrlResolver | None = None
        self._polling_loop: PollingLoop | None = None
        self._connected = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def transport(self) -> QueueTransport:
        if self._transport is None:
            raise RuntimeError("transport is not initialized")
        return self._transport

    @property
    def registry(self) -> HandlerRegistry:
        if self._registry is None:
            raise RuntimeError("registry is not initialized")
        return self._registry

    @property
    def resolver(self) -> QueueUrlResolver:
        if self._resolver is None:
            raise RuntimeError("resolver is not initialized")
        return self._resolver

    @property
    def polling_loop(self) -> PollingLoop:
        if self._polling_loop is None:
            raise RuntimeError("polling_loop is not initialized")
        return self._polling_loop

    def _build_registry(self) -> HandlerRegistry:
        registry = HandlerRegistry()
        if self._settings.handlers_module:
            load_handlers(registry, self._settings.handlers_module)
        if self._configure_handlers is not None:
            self._configure_handlers(registry)
        if not len(registry):
            logger.warning("no message handlers registered; every message will be left for redelivery")
        registry.freeze()
        return registry

    async def connect(self) -> None:
        self._registry = self._build_registry()

        if self._transport is None:
            self._transport = create_queue_transport(self._settings)
        await self._transport.connect()

        self._resolver = QueueUrlResolver(self._transport)
        cycle = ConsumptionCycle(
            self._transport,
            self._registry,
            max_messages=self._settings.max_number_of_messages,
            wait_seconds=self._settings.wait_time_seconds,
            attribute_names=self._settings.message_attribute_names,
        )
        self._polling_loop = PollingLoop(
            cycle,
            self._resolver,
            queue_name=self._settings.queue_name.strip(),
            queue_url=self._settings.queue_url.strip(),
            queue_owner_account_id=self._settings.queue_owner_account_id.strip(),
            initial_backoff_seconds=self._settings.initial_backoff_seconds,
            max_backoff_seconds=self._settings.max_backoff_seconds,
            backoff_multiplier=self._settings.backoff_multiplier,
            max_connection_attempts=self._settings.max_connection_attempts,
        )
        self._connected = True
        _log("poller_dependencies_ready", message_types=self._registry.message_types)

    async def close(self) -> None:
        if self._transport is not None:
            try:
                await self._transport.close()
            except Exception as exc:
                logger.warning("transport close failed: {}", exc)

        self._polling_loop = None
        self._resolver = None
        self._connected = False


def create_poller_dependencies(
    settings: Settings | None = None,
    *,
    configure_handlers: HandlerSetup | None = None,
    transport: QueueTransport | None = None,
) -> PollerDependencies:
    return PollerDependencies(
        settings=settings or Settings(),
        configure_handlers=configure_handlers,
        transport=transport,
    )

"""End-to-end poller runs against the in-memory transport through run_poller()."""
from __future__ import annotations

import asyncio

import pytest
from pydantic import BaseModel

from poller.app.config.settings import Settings
from poller.app.infrastructure.messaging.inmemory.in_memory_transport import InMemoryQueueTransport
from poller.app.main import run_poller
from tests.fakes import FakeTransport
from tests.test_data import (
    FULL_SNS_NOTIFICATION,
    ORDER_CREATED_BODY,
    ORDER_SHIPPED_ENVELOPE,
    ORDER_SHIPPED_INNER,
)


class OrderCancelled(BaseModel):
    id: int
    status: str


def _settings(**overrides: str) -> Settings:
    values = {
        "QUEUE_NAME": "orders",
        "TRANSPORT_BACKEND": "inmemory",
        "WAIT_TIME_SECONDS": "1",
        "INITIAL_BACKOFF_SECONDS": "0",
        "MAX_BACKOFF_SECONDS": "0",
        "SHUTDOWN_GRACE_SECONDS": "5",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def _wait_until(predicate, timeout: float = 5.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.mark.integration
def test_poller_routes_both_encodings_and_keeps_failures():
    transport = InMemoryQueueTransport()
    url = transport.queue_url("orders")
    transport.send(url, ORDER_CREATED_BODY, {"MessageType": "OrderCreated"})
    transport.send(url, ORDER_SHIPPED_ENVELOPE)
    transport.send(url, FULL_SNS_NOTIFICATION)
    transport.send(url, "{}", {"MessageType": "NobodyHandlesThis"})
    transport.send(url, '{"id":5}', {"MessageType": "Flaky"})

    seen: list[tuple[str, object]] = []

    async def on_created(payload: str, cancellation: asyncio.Event) -> None:
        seen.append(("OrderCreated", payload))

    async def on_shipped(payload: str, cancellation: asyncio.Event) -> None:
        seen.append(("OrderShipped", payload))

    async def on_cancelled(order: OrderCancelled, cancellation: asyncio.Event) -> None:
        seen.append(("OrderCancelled", order))

    async def on_flaky(payload: str, cancellation: asyncio.Event) -> None:
        raise ConnectionError("downstream unavailable")

    def configure(registry) -> None:
        registry.register("OrderCreated", on_created)
        registry.register("OrderShipped", on_shipped)
        registry.register_model("OrderCancelled", OrderCancelled, on_cancelled)
        registry.register("Flaky", on_flaky)

    async def _run() -> None:
        shutdown = asyncio.Event()
        poller = asyncio.create_task(
            run_poller(
                _settings(),
                configure_handlers=configure,
                transport=transport,
                shutdown=shutdown,
                install_signal_handlers=False,
            )
        )
        await _wait_until(lambda: transport.pending(url) == 0 and len(transport.deleted) == 3)
        shutdown.set()
        await asyncio.wait_for(poller, timeout=5)

    asyncio.run(_run())

    assert seen == [
        ("OrderCreated", ORDER_CREATED_BODY),
        ("OrderShipped", ORDER_SHIPPED_INNER),
        ("OrderCancelled", OrderCancelled(id=3, status="cancelled")),
    ]
    assert len(transport.deleted) == 3
    # unmapped and failing messages wait for the visibility timeout
    assert transport.in_flight == 2
    assert transport.resolve_calls == ["orders"]


@pytest.mark.integration
def test_redelivered_message_is_handled_once_handler_recovers():
    transport = InMemoryQueueTransport()
    url = transport.queue_url("orders")
    transport.send(url, '{"id":9}', {"MessageType": "Flaky"})
    attempts: list[str] = []

    async def on_flaky(payload: str, cancellation: asyncio.Event) -> bool:
        attempts.append(payload)
        return len(attempts) > 1

    async def _run() -> None:
        shutdown = asyncio.Event()
        poller = asyncio.create_task(
            run_poller(
                _settings(),
                configure_handlers=lambda registry: registry.register("Flaky", on_flaky),
                transport=transport,
                shutdown=shutdown,
                install_signal_handlers=False,
            )
        )
        await _wait_until(lambda: transport.in_flight == 1)
        transport.redeliver()
        await _wait_until(lambda: len(transport.deleted) == 1)
        shutdown.set()
        await asyncio.wait_for(poller, timeout=5)

    asyncio.run(_run())

    assert attempts == ['{"id":9}', '{"id":9}']
    assert transport.in_flight == 0


@pytest.mark.integration
def test_unresolvable_queue_fails_startup_and_closes_transport():
    transport = FakeTransport()

    with pytest.raises(Exception, match="queue does not exist"):
        asyncio.run(
            run_poller(
                _settings(QUEUE_NAME="missing", MAX_CONNECTION_ATTEMPTS="2"),
                transport=transport,
                install_signal_handlers=False,
            )
        )

    assert len(transport.resolve_calls) == 2
    assert transport.closed

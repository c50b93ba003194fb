"""Unit tests for QueueUrlResolver base-URL caching."""
from __future__ import annotations

import asyncio

import pytest

from poller.app.application.queue_url_resolver import QueueUrlResolver
from poller.app.ports.queue_transport import QueueTransportError
from tests.fakes import FakeTransport
from tests.test_data import QUEUE_BASE_URL


def test_second_resolution_is_built_from_cached_base_without_lookup():
    transport = FakeTransport(queue_urls={"orders": QUEUE_BASE_URL + "orders"})
    resolver = QueueUrlResolver(transport)

    async def _run() -> tuple[str, str]:
        first = await resolver.resolve("orders")
        second = await resolver.resolve("orders")
        return first, second

    first, second = asyncio.run(_run())

    assert first == QUEUE_BASE_URL + "orders"
    assert second == resolver.base_url + "orders"
    assert second == first
    assert transport.resolve_calls == [("orders", None)]


def test_other_queue_names_reuse_the_base():
    transport = FakeTransport(queue_urls={"orders": QUEUE_BASE_URL + "orders"})
    resolver = QueueUrlResolver(transport)

    async def _run() -> str:
        await resolver.resolve("orders")
        return await resolver.resolve("payments")

    assert asyncio.run(_run()) == QUEUE_BASE_URL + "payments"
    assert len(transport.resolve_calls) == 1


def test_owner_account_id_is_passed_through():
    transport = FakeTransport(queue_urls={"orders": QUEUE_BASE_URL + "orders"})

    asyncio.run(QueueUrlResolver(transport).resolve("orders", "123456789012"))

    assert transport.resolve_calls == [("orders", "123456789012")]


def test_url_not_ending_with_name_is_not_cached():
    transport = FakeTransport(queue_urls={"orders": "https://proxy.internal/q/orders-v2"})
    resolver = QueueUrlResolver(transport)

    async def _run() -> str:
        await resolver.resolve("orders")
        return await resolver.resolve("orders")

    assert asyncio.run(_run()) == "https://proxy.internal/q/orders-v2"
    assert resolver.base_url is None
    assert len(transport.resolve_calls) == 2


def test_lookup_failure_propagates_and_leaves_cache_empty():
    resolver = QueueUrlResolver(FakeTransport())

    with pytest.raises(QueueTransportError):
        asyncio.run(resolver.resolve("missing"))
    assert resolver.base_url is None


def test_name_must_be_the_whole_last_path_segment():
    transport = FakeTransport(queue_urls={"orders": QUEUE_BASE_URL + "my-orders"})
    resolver = QueueUrlResolver(transport)

    async def _run() -> str:
        await resolver.resolve("orders")
        return await resolver.resolve("orders")

    assert asyncio.run(_run()) == QUEUE_BASE_URL + "my-orders"
    assert resolver.base_url is None
    assert len(transport.resolve_calls) == 2

"""Unit tests for HandlerRegistry registration, freezing and resolution."""
from __future__ import annotations

import asyncio

import pytest
from pydantic import BaseModel, ValidationError

from poller.app.application.handler_registry import FunctionHandler, HandlerRegistry
from poller.app.domain.errors import HandlerNotFoundError, HandlerRegistrationError
from tests.fakes import RecordingHandler


class OrderCreated(BaseModel):
    id: int


def test_resolve_registered_handler_object():
    registry = HandlerRegistry()
    handler = RecordingHandler()
    registry.register("OrderCreated", handler)

    result = registry.resolve("OrderCreated")

    assert result.ok
    assert result.unwrap() is handler


def test_resolve_unregistered_type_is_failure_not_exception():
    registry = HandlerRegistry()

    result = registry.resolve("Unknown")

    assert not result.ok
    assert isinstance(result.error, HandlerNotFoundError)
    assert result.error.message_type == "Unknown"


def test_bare_async_function_is_wrapped():
    registry = HandlerRegistry()
    calls: list[str] = []

    async def on_created(payload: str, cancellation: asyncio.Event) -> None:
        calls.append(payload)

    registry.register("OrderCreated", on_created)
    handler = registry.resolve("OrderCreated").unwrap()

    assert isinstance(handler, FunctionHandler)
    asyncio.run(handler.consume('{"id":1}', asyncio.Event()))
    assert calls == ['{"id":1}']


def test_duplicate_registration_rejected():
    registry = HandlerRegistry()
    registry.register("OrderCreated", RecordingHandler())

    with pytest.raises(HandlerRegistrationError, match="already registered"):
        registry.register("OrderCreated", RecordingHandler())


def test_empty_type_rejected():
    with pytest.raises(HandlerRegistrationError):
        HandlerRegistry().register("  ", RecordingHandler())


def test_non_callable_handler_rejected():
    with pytest.raises(HandlerRegistrationError):
        HandlerRegistry().register("OrderCreated", object())  # type: ignore[arg-type]


def test_frozen_registry_rejects_registration_but_still_resolves():
    registry = HandlerRegistry()
    registry.register("OrderCreated", RecordingHandler())
    registry.freeze()

    with pytest.raises(HandlerRegistrationError, match="frozen"):
        registry.register("OrderShipped", RecordingHandler())
    assert registry.frozen
    assert registry.resolve("OrderCreated").ok
    assert registry.message_types == ["OrderCreated"]
    assert "OrderCreated" in registry
    assert len(registry) == 1


def test_decorator_registers_model_handler():
    registry = HandlerRegistry()
    received: list[OrderCreated] = []

    @registry.handler("OrderCreated", model=OrderCreated)
    async def on_created(order: OrderCreated, cancellation: asyncio.Event) -> None:
        received.append(order)

    handler = registry.resolve("OrderCreated").unwrap()
    asyncio.run(handler.consume('{"id": 7}', asyncio.Event()))

    assert received == [OrderCreated(id=7)]


def test_model_handler_raises_on_invalid_payload():
    registry = HandlerRegistry()

    async def on_created(order: OrderCreated, cancellation: asyncio.Event) -> None:
        raise AssertionError("must not be called")

    registry.register_model("OrderCreated", OrderCreated, on_created)
    handler = registry.resolve("OrderCreated").unwrap()

    with pytest.raises(ValidationError):
        asyncio.run(handler.consume('{"id": "not-a-number"}', asyncio.Event()))

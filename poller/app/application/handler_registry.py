"""Handler registry: logical message type -> handler.

Registrations happen once at startup; `freeze()` is called before polling starts so lookups
during the loop never race a mutation.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterator, TypeVar

from pydantic import BaseModel

from poller.app.domain.errors import HandlerNotFoundError, HandlerRegistrationError
from poller.app.domain.results import StepResult
from poller.app.ports.message_handler import HandlerFunc, HandlerOutcome, MessageHandler

ModelT = TypeVar("ModelT", bound=BaseModel)


class FunctionHandler:
    """Adapts a bare `async def fn(payload, cancellation)` to MessageHandler."""

    def __init__(self, func: HandlerFunc) -> None:
        self._func = func

    async def consume(self, payload: str, cancellation: asyncio.Event) -> HandlerOutcome:
        return await self._func(payload, cancellation)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self._func, '__qualname__', self._func)!r})"


class ModelHandler:
    """Validates the JSON payload into a pydantic model before calling the handler.

    A payload that does not validate raises pydantic.ValidationError, which the
    consumption cycle treats like any other handler failure.
    """

    def __init__(
        self,
        model: type[ModelT],
        func: Callable[[ModelT, asyncio.Event], Awaitable[HandlerOutcome]],
    ) -> None:
        self._model = model
        self._func = func

    async def consume(self, payload: str, cancellation: asyncio.Event) -> HandlerOutcome:
        parsed = self._model.model_validate_json(payload)
        return await self._func(parsed, cancellation)

    def __repr__(self) -> str:
        return f"ModelHandler({self._model.__name__})"


class HandlerRegistry:
    def __init__(self) -> None:
        self._handlers: dict[str, MessageHandler] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def message_types(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, message_type: object) -> bool:
        return message_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[str]:
        return iter(self.message_types)

    def register(self, message_type: str, handler: MessageHandler | HandlerFunc) -> None:
        if self._frozen:
            raise HandlerRegistrationError(
                f"registry is frozen; cannot register handler for {message_type!r}"
            )
        if not message_type or not message_type.strip():
            raise HandlerRegistrationError("message type must be a non-empty string")
        if message_type in self._handlers:
            raise HandlerRegistrationError(f"handler already registered for {message_type!r}")

        if isinstance(handler, MessageHandler):
            self._handlers[message_type] = handler
        elif callable(handler):
            self._handlers[message_type] = FunctionHandler(handler)
        else:
            raise HandlerRegistrationError(
                f"handler for {message_type!r} must be callable or expose consume()"
            )

    def register_model(
        self,
        message_type: str,
        model: type[ModelT],
        handler: Callable[[ModelT, asyncio.Event], Awaitable[HandlerOutcome]],
    ) -> None:
        self.register(message_type, ModelHandler(model, handler))

    def handler(self, message_type: str, *, model: type[BaseModel] | None = None) -> Callable[[Any], Any]:
        """Decorator form of register/register_model."""

        def decorator(func: Any) -> Any:
            if model is not None:
                self.register_model(message_type, model, func)
            else:
                self.register(message_type, func)
            return func

        return decorator

    def freeze(self) -> None:
        self._frozen = True

    def resolve(self, message_type: str) -> StepResult[MessageHandler]:
        handler = self._handlers.get(message_type)
        if handler is None:
            return StepResult.failure(HandlerNotFoundError(message_type))
        return StepResult.success(handler)

"""Port: message handler contract exposed to application code registering handlers."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol, Union, runtime_checkable

HandlerOutcome = Union[bool, None]
"""`None` or `True` means success; `False` means failure (the message is kept)."""

HandlerFunc = Callable[[str, asyncio.Event], Awaitable[HandlerOutcome]]


@runtime_checkable
class MessageHandler(Protocol):
    """Consumes one payload. Raising or returning False leaves the message for redelivery."""

    async def consume(self, payload: str, cancellation: asyncio.Event) -> HandlerOutcome: ...

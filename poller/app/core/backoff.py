"""Backoff utilities.

Provides an async generator for exponential backoff strategies.
`exponential_backoff` yields the current delay for the caller to attempt an operation,
then waits that delay before the next attempt. Used for startup steps such as
queue URL resolution; the polling loop itself never backs off.

When a `cancellation` event is given, the wait ends as soon as it is set and the
generator stops without yielding again.
"""
from __future__ import annotations

import asyncio
from typing import AsyncIterator


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
    cancellation: asyncio.Event | None = None,
) -> AsyncIterator[float]:
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        yield delay
        if attempt < max_attempts:
            delay = min(delay * multiplier, max_delay)
            if cancellation is None:
                await asyncio.sleep(delay)
                continue
            try:
                await asyncio.wait_for(cancellation.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            if cancellation.is_set():
                return

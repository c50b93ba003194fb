"""Helpers for racing awaitables against the shared cancellation event."""
from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from loguru import logger

T = TypeVar("T")


class Cancelled(Exception):
    """Raised when the cancellation event fires before the awaited operation completes."""


async def until_cancelled(operation: Awaitable[T], cancellation: asyncio.Event) -> T:
    """Await `operation` unless `cancellation` is set first.

    The operation task is cancelled and `Cancelled` is raised when the event wins.
    Exceptions raised by the operation propagate unchanged. If the awaiting task is
    itself cancelled, the operation task is cancelled with it.
    """
    if cancellation.is_set():
        if asyncio.iscoroutine(operation):
            operation.close()
        raise Cancelled()

    op_task = asyncio.ensure_future(operation)
    cancel_task = asyncio.ensure_future(cancellation.wait())
    try:
        await asyncio.wait({op_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_task.cancel()
        if not op_task.done():
            op_task.cancel()

    if op_task.done():
        return op_task.result()

    try:
        await op_task
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.warning("operation failed after cancellation: {}", exc)
    raise Cancelled()

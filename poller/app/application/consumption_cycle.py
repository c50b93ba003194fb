"""
Consumption cycle: one receive batch, dispatched message by message.

Per message:
  RECEIVED -> TYPE_EXTRACTED -> HANDLER_RESOLVED -> HANDLER_INVOKED -> DELETED
  Any failed step ends in LEFT_FOR_REDELIVERY: the message is not deleted and the
  transport's visibility timeout re-offers it later.

A message is deleted only when its handler completed without failure. A failed delete is
logged but the message still counts as handled; the handler's effect already happened and
a duplicate delivery is accepted. Messages run sequentially in transport order and the
cancellation event is checked before each one.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Sequence

from loguru import logger

from poller.app.application.handler_registry import HandlerRegistry
from poller.app.constants import MESSAGE_STATE
from poller.app.core import SERVICE_NAME
from poller.app.core.cancellation import Cancelled, until_cancelled
from poller.app.domain.errors import HandlerFailedError, MessageHandlingError
from poller.app.domain.message_type import MessageTypeExtractor
from poller.app.domain.models import CycleReport, RawMessage
from poller.app.domain.results import StepResult
from poller.app.ports.message_handler import MessageHandler
from poller.app.ports.queue_transport import QueueTransport


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def _current_task_cancelling(cancellation: asyncio.Event) -> bool:
    """True when the running task itself is being cancelled, not just a handler's await."""
    task = asyncio.current_task()
    cancelling = getattr(task, "cancelling", None)
    if cancelling is not None:
        return cancelling() > 0
    # Task.cancelling() is 3.11+; fall back to the shutdown signal.
    return cancellation.is_set()


@dataclass(frozen=True)
class _MessageOutcome:
    state: str
    delete_failed: bool = False


class ConsumptionCycle:
    def __init__(
        self,
        transport: QueueTransport,
        registry: HandlerRegistry,
        *,
        max_messages: int,
        wait_seconds: int,
        attribute_names: Sequence[str],
        extractor: MessageTypeExtractor | None = None,
    ) -> None:
        self._transport = transport
        self._registry = registry
        self._extractor = extractor or MessageTypeExtractor()
        self._max_messages = max_messages
        self._wait_seconds = wait_seconds
        self._attribute_names = list(attribute_names)

    async def run_once(self, queue_url: str, cancellation: asyncio.Event) -> CycleReport:
        if cancellation.is_set():
            return CycleReport(interrupted=True)

        with logger.contextualize(correlation_id=str(uuid.uuid4())):
            logger.trace("polling messages from {}", queue_url)
            try:
                messages = await until_cancelled(
                    self._transport.receive(
                        queue_url,
                        max_messages=self._max_messages,
                        wait_seconds=self._wait_seconds,
                        attribute_names=self._attribute_names,
                    ),
                    cancellation,
                )
            except Cancelled:
                _log("receive_cancelled", queue_url=queue_url)
                return CycleReport(interrupted=True)
            except Exception as exc:
                logger.exception("failed to receive messages from the queue: {}", exc)
                _log("receive_failed", queue_url=queue_url, error=str(exc))
                return CycleReport(receive_failed=True)

            if messages:
                _log("messages_received", count=len(messages))

            deleted = 0
            left_for_redelivery = 0
            delete_failures = 0
            interrupted = False
            for index, message in enumerate(messages):
                if cancellation.is_set():
                    interrupted = True
                    _log("batch_interrupted", remaining=len(messages) - index)
                    break
                outcome = await self._handle_message(queue_url, message, cancellation)
                if outcome.state == MESSAGE_STATE.DELETED:
                    deleted += 1
                    delete_failures += int(outcome.delete_failed)
                else:
                    left_for_redelivery += 1

            return CycleReport(
                received=len(messages),
                deleted=deleted,
                left_for_redelivery=left_for_redelivery,
                delete_failures=delete_failures,
                interrupted=interrupted,
            )

    async def _handle_message(
        self,
        queue_url: str,
        message: RawMessage,
        cancellation: asyncio.Event,
    ) -> _MessageOutcome:
        extraction = self._extractor.extract(message)
        if not extraction.ok:
            return self._leave_for_redelivery(message, MESSAGE_STATE.EXTRACTION_FAILED, extraction.error)
        extracted = extraction.unwrap()
        _log(
            "message_type_resolved",
            message_id=message.message_id,
            message_type=extracted.message_type,
            source=extracted.source,
        )

        resolution = self._registry.resolve(extracted.message_type)
        if not resolution.ok:
            return self._leave_for_redelivery(message, MESSAGE_STATE.RESOLUTION_FAILED, resolution.error)

        invocation = await self._invoke(resolution.unwrap(), extracted.payload, cancellation)
        if not invocation.ok:
            return self._leave_for_redelivery(message, MESSAGE_STATE.HANDLER_FAILED, invocation.error)

        try:
            await self._transport.delete(queue_url, message.receipt_handle)
        except Exception as exc:
            logger.warning("failed to delete handled message {}: {}", message.receipt_handle, exc)
            _log(
                "delete_failed",
                message_id=message.message_id,
                receipt_handle=message.receipt_handle,
                error=str(exc),
            )
            return _MessageOutcome(MESSAGE_STATE.DELETED, delete_failed=True)

        _log("message_deleted", message_id=message.message_id, message_type=extracted.message_type)
        return _MessageOutcome(MESSAGE_STATE.DELETED)

    async def _invoke(
        self,
        handler: MessageHandler,
        payload: str,
        cancellation: asyncio.Event,
    ) -> StepResult[None]:
        try:
            outcome = await handler.consume(payload, cancellation)
        except asyncio.CancelledError as exc:
            if _current_task_cancelling(cancellation):
                raise
            error = HandlerFailedError("handler raised CancelledError")
            error.__cause__ = exc
            return StepResult.failure(error)
        except Exception as exc:
            error = HandlerFailedError(f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            return StepResult.failure(error)
        if outcome is False:
            return StepResult.failure(HandlerFailedError("handler reported failure"))
        return StepResult.success(None)

    def _leave_for_redelivery(
        self,
        message: RawMessage,
        failed_at: str,
        error: MessageHandlingError | None,
    ) -> _MessageOutcome:
        cause = error.__cause__ if error is not None else None
        logger.opt(exception=cause).error("failed to handle message {}: {}", message.receipt_handle, error)
        _log(
            "message_left_for_redelivery",
            message_id=message.message_id,
            receipt_handle=message.receipt_handle,
            failed_at=failed_at,
            error_type=type(error).__name__,
            error=str(error),
        )
        return _MessageOutcome(MESSAGE_STATE.LEFT_FOR_REDELIVERY)

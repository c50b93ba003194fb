"""
SQS transport: boto3 client wrapped for the asyncio poller.

boto3 is blocking, so every call runs on a worker thread via asyncio.to_thread. Retries
for throttling and transient network errors are left to botocore's retry config; any
error that survives them is raised as QueueTransportError for the caller to classify.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Sequence

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from poller.app.config.settings import Settings
from poller.app.core import SERVICE_NAME
from poller.app.domain.models import RawMessage
from poller.app.infrastructure.messaging.sqs.constants import (
    CONNECT_TIMEOUT_SECONDS,
    MAX_CLIENT_ATTEMPTS,
    READ_TIMEOUT_SECONDS,
    TransportState,
)
from poller.app.ports.queue_transport import QueueTransportError


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def _string_attributes(raw: dict[str, Any] | None) -> dict[str, str]:
    # Binary attributes have no StringValue and cannot carry a routing type.
    attributes: dict[str, str] = {}
    for name, attribute in (raw or {}).items():
        value = attribute.get("StringValue")
        if value is not None:
            attributes[name] = value
    return attributes


class SqsQueueTransport:
    """QueueTransport implementation"""

    def __init__(self, settings: Settings, client: BaseClient | None = None) -> None:
        self._settings = settings
        self._client = client
        self._state = TransportState.CONNECTED if client is not None else TransportState.DISCONNECTED

    @property
    def state(self) -> TransportState:
        return self._state

    def _build_client(self) -> BaseClient:
        kwargs: dict[str, Any] = {
            "region_name": self._settings.aws_region,
            "config": Config(
                retries={"max_attempts": MAX_CLIENT_ATTEMPTS, "mode": "standard"},
                read_timeout=READ_TIMEOUT_SECONDS,
                connect_timeout=CONNECT_TIMEOUT_SECONDS,
            ),
        }
        if self._settings.sqs_endpoint_url:
            kwargs["endpoint_url"] = self._settings.sqs_endpoint_url
        if self._settings.aws_access_key_id and self._settings.aws_secret_access_key:
            kwargs["aws_access_key_id"] = self._settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = self._settings.aws_secret_access_key
        return boto3.client("sqs", **kwargs)

    def _require_client(self) -> BaseClient:
        if self._client is None:
            raise RuntimeError("sqs transport not connected")
        return self._client

    async def connect(self) -> None:
        if self._client is None:
            self._client = await asyncio.to_thread(self._build_client)
        self._state = TransportState.CONNECTED
        _log("sqs_connected", region=self._settings.aws_region)

    async def receive(
        self,
        queue_url: str,
        *,
        max_messages: int,
        wait_seconds: int,
        attribute_names: Sequence[str],
    ) -> list[RawMessage]:
        client = self._require_client()
        try:
            response = await asyncio.to_thread(
                client.receive_message,
                QueueUrl=queue_url,
                MaxNumberOfMessages=max_messages,
                WaitTimeSeconds=wait_seconds,
                MessageAttributeNames=list(attribute_names),
            )
        except (BotoCoreError, ClientError) as exc:
            raise QueueTransportError(f"receive failed for {queue_url}: {exc}") from exc

        received_at = datetime.now(timezone.utc)
        return [
            RawMessage(
                message_id=item.get("MessageId", ""),
                receipt_handle=item["ReceiptHandle"],
                body=item.get("Body", ""),
                attributes=_string_attributes(item.get("MessageAttributes")),
                received_at=received_at,
            )
            for item in response.get("Messages", [])
        ]

    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        client = self._require_client()
        try:
            await asyncio.to_thread(
                client.delete_message,
                QueueUrl=queue_url,
                ReceiptHandle=receipt_handle,
            )
        except (BotoCoreError, ClientError) as exc:
            raise QueueTransportError(f"delete failed for {receipt_handle}: {exc}") from exc

    async def resolve_queue_url(self, queue_name: str, owner_account_id: str | None = None) -> str:
        client = self._require_client()
        kwargs: dict[str, Any] = {"QueueName": queue_name}
        if owner_account_id:
            kwargs["QueueOwnerAWSAccountId"] = owner_account_id
        try:
            response = await asyncio.to_thread(client.get_queue_url, **kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise QueueTransportError(f"get_queue_url failed for {queue_name}: {exc}") from exc
        return response["QueueUrl"]

    async def close(self) -> None:
        if self._client is not None:
            try:
                await asyncio.to_thread(self._client.close)
            except Exception as exc:
                logger.warning("sqs client close failed: {}", exc)
            self._client = None
        self._state = TransportState.CLOSED

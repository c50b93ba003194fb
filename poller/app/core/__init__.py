"""Shared worker-level primitives."""
from __future__ import annotations

SERVICE_NAME = "sqs-poller"

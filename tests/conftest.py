from __future__ import annotations

import pytest

from poller.app.application.handler_registry import HandlerRegistry


@pytest.fixture()
def registry() -> HandlerRegistry:
    return HandlerRegistry()


@pytest.fixture()
def queue_url() -> str:
    return "https://sqs.us-east-1.amazonaws.com/123456789012/orders"


@pytest.fixture()
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Dummy credentials so boto3 never reaches a real account under moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")

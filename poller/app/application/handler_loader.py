"""Loads handler registrations from a configured module."""
from __future__ import annotations

import importlib
from typing import Any

from loguru import logger

from poller.app.application.handler_registry import HandlerRegistry
from poller.app.core import SERVICE_NAME
from poller.app.domain.errors import HandlerRegistrationError

REGISTER_FUNCTION = "register_handlers"


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def load_handlers(registry: HandlerRegistry, module_path: str) -> None:
    """Import `module_path` and call its `register_handlers(registry)`."""
    module = importlib.import_module(module_path)
    register = getattr(module, REGISTER_FUNCTION, None)
    if not callable(register):
        raise HandlerRegistrationError(
            f"handlers module {module_path!r} has no callable {REGISTER_FUNCTION}()"
        )
    register(registry)
    _log("handlers_loaded", module=module_path, message_types=registry.message_types)

"""Explicit step results returned by extraction, resolution and handler invocation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from poller.app.domain.errors import MessageHandlingError

T = TypeVar("T")


@dataclass(frozen=True)
class StepResult(Generic[T]):
    value: T | None = None
    error: MessageHandlingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StepResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: MessageHandlingError) -> "StepResult[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

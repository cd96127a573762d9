"""
Explicit load states for asynchronous reads.

A read is always in exactly one of four states, so callers (and tests) can
tell "still loading" from "loaded, nothing there" from "failed".
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class LoadStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Loadable(Generic[T]):
    status: LoadStatus = LoadStatus.NOT_STARTED
    value: Optional[T] = None
    error: Optional[BaseException] = None

    def start(self) -> "Loadable[T]":
        return replace(self, status=LoadStatus.IN_FLIGHT, error=None)

    def succeed(self, value: Optional[T]) -> "Loadable[T]":
        return Loadable(status=LoadStatus.SUCCEEDED, value=value)

    def fail(self, error: BaseException) -> "Loadable[T]":
        return Loadable(status=LoadStatus.FAILED, error=error)

    @property
    def succeeded(self) -> bool:
        return self.status is LoadStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status is LoadStatus.FAILED

"""Deadlines bounding each lifecycle operation."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from .config import TimeoutsConfig


@dataclass(slots=True)
class OperationTimeoutError(RuntimeError):
    """Raised when an operation's deadline passes before a request is sent."""

    operation: str
    budget: float

    def __str__(self) -> str:
        return f"{self.operation} exceeded its timeout of {self.budget:.0f}s"


@dataclass(slots=True)
class Deadline:
    operation: str
    budget: float
    expires_at: float
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    @classmethod
    def after(cls, operation: str, seconds: float, clock: Callable[[], float] = time.monotonic) -> "Deadline":
        return cls(operation=operation, budget=seconds, expires_at=clock() + seconds, clock=clock)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.clock())

    def expired(self) -> bool:
        return self.remaining() <= 0

    def request_timeout(self) -> float:
        """Remaining budget to hand to a single HTTP request."""
        remaining = self.remaining()
        if remaining <= 0:
            raise OperationTimeoutError(self.operation, self.budget)
        return remaining


def deadline_for(timeouts: TimeoutsConfig, operation: str) -> Deadline:
    return Deadline.after(operation, timeouts.for_operation(operation))

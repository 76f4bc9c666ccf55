"""Core data models for cbqueue."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class QueueState(str, Enum):
    """Possible states for a callback queue."""

    IDLE = "IDLE"
    BUSY = "BUSY"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class WorkItem:
    """A submitted action plus its retry budget."""

    action: Callable[[], Any]
    retries: int | float = 0


class InvalidArgumentError(ValueError):
    """Raised when enqueue receives a non-callable action or a bad retry count."""

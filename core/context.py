#!/usr/bin/env python3
"""
sql2redis Export Context

Caller-owned cancellation and deadline token. One context is created per
export run and passed into every blocking call (source connect, cursor
fetches, destination writes) so a stuck network operation can be aborted
from outside the pipeline.

Usage:
    ctx = ExportContext(timeout=30.0)
    export_table(..., ctx=ctx)

    # from another thread
    ctx.cancel()
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from core.errors import CancelledError, DeadlineExceeded


@dataclass
class ExportContext:
    """Cancellation token with an optional deadline"""
    timeout: Optional[float] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def __post_init__(self):
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        self.started_at = time.monotonic()
        self.deadline = self.started_at + self.timeout if self.timeout is not None else None

    @classmethod
    def background(cls) -> 'ExportContext':
        """Context that never expires and is only cancelled explicitly"""
        return cls()

    def cancel(self):
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none"""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def timeout_for(self, default: float) -> float:
        """Driver timeout bounded by the remaining time"""
        remaining = self.remaining()
        if remaining is None:
            return default
        return max(0.001, min(default, remaining))

    def check(self, operation: str = "operation"):
        """Raise if the context was cancelled or its deadline has passed"""
        if self.cancel_event.is_set():
            raise CancelledError(f"{operation} cancelled", {'operation': operation})
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise DeadlineExceeded(
                f"{operation} aborted: deadline of {self.timeout}s exceeded",
                {'operation': operation, 'timeout': self.timeout}
            )

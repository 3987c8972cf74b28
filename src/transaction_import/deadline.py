# src/transaction_import/deadline.py
import time
from typing import Optional

from .errors import DeadlineExceeded


class Deadline:
    """Wall-clock budget for one invocation, checked between and inside steps."""

    def __init__(self, expires_at: Optional[float] = None, clock=time.monotonic):
        self._clock = clock
        self.expires_at = expires_at

    @classmethod
    def from_context(cls, context, margin_ms: int = 2000, clock=time.monotonic) -> "Deadline":
        # Lambda contexts expose get_remaining_time_in_millis(); local runs pass None
        remaining = getattr(context, "get_remaining_time_in_millis", None)
        if remaining is None:
            return cls(None, clock=clock)
        budget = max(0, remaining() - margin_ms) / 1000.0
        return cls(clock() + budget, clock=clock)

    @classmethod
    def unlimited(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, what: str = "operation", **kwargs) -> None:
        if self.expired:
            raise DeadlineExceeded(f"deadline exceeded during {what}", **kwargs)

    def cap_attempts(self, delay: int, max_attempts: int) -> int:
        """How many waiter polls of `delay` seconds still fit before the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return max_attempts
        return max(1, min(max_attempts, int(remaining // delay)))

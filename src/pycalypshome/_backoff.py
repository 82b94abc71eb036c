"""Exponential backoff with full jitter for retry/reconnect loops."""

from __future__ import annotations

import random
from collections.abc import Callable


class BackoffStrategy:
    """Backoff strategy for connection retries.

    Delays grow as ``initial_backoff_s * backoff_multiplier ** tier``,
    capped at ``max_backoff_s``, and are drawn uniformly between
    ``min_backoff_s`` and that cap.  ``max_retries=None`` never gives up.
    """

    def __init__(
        self,
        max_retries: int | None = 10,
        initial_backoff_s: float = 1.0,
        min_backoff_s: float = 0.0,
        max_backoff_s: float = 180.0,
        backoff_multiplier: float = 2.0,
        *,
        rng: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.min_backoff_s = min_backoff_s
        self.max_backoff_s = max_backoff_s
        self.backoff_multiplier = backoff_multiplier
        self._rng = rng
        self._attempt = 0
        self._tier = 0

    @property
    def attempts(self) -> int:
        """Failures recorded since the last reset."""
        return self._attempt

    def get_backoff_delay(self) -> float:
        """Get delay before next attempt."""
        ceiling = min(self.initial_backoff_s * (self.backoff_multiplier**self._tier), self.max_backoff_s)
        ceiling = max(ceiling, self.min_backoff_s)
        return self._rng(self.min_backoff_s, ceiling)

    def record_failure(self, *, escalate: bool = True) -> None:
        """Record a failure attempt.

        With ``escalate=False`` the attempt still counts against
        ``max_retries`` but the next delay stays at the current tier.
        """
        self._attempt += 1
        if escalate:
            self._tier += 1

    def reset(self) -> None:
        """Reset backoff counter."""
        self._attempt = 0
        self._tier = 0

    def should_retry(self) -> bool:
        """Check if we should retry."""
        if self.max_retries is None:
            return True
        return self._attempt < self.max_retries

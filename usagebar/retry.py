"""Exponential backoff state for repeated fetch failures."""

from __future__ import annotations

from datetime import timedelta

BASE_DELAY = timedelta(seconds=60)
MAX_DELAY = timedelta(seconds=600)
BACKOFF_FACTOR = 2

_MAX_FAILURES = 2**32 - 1
_MAX_EXPONENT = 32


class RetryState:
    """Tracks consecutive failures and derives the next polling delay."""

    def __init__(self) -> None:
        self._failures = 0

    def __repr__(self) -> str:
        return f"RetryState(consecutive_failures={self._failures})"

    def record_success(self) -> None:
        self._failures = 0

    def record_failure(self) -> None:
        self._failures = min(self._failures + 1, _MAX_FAILURES)

    def current_delay(self) -> timedelta:
        """Delay before the next attempt: doubles per failure, capped at MAX_DELAY."""
        if self._failures == 0:
            return BASE_DELAY
        exponent = min(self._failures - 1, _MAX_EXPONENT)
        return min(BASE_DELAY * BACKOFF_FACTOR**exponent, MAX_DELAY)

    def consecutive_failures(self) -> int:
        return self._failures

    def is_in_backoff(self) -> bool:
        return self._failures > 0
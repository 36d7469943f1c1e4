"""Exponential backoff policy and the retry log it feeds."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, TypeVar

from .exceptions import ProviderError, RetryExhaustedError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryLogEntry:
    """One automatic retry of a failed turn."""

    player: str
    attempt: int
    delay: float
    reason: str
    round_number: int
    phase: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": self.player,
            "attempt": self.attempt,
            "delay": self.delay,
            "reason": self.reason,
            "round_number": self.round_number,
            "phase": self.phase,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RetryLogEntry":
        return cls(
            player=str(data["player"]),
            attempt=int(data["attempt"]),
            delay=float(data["delay"]),
            reason=str(data["reason"]),
            round_number=int(data["round_number"]),
            phase=str(data["phase"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry retryable provider errors with capped exponential backoff.

    The delay before retry ``n`` (zero-based) is ``min(base_delay * 2**n, max_delay)``.
    """

    max_attempts: int = 10
    base_delay: float = 1.0
    max_delay: float = 32.0

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2**attempt), self.max_delay)

    def run(
        self,
        player_name: str,
        operation: Callable[[], T],
        *,
        on_failure: Callable[[ProviderError], None],
        on_retry: Callable[[int, float, ProviderError], None],
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """Call ``operation`` until it succeeds or retries run out.

        ``on_failure`` runs after every failed attempt, retryable or not, so the
        caller can roll back. Non-retryable errors propagate unchanged.
        """

        last_error: Optional[ProviderError] = None
        for attempt in range(self.max_attempts):
            try:
                return operation()
            except ProviderError as exc:
                on_failure(exc)
                if not exc.retryable:
                    raise
                last_error = exc
                if attempt < self.max_attempts - 1:
                    delay = self.delay_for(attempt)
                    on_retry(attempt + 1, delay, exc)
                    sleep(delay)

        assert last_error is not None
        raise RetryExhaustedError(player_name, self.max_attempts, last_error) from last_error


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["RetryLogEntry", "RetryPolicy", "now_utc"]

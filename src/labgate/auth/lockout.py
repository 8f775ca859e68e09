"""Brute-force lockout policy.

The failed-attempt counter and lock expiry live on the user row; here they
are a value object with pure transitions, persisted by the caller.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

DEFAULT_THRESHOLD = 3
DEFAULT_DURATION = timedelta(minutes=15)


@dataclass(frozen=True)
class LockState:
    """Failed-attempt counter plus the instant a lock lapses (if any)."""

    attempts: int = 0
    locked_until: Optional[datetime] = None


class LockoutPolicy:
    """Lock an account for a fixed duration once failures reach a threshold.

    Locks lapse on their own once the clock passes ``locked_until``; there is
    no unlock operation and no permanent ban.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        duration: timedelta = DEFAULT_DURATION,
    ):
        if threshold < 1:
            raise ValueError("Lockout threshold must be at least 1")
        self.threshold = threshold
        self.duration = duration

    def is_locked(self, state: LockState, now: datetime) -> bool:
        return state.locked_until is not None and state.locked_until > now

    def record_failure(self, state: LockState, now: datetime) -> LockState:
        attempts = state.attempts + 1
        if attempts >= self.threshold:
            return LockState(attempts=attempts, locked_until=now + self.duration)
        return LockState(attempts=attempts, locked_until=None)

    def reset(self) -> LockState:
        return LockState()

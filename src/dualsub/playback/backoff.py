"""Exponential backoff state for whole-track fetch retries."""

from __future__ import annotations


class Backoff:
    """Doubling delay with a ceiling.

    ``next_delay`` hands out the current delay and doubles it for next time;
    ``reset`` goes back to the base after a successful fetch.
    """

    def __init__(self, base_delay: float = 2.0, cap: float = 60.0) -> None:
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        self.base_delay = base_delay
        self.cap = max(cap, base_delay)
        self.current_delay = base_delay

    def next_delay(self, hint: float | None = None) -> float:
        """Delay before the next attempt.

        A server-provided ``hint`` (Retry-After) is honored when it is
        longer than the computed delay, still bounded by the cap.
        """
        delay = self.current_delay
        if hint is not None and hint > delay:
            delay = min(hint, self.cap)
        self.current_delay = min(self.current_delay * 2, self.cap)
        return delay

    def reset(self) -> None:
        self.current_delay = self.base_delay

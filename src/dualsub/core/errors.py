"""Error taxonomy for DualSub.

None of these reach the tick loop: cue errors are skipped, network and quota
errors are logged and contained by the cache, stale completions are dropped.
"""

from __future__ import annotations


class DualSubError(Exception):
    """Base class for all DualSub errors."""


class InvalidCueData(DualSubError):
    """A cue entry is malformed and must be skipped."""


class NetworkFailure(DualSubError):
    """A generator or store could not be reached or returned an error."""


class RateLimited(NetworkFailure):
    """The remote side explicitly asked us to slow down (HTTP 429)."""

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class QuotaExceeded(DualSubError):
    """A persistent store is out of capacity."""


class StaleCompletion(DualSubError):
    """An async result arrived after the playback context changed."""

"""Single-slot, debounced, globally rate-limited dispatch of generation requests.

The queue holds at most one waiting request. A newer request for a
different key takes the slot and the older one is handed back through
``on_dropped``; a request for a key that is already being generated is
refused. Dispatches are spaced by at least ``min_gap`` seconds across all
keys; a dispatch that comes too early is rescheduled for the remaining wait.

All timing uses the running asyncio loop (``loop.time()``/``call_later``),
so the queue must be driven from inside that loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from dualsub.core.models import CacheKey
from dualsub.translation.client import GenerationContext, Generator

if TYPE_CHECKING:
    from dualsub.translation.cache import PendingLookup


@dataclass(eq=False)
class GenerationRequest:
    key: CacheKey
    text: str
    context: GenerationContext
    lookup: PendingLookup | None = None


SuccessCallback = Callable[[GenerationRequest, str], None]
FailureCallback = Callable[[GenerationRequest, Exception], None]
DropCallback = Callable[[GenerationRequest], None]


class GenerationQueue:
    def __init__(
        self,
        generator: Generator,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        on_dropped: DropCallback,
        debounce: float = 0.25,
        min_gap: float = 1.2,
    ) -> None:
        self._generator = generator
        self._on_success = on_success
        self._on_failure = on_failure
        self._on_dropped = on_dropped
        self.debounce = debounce
        self.min_gap = min_gap

        self._slot: GenerationRequest | None = None
        self._in_flight: dict[CacheKey, GenerationRequest] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._last_dispatch: float | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def slot(self) -> GenerationRequest | None:
        return self._slot

    @property
    def last_dispatch(self) -> float | None:
        """Loop time of the most recent dispatch."""
        return self._last_dispatch

    @property
    def tasks(self) -> set[asyncio.Task]:
        return set(self._tasks)

    def is_in_flight(self, key: CacheKey) -> bool:
        return key in self._in_flight

    def enqueue(self, request: GenerationRequest) -> bool:
        """Put a request in the slot. Returns False if it was refused."""
        if request.key in self._in_flight:
            self._on_dropped(request)
            return False

        previous = self._slot
        self._slot = request
        if previous is not None and (
            previous.key != request.key or previous.lookup is not request.lookup
        ):
            # Last writer wins; the displaced request goes back unresolved.
            self._on_dropped(previous)

        self._schedule(self.debounce)
        return True

    def reset(self) -> None:
        """Cancel the timer and forget queued and in-flight requests.

        In-flight generator calls keep running; their results still reach
        the callbacks, which decide whether they are stale.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._slot = None
        self._in_flight.clear()

    def _schedule(self, delay: float) -> None:
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(max(0.0, delay), self._fire)

    def _fire(self) -> None:
        self._timer = None
        request = self._slot
        if request is None:
            return

        loop = asyncio.get_running_loop()
        now = loop.time()
        if self._last_dispatch is not None:
            wait = self._last_dispatch + self.min_gap - now
            if wait > 0:
                self._timer = loop.call_later(wait, self._fire)
                return

        self._slot = None
        self._last_dispatch = now
        self._in_flight[request.key] = request
        task = loop.create_task(self._run(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, request: GenerationRequest) -> None:
        try:
            translation = await self._generator.generate(request.text, request.context)
        except Exception as e:
            self._finish(request)
            self._on_failure(request, e)
        else:
            self._finish(request)
            self._on_success(request, translation)

    def _finish(self, request: GenerationRequest) -> None:
        if self._in_flight.get(request.key) is request:
            del self._in_flight[request.key]

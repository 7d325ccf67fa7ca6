"""Timer sources for the playback engine.

The engine never sleeps or blocks. It asks a scheduler to call it back after
a delay and keeps the returned handle so it can cancel it. Two schedulers are
provided:

- ``AsyncioScheduler`` runs on the current asyncio event loop.
- ``ManualScheduler`` is a simulated clock that only moves when ``advance()``
  is called. Tests and offline replays use it for deterministic timing.

Times and delays are in seconds, matching ``asyncio``.
"""
import asyncio
import heapq
import itertools
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on an asyncio loop (the running loop by default)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)


class ManualTimer:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "ManualTimer") -> bool:
        return (self.when, self.seq) < (other.when, other.seq)


class ManualScheduler:
    """Simulated clock. Due callbacks fire in (time, scheduling order)."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[ManualTimer] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self._now + max(0.0, delay), next(self._counter), callback)
        heapq.heappush(self._queue, timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return sorted(t for t in self._queue if not t.cancelled)

    def next_deadline(self) -> float | None:
        pending = self.pending
        return pending[0].when if pending else None

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every callback that falls due.

        Callbacks scheduled while advancing fire too if they fall inside the
        window. Returns the number of callbacks fired.
        """
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        return self._run_until(self._now + seconds)

    def run_until_idle(self, limit: int = 10_000) -> int:
        """Fire pending callbacks one deadline at a time until none remain."""
        fired = 0
        while fired < limit:
            deadline = self.next_deadline()
            if deadline is None:
                break
            fired += self._run_until(deadline)
        return fired

    def _run_until(self, target: float) -> int:
        fired = 0
        while self._queue and self._queue[0].when <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = timer.when
            timer.callback()
            fired += 1
        self._now = max(self._now, target)
        return fired

"""A poller that drives coroutines from timers and descriptor readiness.

Coroutines register waits (read, write, remote hang-up) on file descriptors
and timers with the poller. One call to :meth:`PollerBase.poll` applies the
registered changes, waits for readiness or the next timer, fires expired
timers and collects ready events. :meth:`PollerBase.wakeup_ready_handles`
then resumes the coroutines waiting on those events.

Points in time are nanoseconds on the monotonic clock; durations may be given
as nanoseconds or as :class:`datetime.timedelta`.
"""

from __future__ import annotations

import dataclasses
import heapq
import selectors
import time
from datetime import timedelta
from typing import Any

from corochain.base import (
    NANOS_PER_MILLISECOND,
    NANOS_PER_SECOND,
    Event,
    EventType,
    Timer,
    Timespec,
    get_timespec,
)
from corochain.promises import Awaiter, Handle

_ALL_EVENTS = EventType.READ | EventType.WRITE | EventType.RHUP
_KINDS = (EventType.READ, EventType.WRITE, EventType.RHUP)


def _to_nanos(duration: int | timedelta) -> int:
    if isinstance(duration, timedelta):
        whole = duration.days * 86_400 + duration.seconds
        return whole * NANOS_PER_SECOND + duration.microseconds * 1_000
    return int(duration)


def _max_duration_timespec(duration: int) -> Timespec:
    seconds, nanos = divmod(duration, NANOS_PER_SECOND)
    return Timespec(seconds, nanos)


class SleepAwaitable(Awaiter):
    """Suspends the awaiting coroutine until a deadline passes.

    If the awaiting coroutine is destroyed before the timer fires, the timer
    is cancelled.
    """

    def __init__(self, poller: PollerBase, until: int) -> None:
        self._poller: PollerBase | None = poller
        self.until = until
        self.timer_id: int | None = None

    def await_suspend(self, handle: Handle) -> None:
        self.timer_id = self._poller.add_timer(self.until, handle)
        return None

    def await_resume(self) -> None:
        self._poller = None

    def __await__(self):
        try:
            yield self
            self.await_resume()
        finally:
            self._cancel()

    def _cancel(self) -> None:
        if self._poller is not None and self.timer_id is not None:
            self._poller.remove_timer(self.timer_id, self.until)
        self._poller = None


class PollerBase:
    """Timers, descriptor waits and the wake-up of the coroutines behind them."""

    def __init__(self) -> None:
        self.max_fd = 0
        self.changes: list[Event] = []
        self.ready_events: list[Event] = []
        self.last_timers_process_time = 0
        self.last_fired_timer = -1
        self.max_duration = 100 * NANOS_PER_MILLISECOND
        self.max_duration_ts = _max_duration_timespec(self.max_duration)
        self._timer_id = 0
        self._timers: list[Timer] = []
        self._waiters: dict[int, dict[EventType, Any]] = {}

    def add_timer(self, deadline: int, handle: Any) -> int:
        """Schedule ``handle`` to resume at ``deadline``; returns the timer id."""
        heapq.heappush(self._timers, Timer(deadline, self._timer_id, handle))
        timer_id = self._timer_id
        self._timer_id += 1
        return timer_id

    def remove_timer(self, timer_id: int, deadline: int) -> bool:
        """Cancel a timer; returns True if it was the last one to fire."""
        fired = timer_id == self.last_fired_timer
        if not fired:
            # an empty timer sorts before the live one and masks it
            heapq.heappush(self._timers, Timer(deadline, timer_id, None))
        return fired

    def _register(self, fd: int, kind: EventType, handle: Any) -> None:
        self.max_fd = max(self.max_fd, fd)
        self.changes.append(Event(fd, kind, handle))

    def add_read(self, fd: int, handle: Any) -> None:
        """Resume ``handle`` when ``fd`` becomes readable."""
        self._register(fd, EventType.READ, handle)

    def add_write(self, fd: int, handle: Any) -> None:
        """Resume ``handle`` when ``fd`` becomes writable."""
        self._register(fd, EventType.WRITE, handle)

    def add_remote_hup(self, fd: int, handle: Any) -> None:
        """Resume ``handle`` when the peer of ``fd`` hangs up.

        The wait is woken when the descriptor becomes readable, which is how
        a hang-up shows.
        """
        self._register(fd, EventType.RHUP, handle)

    def remove_event(self, target: int | Any) -> None:
        """Drop waits: every wait on a descriptor, or the pending waits of a handle."""
        if isinstance(target, int):
            self._register(target, _ALL_EVENTS, None)
        else:
            self.changes[:] = [c for c in self.changes if c.handle is not target]

    def sleep(self, until: int) -> SleepAwaitable:
        """An awaitable that suspends until the monotonic time ``until``."""
        return SleepAwaitable(self, until)

    def sleep_for(self, duration: int | timedelta) -> SleepAwaitable:
        """An awaitable that suspends for ``duration``."""
        return self.sleep(time.monotonic_ns() + _to_nanos(duration))

    def yield_(self) -> SleepAwaitable:
        """An awaitable that suspends until the next polling round."""
        return self.sleep(0)

    def wakeup(self, change: Event) -> None:
        """Resume the coroutine behind ``change``.

        If the coroutine does not wait on the same descriptor again, the wait
        is withdrawn from the poller.
        """
        index = len(self.changes)
        if change.handle is not None and not change.handle.done():
            change.handle.resume()
        if change.fd >= 0:
            matched = any(c.match(change) for c in self.changes[index:])
            if not matched:
                self.changes.append(dataclasses.replace(change, handle=None))

    def wakeup_ready_handles(self) -> None:
        """Resume every coroutine whose event is ready."""
        for event in self.ready_events:
            self.wakeup(event)

    def set_max_duration(self, max_duration: int | timedelta) -> None:
        """Set the longest time one poll may wait."""
        self.max_duration = _to_nanos(max_duration)
        self.max_duration_ts = _max_duration_timespec(self.max_duration)

    def timers_size(self) -> int:
        """Number of scheduled timers, cancellation markers included."""
        return len(self._timers)

    def get_timeout(self) -> Timespec:
        """How long the next poll may wait, given the earliest timer."""
        if not self._timers:
            return self.max_duration_ts
        deadline = self._timers[0].deadline
        if deadline == 0:
            return Timespec(0, 0)
        return get_timespec(time.monotonic_ns(), deadline, self.max_duration)

    def reset(self) -> None:
        """Clear the ready events and the pending changes."""
        self.ready_events.clear()
        self.changes.clear()
        self.max_fd = 0

    def process_timers(self) -> None:
        """Resume the coroutines of every expired, uncancelled timer."""
        now = time.monotonic_ns()
        first = True
        prev_id = 0
        while self._timers and self._timers[0].deadline <= now:
            timer = heapq.heappop(self._timers)
            if (first or prev_id != timer.id) and timer.handle is not None:
                self.last_fired_timer = timer.id
                timer.handle.resume()
            first = False
            prev_id = timer.id
        self.last_timers_process_time = now

    def poll(self) -> None:
        """Apply pending changes, wait for readiness or a timer, fire timers."""
        self._apply_changes()
        self.reset()
        timeout = self.get_timeout()
        self._wait(timeout.tv_sec + timeout.tv_nsec / NANOS_PER_SECOND)
        self.process_timers()

    def _apply_changes(self) -> None:
        for change in self.changes:
            waiters = self._waiters.setdefault(change.fd, {})
            for kind in _KINDS:
                if not change.type & kind:
                    continue
                if change.handle is None:
                    waiters.pop(kind, None)
                else:
                    waiters[kind] = change.handle
            if not waiters:
                del self._waiters[change.fd]

    def _wait(self, seconds: float) -> None:
        if not self._waiters:
            if seconds > 0:
                time.sleep(seconds)
            return
        with selectors.DefaultSelector() as selector:
            for fd, waiters in self._waiters.items():
                mask = 0
                if EventType.READ in waiters or EventType.RHUP in waiters:
                    mask |= selectors.EVENT_READ
                if EventType.WRITE in waiters:
                    mask |= selectors.EVENT_WRITE
                selector.register(fd, mask)
            ready = selector.select(seconds)
        for key, mask in ready:
            waiters = self._waiters[key.fd]
            kinds = []
            if mask & selectors.EVENT_READ:
                kinds += [EventType.READ, EventType.RHUP]
            if mask & selectors.EVENT_WRITE:
                kinds.append(EventType.WRITE)
            for kind in kinds:
                if kind in waiters:
                    self.ready_events.append(Event(key.fd, kind, waiters[kind]))
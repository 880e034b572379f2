"""Time arithmetic, timers and I/O event records shared by the pollers.

Points in time and durations are integers counting nanoseconds on a
monotonic clock; a deadline of ``0`` means "as soon as possible".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import Any

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MILLISECOND = 1_000_000


@dataclass(frozen=True)
class Timespec:
    """A duration split into whole seconds and remaining nanoseconds."""

    tv_sec: int = 0
    tv_nsec: int = 0


@dataclass(eq=False)
class Timer:
    """A scheduled wake-up; a timer without a handle marks a cancellation."""

    deadline: int
    id: int
    handle: Any = None

    def _key(self) -> tuple[int, int, bool]:
        return (self.deadline, self.id, self.handle is not None)

    def __lt__(self, other: Timer) -> bool:
        return self._key() < other._key()


class EventType(IntFlag):
    """Kinds of readiness a coroutine can wait for on a descriptor."""

    READ = 1
    WRITE = 2
    RHUP = 4


@dataclass
class Event:
    """A wait registered on a file descriptor."""

    fd: int
    type: EventType
    handle: Any = None

    def match(self, other: Event) -> bool:
        """True when both events concern the same descriptor and share a kind."""
        return self.fd == other.fd and bool(self.type & other.type)


def get_duration_pair(now: int, deadline: int, max_duration: int) -> tuple[int, int]:
    """Time left until ``deadline``, capped at ``max_duration``, as (seconds, nanoseconds)."""
    if now > deadline:
        return (0, 0)
    duration = min(deadline - now, max_duration)
    seconds, nanos = divmod(duration, NANOS_PER_SECOND)
    return (seconds, nanos)


def get_timespec(now: int, deadline: int, max_duration: int) -> Timespec:
    """Like :func:`get_duration_pair`, packed into a :class:`Timespec`."""
    seconds, nanos = get_duration_pair(now, deadline, max_duration)
    return Timespec(seconds, nanos)
import heapq

from corochain.base import (
    NANOS_PER_MILLISECOND,
    NANOS_PER_SECOND,
    Event,
    EventType,
    Timer,
    Timespec,
    get_duration_pair,
    get_timespec,
)

MAX_DURATION = 10000 * NANOS_PER_MILLISECOND


def test_timespec_simple_difference():
    t1 = 4 * NANOS_PER_SECOND
    t2 = 10 * NANOS_PER_SECOND
    ts = get_timespec(t1, t2, MAX_DURATION)
    assert ts.tv_sec == 6
    assert ts.tv_nsec == 0


def test_timespec_with_nanoseconds():
    t1 = 4 * NANOS_PER_SECOND
    t3 = 10001 * NANOS_PER_MILLISECOND
    ts = get_timespec(t1, t3, MAX_DURATION)
    assert ts.tv_sec == 6
    assert ts.tv_nsec == 1000 * 1000


def test_timespec_capped_by_max_duration():
    t1 = 4 * NANOS_PER_SECOND
    t4 = 10000 * 60 * NANOS_PER_SECOND
    ts = get_timespec(t1, t4, MAX_DURATION)
    assert ts == Timespec(10, 0)


def test_deadline_in_the_past_gives_zero():
    assert get_duration_pair(5 * NANOS_PER_SECOND, NANOS_PER_SECOND, MAX_DURATION) == (0, 0)
    assert get_timespec(5 * NANOS_PER_SECOND, NANOS_PER_SECOND, MAX_DURATION) == Timespec(0, 0)


def test_duration_pair_equal_times():
    assert get_duration_pair(7, 7, MAX_DURATION) == (0, 0)


def test_duration_pair_splits_seconds():
    assert get_duration_pair(0, 2 * NANOS_PER_SECOND + 5, MAX_DURATION) == (2, 5)


def test_timers_order_by_deadline_then_id():
    marker = object()
    timers = [Timer(5, 3, marker), Timer(2, 7, marker), Timer(5, 1, marker)]
    assert [(t.deadline, t.id) for t in sorted(timers)] == [(2, 7), (5, 1), (5, 3)]


def test_empty_timer_precedes_live_timer_with_same_id():
    marker = object()
    heap = []
    heapq.heappush(heap, Timer(10, 4, marker))
    heapq.heappush(heap, Timer(10, 4, None))
    first = heapq.heappop(heap)
    second = heapq.heappop(heap)
    assert first.handle is None
    assert second.handle is marker


def test_event_match_same_fd_shared_kind():
    a = Event(3, EventType.READ)
    b = Event(3, EventType.READ | EventType.WRITE)
    assert a.match(b)
    assert b.match(a)


def test_event_match_different_kind():
    assert not Event(3, EventType.READ).match(Event(3, EventType.WRITE))


def test_event_match_different_fd():
    assert not Event(3, EventType.READ).match(Event(4, EventType.READ))


def test_event_with_all_kinds_matches_each_kind():
    every_kind = EventType.READ | EventType.WRITE | EventType.RHUP
    assert int(every_kind) == 7
    everything = Event(2, every_kind)
    kinds = [EventType.READ, EventType.WRITE, EventType.RHUP]
    assert [everything.match(Event(2, kind)) for kind in kinds] == [True, True, True]
    assert [everything.match(Event(5, kind)) for kind in kinds] == [False, False, False]
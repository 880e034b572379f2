import time
from datetime import timedelta

from corochain.futures import Future, all_futures, any_future
from corochain.loop import Loop
from corochain.poller import PollerBase


def run_until(loop, condition, limit=1000):
    for _ in range(limit):
        if condition():
            return
        loop.step()
    raise AssertionError("condition not reached")


def drain_timers(loop):
    run_until(loop, lambda: loop.poller.timers_size() == 0)


def test_loop_uses_given_poller():
    poller = PollerBase()
    loop = Loop(poller)
    assert loop.poller is poller


def test_default_poller_schedules_timers():
    loop = Loop()
    assert loop.poller.timers_size() == 0

    async def task():
        await loop.poller.sleep_for(timedelta(milliseconds=1))

    f = Future(task())
    assert loop.poller.timers_size() == 1
    run_until(loop, f.done)
    assert loop.poller.timers_size() == 0


def test_timeout():
    loop = Loop()
    start = time.monotonic_ns()

    async def task():
        await loop.poller.sleep_for(timedelta(milliseconds=100))
        return time.monotonic_ns()

    f = Future(task())
    run_until(loop, f.done)
    assert f.result() >= start + 100_000_000


def test_timeout2():
    loop = Loop()
    state = {"val": 0}

    async def sleeper(ms):
        await loop.poller.sleep_for(timedelta(milliseconds=ms))
        state["val"] += 1
        return state["val"]

    h1 = Future(sleeper(100))
    h2 = Future(sleeper(200))
    run_until(loop, lambda: h1.done() and h2.done())
    assert h1.result() == 1
    assert h2.result() == 2
    assert state["val"] == 2


def test_run_until_stop():
    loop = Loop()

    async def ticker():
        ticks = []
        for i in range(3):
            await loop.poller.sleep_for(timedelta(milliseconds=10))
            ticks.append(i)
        loop.stop()
        return ticks

    f = Future(ticker())
    loop.run()
    assert f.result() == [0, 1, 2]


def test_futures_any():
    loop = Loop()
    poller = loop.poller

    async def sleeper(ms):
        await poller.sleep_for(timedelta(milliseconds=ms))

    async def main():
        await any_future([Future(sleeper(ms)) for ms in (100, 200, 201, 202)])
        return 1

    h = Future(main())
    run_until(loop, h.done)
    drain_timers(loop)
    assert h.result() == 1


def test_futures_any_result():
    loop = Loop()
    poller = loop.poller

    async def sleeper(ms, value):
        await poller.sleep_for(timedelta(milliseconds=ms))
        return value

    async def main():
        return await any_future(
            [
                Future(sleeper(204, 1)),
                Future(sleeper(100, 2)),
                Future(sleeper(201, 3)),
                Future(sleeper(202, 4)),
            ]
        )

    h = Future(main())
    run_until(loop, h.done)
    drain_timers(loop)
    assert h.result() == 2


def test_futures_any_same_wakeup():
    loop = Loop()
    poller = loop.poller
    counter = {"ok": 0}

    async def sleeper(until):
        await poller.sleep(until)
        counter["ok"] += 1

    async def main():
        until = time.monotonic_ns() + 100_000_000
        await any_future([Future(sleeper(until)) for _ in range(4)])
        counter["ok"] += 1
        return counter["ok"]

    h = Future(main())
    run_until(loop, h.done)
    drain_timers(loop)
    assert h.result() == 2
    assert counter["ok"] == 2


def test_all_futures_with_sleeps_keeps_order():
    loop = Loop()
    poller = loop.poller

    async def sleeper(ms, value):
        await poller.sleep_for(timedelta(milliseconds=ms))
        return value

    async def main():
        return await all_futures([Future(sleeper(30, "a")), Future(sleeper(10, "b"))])

    h = Future(main())
    run_until(loop, h.done)
    assert h.result() == ["a", "b"]


def test_step_fires_due_timer_once():
    loop = Loop()
    count = []

    async def task():
        await loop.poller.yield_()
        count.append(1)
        return len(count)

    f = Future(task())
    loop.step()
    loop.step()
    assert f.result() == 1
    assert count == [1]
# corochain

Cooperative programs built from `async def` coroutines that are driven by
hand rather than by `asyncio`. The package provides:

- `corochain.futures`: `Future`, which starts a coroutine at once and holds its
  result or exception; the `future` decorator; `all_futures` and `any_future`.
- `corochain.promises`: `Handle`, which drives one coroutine step by step, and
  the awaitables `Self` and `SuspendAlways`; `void_task` and `suspended_task`
  start a coroutine without a future.
- `corochain.poller`: `PollerBase`, which keeps a timer queue and a list of
  read, write and remote hang-up waits on file descriptors, and resumes the
  coroutines behind them; `SleepAwaitable` is what its sleeps return.
- `corochain.loop`: `Loop`, which runs polling rounds on a poller.
- `corochain.base`: `Timespec`, `Timer`, `EventType`, `Event`,
  `get_duration_pair` and `get_timespec`.

Points in time are integer nanoseconds on the monotonic clock
(`time.monotonic_ns()`); durations are integer nanoseconds or
`datetime.timedelta`.

## Installation

```
pip install corochain
```

## Futures

Decorate an `async def` function with `future`; calling it starts the
coroutine immediately and returns a `Future`. Inside, `await` another future,
a sleep from a poller, `Self()` or `SuspendAlways()`.

```python
from corochain.futures import future, all_futures

@future
async def number(n):
    return n

@future
async def total():
    values = await all_futures([number(1), number(2), number(3)])
    return sum(values)

f = total()
assert f.done()
assert f.result() == 6
```

- `Future.result()` returns the value or re-raises the coroutine's exception;
  it raises `RuntimeError` if the future has not completed.
- `Future.apply(func)` gives a future holding `func(result)`,
  `Future.ignore()` one that discards the result, and `Future.accept(func)`
  one that calls `func()` after completion.
- `all_futures(futures)` holds the list of all results in the given order.
- `any_future(futures)` holds the result of the first future to finish; the
  others are destroyed once the result is taken. It raises `ValueError` for
  an empty list.

## Timers and the loop

```python
from datetime import timedelta

from corochain.futures import future
from corochain.loop import Loop

loop = Loop()  # uses a new PollerBase

@future
async def nap(poller):
    await poller.sleep_for(timedelta(milliseconds=100))
    return "rested"

f = nap(loop.poller)
while not f.done():
    loop.step()
print(f.result())
```

`PollerBase.sleep(until)` sleeps until a monotonic time, `sleep_for(duration)`
for a duration, and `yield_()` until the next polling round. A sleep whose
coroutine is destroyed before it fires is cancelled. `Loop.step()` calls
`poll()` and then `wakeup_ready_handles()`; `Loop.run()` steps until
`Loop.stop()` is called. `set_max_duration` bounds how long one poll may wait
(100 ms by default).

## Waiting on descriptors

A coroutine registers its own handle for a descriptor and suspends:

```python
from corochain.futures import future
from corochain.promises import Self, SuspendAlways

@future
async def wait_readable(poller, fd):
    me = await Self()
    poller.add_read(fd, me)
    await SuspendAlways()
```

`add_write` and `add_remote_hup` work the same way; a remote hang-up wait is
woken when the descriptor becomes readable. `remove_event(fd)` drops every
wait on a descriptor, and `remove_event(handle)` drops a handle's pending
waits. Readiness is detected with `selectors.DefaultSelector`, so on Windows
only sockets can be waited on.

## What it does not do

The poller only reports readiness. There are no socket, address, DNS
resolver, TLS or WebSocket classes, and no reading or writing helpers: the
coroutine does its own non-blocking I/O once it is woken. There is no
command-line program.

## Running the tests

```
pip install -e .[test]
pytest
```
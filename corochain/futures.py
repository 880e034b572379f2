"""Futures for coroutines, with chaining and all/any combinators."""

from __future__ import annotations

import functools
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from corochain.promises import Awaiter, Handle, Self, SuspendAlways


class _FuturePromise:
    """Keeps the outcome of a future's coroutine and the coroutine waiting for it."""

    def __init__(self) -> None:
        self.caller: Handle | None = None
        self.ready = False
        self.value: Any = None
        self.exception: BaseException | None = None

    def return_value(self, value: Any) -> None:
        self.ready = True
        self.value = value

    def unhandled_exception(self, exc: BaseException) -> None:
        self.ready = True
        self.exception = exc

    def final_suspend(self, handle: Handle) -> Handle | None:
        return self.caller


class Future(Awaiter):
    """Starts a coroutine at once and holds its result or exception."""

    def __init__(self, coro: Coroutine) -> None:
        self._promise = _FuturePromise()
        self._handle = Handle(coro, self._promise)
        self._handle.resume()

    def await_ready(self) -> bool:
        return self._promise.ready

    def await_suspend(self, caller: Handle) -> None:
        self._promise.caller = caller

    def await_resume(self) -> Any:
        return self.result()

    def done(self) -> bool:
        """True once the coroutine has finished."""
        return self._handle.done()

    def raw(self) -> Handle:
        """The handle driving the coroutine."""
        return self._handle

    def result(self) -> Any:
        """The coroutine's return value; re-raises its exception."""
        if not self._promise.ready:
            raise RuntimeError("future has not completed")
        if self._promise.exception is not None:
            raise self._promise.exception
        return self._promise.value

    def apply(self, func: Callable[[Any], Any]) -> Future:
        """A future holding ``func`` applied to this future's result."""

        async def chained() -> Any:
            return func(await self)

        return Future(chained())

    def ignore(self) -> Future:
        """A future that completes with this one and discards its result."""

        async def discarded() -> None:
            await self

        return Future(discarded())

    def accept(self, func: Callable[[], Any]) -> Future:
        """A future that calls ``func`` once this one has completed."""

        async def continuation() -> None:
            await self
            func()

        return Future(continuation())


def future(func: Callable[..., Coroutine]) -> Callable[..., Future]:
    """Decorate an async function so that calling it returns a started :class:`Future`."""

    @functools.wraps(func)
    def start(*args: Any, **kwargs: Any) -> Future:
        return Future(func(*args, **kwargs))

    return start


def all_futures(futures: Iterable[Future]) -> Future:
    """A future holding the list of all results, in the given order."""
    waiting = list(futures)

    async def gather() -> list[Any]:
        return [await f for f in waiting]

    return Future(gather())


def _first_done(candidates: list[Future]) -> Future | None:
    return next((f for f in candidates if f.done()), None)


def any_future(futures: Iterable[Future]) -> Future:
    """A future holding the result of whichever future completes first.

    The remaining futures are destroyed once a result is taken.
    """
    candidates = list(futures)
    if not candidates:
        raise ValueError("any_future() needs at least one future")

    async def first() -> Any:
        try:
            finished = _first_done(candidates)
            if finished is None:
                me = await Self()
                for f in candidates:
                    f.await_suspend(me)
                await SuspendAlways()
                finished = _first_done(candidates)
            return finished.result()
        finally:
            for f in candidates:
                f.raw().destroy()

    return Future(first())
"""Coroutine handles and the elementary awaitables that drive them.

A coroutine is driven by a :class:`Handle`. Whenever the coroutine awaits an
:class:`Awaiter`, the handle calls its ``await_suspend``: ``False`` continues
at once, a :class:`Handle` passes control to that coroutine, and any other
value leaves the coroutine suspended until someone resumes its handle.
"""

from __future__ import annotations

from collections.abc import Coroutine
from typing import Any


class Awaiter:
    """Base class for objects a driven coroutine may await."""

    def await_ready(self) -> bool:
        return False

    def await_suspend(self, handle: Handle) -> Any:
        return None

    def await_resume(self) -> Any:
        return None

    def __await__(self):
        if not self.await_ready():
            yield self
        return self.await_resume()


class Handle:
    """Drives one coroutine object step by step.

    Without a promise the coroutine is fire-and-forget: its result and any
    error it raises are dropped when it finishes.
    """

    def __init__(self, coro: Coroutine, promise: Any = None) -> None:
        self._coro = coro
        self.promise = promise
        self._done = False

    def done(self) -> bool:
        """True once the coroutine has finished or been destroyed."""
        return self._done

    def resume(self) -> None:
        """Run the coroutine until it suspends, following control transfers."""
        handle: Handle | None = self
        while handle is not None:
            handle = handle._step()

    def destroy(self) -> None:
        """Close an unfinished coroutine, running its cleanup code."""
        if not self._done:
            self._done = True
            self._coro.close()

    def _step(self) -> Handle | None:
        if self._done:
            raise RuntimeError("cannot resume a finished coroutine")
        pending: BaseException | None = None
        while True:
            exc, pending = pending, None
            try:
                if exc is None:
                    awaiter = self._coro.send(None)
                else:
                    awaiter = self._coro.throw(exc)
            except StopIteration as stop:
                return self._finish(stop.value, None)
            except Exception as error:
                return self._finish(None, error)
            if not isinstance(awaiter, Awaiter):
                pending = TypeError(f"{awaiter!r} cannot be awaited by a driven coroutine")
                continue
            verdict = awaiter.await_suspend(self)
            if verdict is False:
                continue
            if isinstance(verdict, Handle):
                return verdict
            return None

    def _finish(self, value: Any, exc: BaseException | None) -> Handle | None:
        self._done = True
        if self.promise is None:
            return None
        if exc is None:
            self.promise.return_value(value)
        else:
            self.promise.unhandled_exception(exc)
        return self.promise.final_suspend(self)


class Self(Awaiter):
    """Awaiting it yields the handle of the awaiting coroutine without suspending."""

    def __init__(self) -> None:
        self.handle: Handle | None = None

    def await_suspend(self, handle: Handle) -> bool:
        self.handle = handle
        return False

    def await_resume(self) -> Handle | None:
        return self.handle


class SuspendAlways(Awaiter):
    """Suspends the awaiting coroutine until its handle is resumed."""


def _start(coro: Coroutine) -> Handle:
    handle = Handle(coro)
    handle.resume()
    return handle


def void_task(coro: Coroutine) -> Handle:
    """Start a fire-and-forget coroutine; its result and errors are discarded."""
    return _start(coro)


def suspended_task(coro: Coroutine) -> Handle:
    """Start a coroutine whose handle stays inspectable after it finishes."""
    return _start(coro)
"""An event loop that repeatedly polls and wakes up ready coroutines."""

from __future__ import annotations

from corochain.poller import PollerBase


class Loop:
    """Runs polling rounds on a poller until stopped."""

    def __init__(self, poller: PollerBase | None = None) -> None:
        self._poller = poller if poller is not None else PollerBase()
        self._running = True

    def run(self) -> None:
        """Step until :meth:`stop` is called."""
        while self._running:
            self.step()

    def stop(self) -> None:
        """Make :meth:`run` return after the current step."""
        self._running = False

    def step(self) -> None:
        """One polling round followed by the wake-up of ready coroutines."""
        self._poller.poll()
        self._poller.wakeup_ready_handles()

    @property
    def poller(self) -> PollerBase:
        """The poller this loop drives."""
        return self._poller
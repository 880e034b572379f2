"""Coroutine futures with all/any combinators, timers and a poller-driven event loop."""

__version__ = "0.1.0"
__all__ = ["base", "promises", "futures", "poller", "loop"]
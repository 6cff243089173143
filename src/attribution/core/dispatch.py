from __future__ import annotations

import queue
from collections.abc import Callable
from typing import Protocol

import simpy


class Dispatcher(Protocol):
    """
    The host's main/UI execution context. Handler and completion invocations are
    posted here so they never run on a collaborator's worker thread.
    """

    def post(self, fn: Callable[[], None]) -> None: ...


class ImmediateDispatcher:
    """Runs callbacks inline on whatever thread posts them."""

    def post(self, fn: Callable[[], None]) -> None:
        fn()


class QueueDispatcher:
    """
    Thread-safe FIFO drained by the host loop (e.g. once per UI frame).
    """

    def __init__(self) -> None:
        self._q: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()

    def post(self, fn: Callable[[], None]) -> None:
        self._q.put(fn)

    def pending(self) -> int:
        return self._q.qsize()

    def drain(self) -> int:
        n = 0
        while True:
            try:
                fn = self._q.get_nowait()
            except queue.Empty:
                return n
            fn()
            n += 1


class SimPyDispatcher:
    """
    Delivers callbacks as zero-delay processes on a SimPy environment, so they run
    in simulation order at the current env.now.
    """

    def __init__(self, env: simpy.Environment) -> None:
        self.env = env

    def post(self, fn: Callable[[], None]) -> None:
        self.env.process(self._deliver(fn))

    def _deliver(self, fn: Callable[[], None]):
        yield self.env.timeout(0)
        fn()

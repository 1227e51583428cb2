"""Cancellation signals for in-flight requests.

A :class:`CancelSignal` is a one-shot flag: once triggered it stays
triggered. :func:`any_signal` fans several signals in to a single one that
triggers as soon as any of its inputs does.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from .errors import SeclaiRequestAbortedError

Callback = Callable[["CancelSignal"], None]


class CancelSignal:
    """A one-shot cancellation signal.

    Usage::

        signal = CancelSignal()
        task = asyncio.create_task(
            client.run_streaming_agent_and_wait("agent-id", body, signal=signal)
        )
        ...
        signal.trigger("user pressed stop")
    """

    def __init__(self) -> None:
        self._triggered = False
        self._reason: Any = None
        self._callbacks: list[Callback] = []
        self._waiters: list[asyncio.Event] = []

    @property
    def triggered(self) -> bool:
        return self._triggered

    @property
    def reason(self) -> Any:
        return self._reason

    def trigger(self, reason: Any = None) -> None:
        """Trigger the signal. Later calls are ignored."""
        if self._triggered:
            return
        self._triggered = True
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for waiter in self._waiters:
            waiter.set()
        for callback in callbacks:
            callback(self)

    def add_callback(self, callback: Callback) -> None:
        """Run ``callback`` once when the signal triggers.

        The callback runs immediately if the signal already triggered.
        """
        if self._triggered:
            callback(self)
            return
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def wait(self) -> Any:
        """Block until the signal triggers and return its reason."""
        if self._triggered:
            return self._reason
        waiter = asyncio.Event()
        self._waiters.append(waiter)
        try:
            await waiter.wait()
        finally:
            self._waiters.remove(waiter)
        return self._reason

    def raise_if_triggered(self) -> None:
        if self._triggered:
            raise SeclaiRequestAbortedError(self._reason)


class CombinedSignal(CancelSignal):
    """A signal that triggers when any of its sources triggers."""

    def __init__(self, sources: list[CancelSignal]):
        super().__init__()
        self._sources = sources
        for source in sources:
            if source.triggered:
                self.trigger(source.reason)
                break
            source.add_callback(self._on_source_triggered)

    def _on_source_triggered(self, source: CancelSignal) -> None:
        self.trigger(source.reason)

    def release(self) -> None:
        """Detach from the source signals."""
        for source in self._sources:
            source.remove_callback(self._on_source_triggered)


def any_signal(*signals: Optional[CancelSignal]) -> Optional[CancelSignal]:
    """Combine signals so the result triggers when any input triggers.

    ``None`` entries are skipped. With no signals left ``None`` is returned,
    and a single signal is returned as is.
    """
    present = [s for s in signals if s is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return CombinedSignal(present)

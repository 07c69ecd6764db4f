"""Request-scoped cancellation."""

from __future__ import annotations

import threading
import time
from typing import Callable

from JobSearch.core.errors import Cancelled
from JobSearch.utils.log import log


class CancellationToken:
    """Thread-safe cancellation flag with an optional deadline.

    Callbacks registered with :meth:`on_cancel` run once, on the thread that
    cancels, and are used to interrupt in-flight storage calls.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._reason = "cancelled"
        self._deadline = time.monotonic() + timeout if timeout else None
        self._timer: threading.Timer | None = None
        if timeout:
            self._timer = threading.Timer(timeout, self.cancel, kwargs={"reason": f"timed out after {timeout:g}s"})
            self._timer.daemon = True
            self._timer.start()

    @property
    def cancelled(self) -> bool:
        if not self._event.is_set() and self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(reason="deadline exceeded")
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel the request and fire registered callbacks."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for callback in callbacks:
            try:
                callback()
            except Exception as error:  # noqa: BLE001 - interrupt hooks must not mask cancellation
                log.warning("Cancel callback failed: %s", error)

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register ``callback``; runs immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def raise_if_cancelled(self) -> None:
        """Raise ``Cancelled`` when the token is cancelled or expired."""
        if self.cancelled:
            raise Cancelled(f"Search {self._reason}")

    def close(self) -> None:
        """Stop the deadline timer."""
        if self._timer is not None:
            self._timer.cancel()

"""
Cooperative cancellation primitives for the request executor.

A :class:`CancellationToken` is a one-shot signal: once cancelled it stays
cancelled and keeps the reason it was first cancelled with.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional

__all__ = [
    "CancellationToken",
    "RequestAborted",
    "TimeoutSource",
    "TIMEOUT_REASON",
]

TIMEOUT_REASON = "timeout"
DEFAULT_REASON = "cancelled"


def _noop() -> None:
    return None


class RequestAborted(Exception):
    """Raised by a transport when the token fires while a call is in flight."""

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(f"Request aborted ({reason or DEFAULT_REASON})")
        self.reason = reason


class CancellationToken:
    """
    Thread-safe, non-resettable cancellation signal.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._callbacks: List[Callable[["CancellationToken"], None]] = []
        self._detachers: List[Callable[[], None]] = []

    def __repr__(self) -> str:
        state = f"cancelled, reason={self._reason!r}" if self.cancelled else "active"
        return f"<CancellationToken {state}>"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = DEFAULT_REASON) -> bool:
        """
        Fire the token. Returns ``False`` if it had already fired.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            callback(self)
        return True

    def add_callback(
        self, callback: Callable[["CancellationToken"], None]
    ) -> Callable[[], None]:
        """
        Run ``callback`` once the token fires, or now if it already has.

        Returns a function that unregisters the callback again.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove_callback(callback)
        callback(self)
        return _noop

    def _remove_callback(self, callback: Callable[["CancellationToken"], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                # already fired, or removed earlier
                pass

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to ``timeout`` seconds; ``True`` means the token fired."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestAborted(self._reason)

    @classmethod
    def combine(cls, *tokens: Optional["CancellationToken"]) -> "CancellationToken":
        """
        Derive a token that fires as soon as any of ``tokens`` fires.

        The derived token takes the reason of whichever parent fired first.
        ``None`` entries are skipped. Call :meth:`release` on the derived token
        once it is no longer needed so long-lived parents drop their reference
        to it.
        """
        combined = cls()
        for token in tokens:
            if token is None:
                continue
            combined._detachers.append(
                token.add_callback(lambda parent: combined.cancel(parent.reason or DEFAULT_REASON))
            )
            if combined.cancelled:
                break
        return combined

    def release(self) -> None:
        """Unregister this token from the parents it was combined from."""
        detachers, self._detachers = self._detachers, []
        for detach in detachers:
            detach()


class TimeoutSource:
    """
    Context manager yielding a token that fires after ``seconds``.

    ::

        with TimeoutSource(5.0) as token:
            transport.send(..., cancel_token=token)
    """

    def __init__(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("Timeout must be greater than zero")
        self.seconds = seconds
        self.token = CancellationToken()
        self._timer: Optional[threading.Timer] = None

    def start(self) -> CancellationToken:
        if self._timer is None:
            self._timer = threading.Timer(self.seconds, self.token.cancel, args=(TIMEOUT_REASON,))
            self._timer.daemon = True
            self._timer.start()
        return self.token

    def dispose(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __enter__(self) -> CancellationToken:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

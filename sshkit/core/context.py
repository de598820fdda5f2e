"""
Cancellation and deadline token for blocking operations
"""
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from .exceptions import CancelledError, DeadlineExceeded
from .logging import get_logger

logger = get_logger(__name__)


class OperationContext:
    """
    Cancellation token threaded through connect, session wait, stream reads
    and upload.

    A context created with ``timeout`` cancels itself with
    ``DeadlineExceeded`` once the timeout elapses. Callbacks registered with
    ``bound()`` run on cancellation, which is how blocked stream reads are
    released (the session gets closed underneath them).

    Use as a context manager to release the deadline timer early:

        with OperationContext(timeout=30) as ctx:
            client.execute("uptime", ctx=ctx)
    """

    def __init__(self, timeout: Optional[float] = None):
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._error: Optional[CancelledError] = None
        self._timer: Optional[threading.Timer] = None
        self.deadline: Optional[float] = None

        if timeout is not None:
            self.deadline = time.monotonic() + timeout
            self._timer = threading.Timer(timeout, self._expire)
            self._timer.daemon = True
            self._timer.start()

    # --------------------
    # Cancellation
    # --------------------
    def cancel(self) -> None:
        """Cancel the operation"""
        self._fire(CancelledError("operation cancelled"))

    def _expire(self) -> None:
        self._fire(DeadlineExceeded("deadline exceeded"))

    def _fire(self, error: CancelledError) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = error
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        self._done.set()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.debug(f"Cancellation callback failed: {e}")

    @property
    def cancelled(self) -> bool:
        return self._done.is_set()

    def check(self) -> None:
        """Raise the cancellation error if the context is done"""
        error = self._error
        if error is not None:
            raise type(error)(str(error))

    def wait(self, seconds: Optional[float]) -> bool:
        """Block up to ``seconds``; True if the context got cancelled"""
        return self._done.wait(seconds)

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, None without one"""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    # --------------------
    # Callbacks
    # --------------------
    @contextmanager
    def bound(self, callback: Callable[[], None]) -> Iterator[None]:
        """Run ``callback`` if cancellation happens inside the block"""
        with self._lock:
            fire_now = self._error is not None
            if not fire_now:
                self._callbacks.append(callback)
        if fire_now:
            callback()

        try:
            yield
        finally:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

    # --------------------
    # Context manager
    # --------------------
    def close(self) -> None:
        """Release the deadline timer"""
        if self._timer is not None:
            self._timer.cancel()

    def __enter__(self) -> "OperationContext":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

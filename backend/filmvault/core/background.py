"""
Detached background work that must not hold up, or fail, a response.

Tasks run on a small thread pool. The runner remembers every task still in
flight so shutdown can wait for them to drain.
"""
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundRunner:
    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="background")
        self._lock = threading.Lock()
        self._pending: set[Future] = set()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """
        Run *fn* in the background.

        Exceptions raised by *fn* are logged here and never re-raised, so the
        returned future always resolves cleanly.
        """
        future = self._executor.submit(self._run, fn, *args, **kwargs)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until every submitted task has finished or *timeout* elapses.

        Returns True when the runner drained in time.
        """
        with self._lock:
            outstanding = set(self._pending)
        _, not_done = wait(outstanding, timeout=timeout)
        return not not_done

    def shutdown(self, timeout: float | None = None) -> bool:
        """Wait for outstanding tasks, then stop accepting new ones."""
        drained = self.wait(timeout)
        self._executor.shutdown(wait=False, cancel_futures=not drained)
        return drained

    @staticmethod
    def _run(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("Background task %s failed", getattr(fn, "__name__", fn))

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

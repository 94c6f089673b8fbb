"""
Bounded background dispatcher for capture work.

A fixed pool of daemon threads drains a bounded queue.  ``submit`` never
blocks: when the queue is full or the dispatcher is closed the task is
dropped and counted, so an overloaded sink degrades error visibility rather
than request latency.
"""

import queue
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from ..config import AsyncSettings
from ..observability.logging import setup_structured_logger
from ..observability.metrics import (
    DISPATCHED_TOTAL,
    DROPPED_TOTAL,
    QUEUE_DEPTH,
    TASK_FAILURES_TOTAL,
    MetricsCollector,
)

_STOP = object()


class CaptureDispatcher:
    """Fixed-size worker pool with a bounded task queue.

    Usage::

        dispatcher = CaptureDispatcher(AsyncSettings(pool_size=2))
        dispatcher.submit(publisher.publish, event)
        ...
        dispatcher.close(timeout=5)
    """

    def __init__(self, settings: Optional[AsyncSettings] = None) -> None:
        self.settings = settings or AsyncSettings()
        self.logger = setup_structured_logger("http_error_capture.dispatcher", "capture.log")
        self._metrics = MetricsCollector()
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max(1, self.settings.queue_capacity))
        self._closed = threading.Event()
        self._stats_lock = threading.Lock()
        self._dropped = 0
        self._processed = 0
        self._failed = 0
        self._threads: List[threading.Thread] = []
        for i in range(max(1, self.settings.pool_size)):
            t = threading.Thread(
                target=self._run,
                name=f"{self.settings.thread_name_prefix}{i + 1}",
                daemon=True,
            )
            t.start()
            self._threads.append(t)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """Queue *fn* for background execution.

        Returns:
            ``True`` if the task was queued, ``False`` if it was dropped.
        """
        if self._closed.is_set():
            self._record_drop("closed")
            return False
        try:
            self._queue.put_nowait((fn, args, kwargs))
        except queue.Full:
            self._record_drop("queue_full")
            return False
        self._metrics.inc(DISPATCHED_TOTAL)
        self._metrics.gauge_set(QUEUE_DEPTH, self._queue.qsize())
        return True

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop accepting tasks and wait for workers to drain.

        Tasks still queued when *timeout* expires are abandoned with their
        daemon threads.
        """
        if self._closed.is_set():
            return
        self._closed.set()
        if timeout is None:
            timeout = self.settings.shutdown_timeout_seconds

        for _ in self._threads:
            # Sentinels queue behind pending work. Workers also exit on the
            # closed flag once the queue is empty.
            try:
                self._queue.put_nowait(_STOP)
            except queue.Full:
                break

        deadline = time.monotonic() + timeout
        for t in self._threads:
            t.join(timeout=max(0.0, deadline - time.monotonic()))

        alive = sum(1 for t in self._threads if t.is_alive())
        if alive:
            self.logger.warning(
                "Dispatcher closed with %d worker(s) still busy; pending capture work abandoned",
                alive,
                extra={"queue_depth": self._queue.qsize()},
            )
        else:
            self.logger.debug("Dispatcher closed cleanly")

    def stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return {
                "queue_size": self._queue.qsize(),
                "dropped": self._dropped,
                "processed": self._processed,
                "failed": self._failed,
                "workers": len(self._threads),
            }

    # ── internals ────────────────────────────────────────────────

    def _record_drop(self, reason: str) -> None:
        with self._stats_lock:
            self._dropped += 1
        self._metrics.inc(DROPPED_TOTAL, labels={"reason": reason})
        self.logger.warning(
            "Dropped capture task (%s)", reason, extra={"queue_depth": self._queue.qsize()}
        )

    def _run(self) -> None:
        while True:
            try:
                item = self._queue.get(timeout=0.5)
            except queue.Empty:
                if self._closed.is_set():
                    return
                continue

            if item is _STOP:
                return

            fn, args, kwargs = item
            try:
                fn(*args, **kwargs)
            except Exception:
                with self._stats_lock:
                    self._failed += 1
                self._metrics.inc(TASK_FAILURES_TOTAL)
                self.logger.exception("Capture task failed")
            else:
                with self._stats_lock:
                    self._processed += 1
            finally:
                self._metrics.gauge_set(QUEUE_DEPTH, self._queue.qsize())

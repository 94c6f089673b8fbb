"""
In-process counters and gauges for the capture pipeline.

Capture failures never reach the request that triggered them, so these
metrics are how operators see dropped tasks, publish failures and queue
depth.  Exposed by the health blueprint in Prometheus text exposition
format and as a JSON snapshot.
"""

import threading
import time
from typing import Any, Dict, List, Optional, Tuple

# ── Metric names ─────────────────────────────────────────────────

DISPATCHED_TOTAL = "error_capture_dispatched_total"
DROPPED_TOTAL = "error_capture_dropped_total"
TASK_FAILURES_TOTAL = "error_capture_task_failures_total"
PUBLISHED_TOTAL = "error_events_published_total"
PUBLISH_FAILURES_TOTAL = "error_events_publish_failures_total"
QUEUE_DEPTH = "error_capture_queue_depth"

# name -> (type, help) for the exposition header lines
_FAMILIES: Dict[str, Tuple[str, str]] = {
    DISPATCHED_TOTAL: ("counter", "Capture tasks accepted by the dispatcher"),
    DROPPED_TOTAL: ("counter", "Capture tasks dropped before running"),
    TASK_FAILURES_TOTAL: ("counter", "Capture tasks that raised on a worker"),
    PUBLISHED_TOTAL: ("counter", "Error events accepted by the sink"),
    PUBLISH_FAILURES_TOTAL: ("counter", "Error events the sink did not accept"),
    QUEUE_DEPTH: ("gauge", "Capture tasks waiting for a worker"),
}

_SeriesKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def _series(name: str, labels: Optional[Dict[str, str]]) -> _SeriesKey:
    return name, tuple(sorted((labels or {}).items()))


def _render(key: _SeriesKey) -> str:
    name, labels = key
    if not labels:
        return name
    inner = ",".join(f'{k}="{v}"' for k, v in labels)
    return f"{name}{{{inner}}}"


# ── Collector singleton ──────────────────────────────────────────


class MetricsCollector:
    """Thread-safe in-process metrics store.

    Usage::

        mc = MetricsCollector()
        mc.inc(DROPPED_TOTAL, labels={"reason": "queue_full"})
        mc.inc(PUBLISHED_TOTAL, 10)
        mc.gauge_set(QUEUE_DEPTH, 3)
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "MetricsCollector":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._values_lock = threading.Lock()
        self._counters: Dict[_SeriesKey, float] = {}
        self._gauges: Dict[_SeriesKey, float] = {}
        self._start_time = time.time()

    def inc(
        self, name: str, amount: float = 1.0,
        *, labels: Optional[Dict[str, str]] = None,
    ) -> None:
        """Add *amount* to a counter series."""
        key = _series(name, labels)
        with self._values_lock:
            self._counters[key] = self._counters.get(key, 0.0) + amount

    def gauge_set(
        self, name: str, value: float,
        *, labels: Optional[Dict[str, str]] = None,
    ) -> None:
        key = _series(name, labels)
        with self._values_lock:
            self._gauges[key] = float(value)

    def counter_value(self, name: str, *, labels: Optional[Dict[str, str]] = None) -> float:
        with self._values_lock:
            return self._counters.get(_series(name, labels), 0.0)

    def gauge_value(self, name: str, *, labels: Optional[Dict[str, str]] = None) -> float:
        with self._values_lock:
            return self._gauges.get(_series(name, labels), 0.0)

    # ── Export ───────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view keyed by rendered series name."""
        with self._values_lock:
            counters = dict(self._counters)
            gauges = dict(self._gauges)
        return {
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "counters": {_render(k): v for k, v in counters.items()},
            "gauges": {_render(k): v for k, v in gauges.items()},
        }

    def prometheus_exposition(self) -> str:
        """Render every series, with HELP/TYPE lines for known families."""
        with self._values_lock:
            series = sorted({**self._counters, **self._gauges}.items())

        lines: List[str] = [
            "# HELP uptime_seconds Process uptime in seconds",
            "# TYPE uptime_seconds gauge",
            f"uptime_seconds {time.time() - self._start_time:.1f}",
        ]
        announced = set()
        for key, value in series:
            name = key[0]
            if name in _FAMILIES and name not in announced:
                kind, help_text = _FAMILIES[name]
                lines.append(f"# HELP {name} {help_text}")
                lines.append(f"# TYPE {name} {kind}")
                announced.add(name)
            lines.append(f"{_render(key)} {value}")
        return "\n".join(lines) + "\n"

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next call starts empty (tests)."""
        with cls._lock:
            cls._instance = None

"""
Observability package — structured logging, log scrubbing and metrics.

Provides:
- ``setup_structured_logger``: JSON-formatted logging for pipeline components
- ``capture_context``: Tags a worker thread's log lines with the event in flight
- ``PiiScrubber``: Filters secrets from log records
- ``MetricsCollector``: In-process counters for dispatch and publish outcomes
"""

from .logging import capture_context, setup_structured_logger
from .metrics import MetricsCollector
from .pii import PiiScrubber

__all__ = [
    "capture_context",
    "setup_structured_logger",
    "MetricsCollector",
    "PiiScrubber",
]

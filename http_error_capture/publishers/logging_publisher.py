"""
Log-only publisher.

Writes each event as a structured log record.  Used when no queue URL is
configured, so a development server still shows what would have been sent.
"""

import logging
from typing import Optional, Sequence

from ..model import HttpErrorEvent
from ..observability.logging import setup_structured_logger
from ..observability.metrics import PUBLISHED_TOTAL, MetricsCollector
from .base import ErrorEventPublisher


class LoggingErrorEventPublisher(ErrorEventPublisher):
    """Emit events through ``logging`` instead of a remote sink."""

    def __init__(self, logger: Optional[logging.Logger] = None, *, level: int = logging.WARNING):
        self.logger = logger or setup_structured_logger("http_error_capture.events", "events.log")
        self.level = level
        self._metrics = MetricsCollector()

    def publish(self, event: HttpErrorEvent) -> None:
        try:
            self.logger.log(
                self.level,
                "HTTP %s %s -> %s",
                event.method,
                event.path,
                event.status_code,
                extra={
                    "event_id": event.id,
                    "application_name": event.application_name,
                    "status_code": event.status_code,
                    "error_event": event.to_dict(),
                },
            )
        except Exception:
            self.logger.exception("Failed to log error event %s", event.id)
            return
        self._metrics.inc(PUBLISHED_TOTAL)

    def publish_batch(self, events: Sequence[HttpErrorEvent]) -> None:
        for event in events:
            self.publish(event)

    def health_check(self) -> bool:
        return True

"""
Capture orchestrator.

``HttpErrorCaptureService`` is the only object integrations talk to.  The
capture decision runs on the caller's thread (it is a cheap predicate);
everything after that, event construction and publishing, runs on the
background dispatcher.  None of the public methods raise: a capture that
fails simply produces no event.
"""

from typing import Optional, Sequence

from .builder import build_event
from .config import HttpErrorCaptureSettings
from .model import ExchangeSnapshot, HttpErrorEvent
from .observability.logging import capture_context, setup_structured_logger
from .policy import should_capture
from .publishers.base import ErrorEventPublisher
from .workers.dispatcher import CaptureDispatcher


class HttpErrorCaptureService:
    """Decide, build and publish error events without blocking the caller.

    Usage::

        service = HttpErrorCaptureService(publisher, settings)
        service.capture_async(snapshot)     # returns immediately
        service.shutdown()
    """

    def __init__(
        self,
        publisher: ErrorEventPublisher,
        settings: Optional[HttpErrorCaptureSettings] = None,
        *,
        dispatcher: Optional[CaptureDispatcher] = None,
    ) -> None:
        """
        Args:
            publisher: Sink that receives the built events.
            settings: Pipeline settings; defaults apply when omitted.
            dispatcher: Background executor.  Created from
                ``settings.async_`` if not provided.
        """
        self.publisher = publisher
        self.settings = settings or HttpErrorCaptureSettings()
        self.dispatcher = dispatcher or CaptureDispatcher(self.settings.async_)
        self.logger = setup_structured_logger("http_error_capture.service", "capture.log")

    # ── Capture ──────────────────────────────────────────────────

    def should_capture(self, status_code: int, path: str) -> bool:
        return should_capture(status_code, path, self.settings)

    def capture_async(self, snapshot: ExchangeSnapshot) -> None:
        """Schedule capture of one exchange; returns before any work runs."""
        try:
            if not self.should_capture(snapshot.status_code, snapshot.path):
                return
            self.dispatcher.submit(self._capture, snapshot)
        except Exception:
            self.logger.exception("Failed to schedule HTTP error capture")

    def capture_batch_async(self, events: Sequence[HttpErrorEvent]) -> None:
        """Schedule one batch publish of pre-built events."""
        try:
            if not self.settings.enabled or not events:
                return
            self.dispatcher.submit(self._capture_batch, list(events))
        except Exception:
            self.logger.exception("Failed to schedule batch HTTP error capture")

    # ── Operations ───────────────────────────────────────────────

    def health_check(self) -> bool:
        try:
            return bool(self.publisher.health_check())
        except Exception:
            self.logger.exception("Publisher health check raised")
            return False

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop accepting captures and give in-flight work *timeout* seconds."""
        self.dispatcher.close(timeout)

    # ── Background tasks ─────────────────────────────────────────

    def _capture(self, snapshot: ExchangeSnapshot) -> None:
        with capture_context(
            method=snapshot.method, path=snapshot.path, status_code=snapshot.status_code
        ):
            try:
                event = build_event(snapshot, self.settings)
                with capture_context(event_id=event.id):
                    self.publisher.publish(event)
                    self.logger.debug("HTTP error event captured and sent")
            except Exception:
                self.logger.exception("Failed to capture HTTP error event")

    def _capture_batch(self, events: Sequence[HttpErrorEvent]) -> None:
        with capture_context(batch_size=len(events)):
            try:
                self.publisher.publish_batch(events)
                self.logger.debug("Batch of %d HTTP error events sent", len(events))
            except Exception:
                self.logger.exception("Failed to capture batch HTTP error events")

"""
Flask integration — feeds finished exchanges into the capture service.

Installs three hooks on the application:

1. ``before_request`` stores a monotonic start time on ``g``.
2. ``got_request_exception`` remembers the unhandled exception that turned
   into a 500 response.
3. ``after_request`` asks the service whether the exchange qualifies and,
   only then, copies headers and bodies into an ``ExchangeSnapshot`` and
   hands it to ``capture_async``.

The hooks never alter the response and never raise.  Bodies are only read
when their include flag is set, and never beyond the bytes that can survive
truncation: a request body within that budget goes through Flask's cached
``get_data``, a larger or unsized one is read from the stream up to the
budget.  A body the view consumed as a raw stream or as form data is
reported absent.  Streamed responses are never buffered.
"""

import time
from typing import Any, Dict, List, Optional

from flask import Flask, g, got_request_exception, request

from ..model import ExchangeSnapshot
from ..observability.logging import setup_structured_logger
from ..service import HttpErrorCaptureService

EXTENSION_KEY = "http_error_capture"
_MAX_UTF8_BYTES = 4


class HttpErrorCapture:
    """Flask extension wiring an app to an ``HttpErrorCaptureService``.

    Usage::

        service = create_capture_service(settings)
        HttpErrorCapture(app, service)
    """

    _START_ATTR = "_http_error_capture_start"
    _EXC_ATTR = "_http_error_capture_exc"

    def __init__(
        self,
        app: Flask,
        service: HttpErrorCaptureService,
        *,
        register_health: bool = True,
    ):
        """
        Args:
            app: The Flask application.
            service: Capture service receiving the snapshots.
            register_health: Also mount ``health_bp`` on the app.
        """
        self.app = app
        self.service = service
        self.logger = setup_structured_logger("http_error_capture.flask", "capture.log")
        self._install(app, register_health)

    # ── installation ─────────────────────────────────────────────

    def _install(self, app: Flask, register_health: bool) -> None:
        app.before_request(self._before)
        app.after_request(self._after)
        got_request_exception.connect(self._on_exception, app, weak=False)
        app.extensions[EXTENSION_KEY] = self

        if register_health:
            from ..routes.health_bp import health_bp

            app.register_blueprint(health_bp)

    # ── hooks ────────────────────────────────────────────────────

    def _before(self) -> None:
        setattr(g, self._START_ATTR, time.monotonic())

    def _on_exception(self, sender: Any, exception: BaseException, **extra: Any) -> None:
        setattr(g, self._EXC_ATTR, exception)

    def _after(self, response):
        try:
            if self.service.should_capture(response.status_code, request.path):
                self.service.capture_async(self._snapshot(response))
        except Exception:
            self.logger.exception("Error in HTTP error capture hook")
        return response

    # ── snapshot ─────────────────────────────────────────────────

    def _snapshot(self, response) -> ExchangeSnapshot:
        start = getattr(g, self._START_ATTR, None)
        duration_ms = int((time.monotonic() - start) * 1000) if start is not None else None
        environ = request.environ

        return ExchangeSnapshot(
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            request_headers=_header_lists(request.headers),
            response_headers=_header_lists(response.headers),
            request_body=self._request_body(),
            response_body=self._response_body(response),
            exception=getattr(g, self._EXC_ATTR, None),
            duration_ms=duration_ms,
            remote_addr=request.remote_addr,
            query_string=request.query_string.decode("utf-8", "replace"),
            content_type=request.content_type,
            content_length=request.content_length,
            protocol=environ.get("SERVER_PROTOCOL"),
            scheme=request.scheme,
            server_name=environ.get("SERVER_NAME"),
            server_port=_as_int(environ.get("SERVER_PORT")),
        )

    def _request_body(self) -> Optional[str]:
        capture = self.service.settings.capture
        if not capture.include_request_body:
            return None
        budget = _byte_budget(capture.max_body_size)
        try:
            length = request.content_length
            if length is not None and length <= budget:
                data = request.get_data(cache=True)
            else:
                # Unknown or oversized: read only the prefix the event can keep
                data = request.stream.read(budget)
        except Exception:
            self.logger.debug("Failed to extract request body", exc_info=True)
            return None
        return _decode(data)

    def _response_body(self, response) -> Optional[str]:
        capture = self.service.settings.capture
        if not capture.include_response_body:
            return None
        if response.is_streamed or response.direct_passthrough:
            return None
        try:
            data = response.get_data()
        except Exception:
            self.logger.debug("Failed to extract response body", exc_info=True)
            return None
        return _decode(data[: _byte_budget(capture.max_body_size)])


def _byte_budget(max_chars: int) -> int:
    """Bytes that always decode to more than *max_chars* characters of UTF-8."""
    return (max_chars + 1) * _MAX_UTF8_BYTES


def _decode(data: bytes) -> Optional[str]:
    if not data:
        return None
    return data.decode("utf-8", "replace")


def _header_lists(headers) -> Dict[str, List[str]]:
    return {name: headers.getlist(name) for name in headers.keys()}


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

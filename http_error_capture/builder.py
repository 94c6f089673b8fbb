"""
Turn an ``ExchangeSnapshot`` into an ``HttpErrorEvent``.

Construction never fails because of an optional field: each extraction runs
through ``_optional`` and degrades to ``None`` on error, so a malformed
header or an exception whose ``__str__`` raises still yields an event.
"""

import traceback
import uuid
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from .config import HttpErrorCaptureSettings
from .constants import FORWARDED_FOR_HEADER, REAL_IP_HEADER, USER_AGENT_HEADER
from .model import ExchangeSnapshot, HeaderValue, HttpErrorEvent
from .observability.logging import setup_structured_logger
from .policy import filter_headers, join_header_value, truncate_body

logger = setup_structured_logger("http_error_capture.builder", "capture.log")

T = TypeVar("T")


def build_event(
    snapshot: ExchangeSnapshot,
    settings: HttpErrorCaptureSettings,
    application_name: Optional[str] = None,
) -> HttpErrorEvent:
    """Build the redacted, size-bounded event for one exchange.

    Args:
        snapshot: The exchange as seen by the integration.
        settings: Capture settings (header/body inclusion, body cap).
        application_name: Overrides ``settings.application_name``.

    Returns:
        A new ``HttpErrorEvent`` with a fresh id and timestamp.
    """
    capture = settings.capture
    exc = snapshot.exception
    error_message = stack_trace = None
    if exc is not None:
        error_message = _optional("error_message", lambda: exception_message(exc))
        stack_trace = _optional("stack_trace", lambda: format_stack_trace(exc))

    return HttpErrorEvent(
        id=str(uuid.uuid4()),
        application_name=application_name or settings.application_name,
        method=snapshot.method,
        path=snapshot.path,
        status_code=snapshot.status_code,
        user_agent=_optional(
            "user_agent", lambda: get_header(snapshot.request_headers, USER_AGENT_HEADER)
        ),
        remote_address=_optional("remote_address", lambda: resolve_client_address(snapshot)),
        request_headers=_optional(
            "request_headers",
            lambda: filter_headers(snapshot.request_headers, capture.include_headers),
        )
        or {},
        response_headers=_optional(
            "response_headers",
            lambda: filter_headers(snapshot.response_headers, capture.include_headers),
        )
        or {},
        request_body=truncate_body(
            snapshot.request_body, capture.max_body_size, capture.include_request_body
        ),
        response_body=truncate_body(
            snapshot.response_body, capture.max_body_size, capture.include_response_body
        ),
        duration=snapshot.duration_ms,
        error_message=error_message,
        stack_trace=stack_trace,
        additional_data=build_additional_data(snapshot),
    )


# ── Field extraction ─────────────────────────────────────────────


def get_header(headers: Optional[Mapping[str, HeaderValue]], name: str) -> Optional[str]:
    """Case-insensitive header lookup returning the joined value."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return join_header_value(value)
    return None


def resolve_client_address(snapshot: ExchangeSnapshot) -> Optional[str]:
    """First ``X-Forwarded-For`` hop, then ``X-Real-IP``, then the socket address."""
    forwarded = get_header(snapshot.request_headers, FORWARDED_FOR_HEADER)
    if forwarded and forwarded.strip():
        return forwarded.split(",")[0].strip()

    real_ip = get_header(snapshot.request_headers, REAL_IP_HEADER)
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return snapshot.remote_addr


def exception_message(exc: BaseException) -> Optional[str]:
    message = str(exc)
    return message or None


def format_stack_trace(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def build_additional_data(snapshot: ExchangeSnapshot) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "queryString": snapshot.query_string or "",
        "contentType": snapshot.content_type or "",
        "contentLength": snapshot.content_length if snapshot.content_length is not None else -1,
    }
    if snapshot.protocol:
        data["protocol"] = snapshot.protocol
    if snapshot.scheme:
        data["scheme"] = snapshot.scheme
    if snapshot.server_name:
        data["serverName"] = snapshot.server_name
    if snapshot.server_port is not None:
        data["serverPort"] = snapshot.server_port
    if snapshot.exception is not None:
        data["exceptionClass"] = type(snapshot.exception).__name__
    return data


def _optional(field_name: str, extract: Callable[[], T]) -> Optional[T]:
    try:
        return extract()
    except Exception:
        logger.debug("Could not extract %s; leaving it empty", field_name, exc_info=True)
        return None

"""
Data records flowing through the capture pipeline.

``ExchangeSnapshot`` is what an integration hands to the service: a plain
copy of one request/response cycle taken while the request is still alive.
``HttpErrorEvent`` is the immutable, already-redacted record that publishers
serialize.  Its wire names (``applicationName``, ``statusCode``...) are read
by queue consumers and must stay stable.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .constants import TIMESTAMP_FORMAT

HeaderValue = Union[str, Sequence[str]]


def format_timestamp(ts: datetime) -> str:
    """Render *ts* as ``yyyy-MM-dd'T'HH:mm:ss.SSS`` in UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return f"{ts.strftime(TIMESTAMP_FORMAT)}.{ts.microsecond // 1000:03d}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Input snapshot ───────────────────────────────────────────────


@dataclass
class ExchangeSnapshot:
    """Raw view of one exchange, as seen by the hosting framework."""

    method: str
    path: str
    status_code: int
    request_headers: Mapping[str, HeaderValue] = field(default_factory=dict)
    response_headers: Mapping[str, HeaderValue] = field(default_factory=dict)
    request_body: Optional[str] = None
    response_body: Optional[str] = None
    exception: Optional[BaseException] = None
    duration_ms: Optional[int] = None
    remote_addr: Optional[str] = None
    query_string: Optional[str] = None
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    protocol: Optional[str] = None
    scheme: Optional[str] = None
    server_name: Optional[str] = None
    server_port: Optional[int] = None


# ── Event record ─────────────────────────────────────────────────


@dataclass(frozen=True)
class HttpErrorEvent:
    """A captured HTTP error exchange.

    Instances are never mutated: header and additional-data mappings are
    exposed as read-only views.  All redaction and truncation has already
    happened by the time one exists.
    """

    id: str
    application_name: str
    method: str
    path: str
    status_code: int
    user_agent: Optional[str] = None
    remote_address: Optional[str] = None
    request_headers: Mapping[str, str] = field(default_factory=dict)
    response_headers: Mapping[str, str] = field(default_factory=dict)
    request_body: Optional[str] = None
    response_body: Optional[str] = None
    duration: Optional[int] = None
    error_message: Optional[str] = None
    stack_trace: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)
    additional_data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("request_headers", "response_headers", "additional_data"):
            value = getattr(self, name)
            object.__setattr__(self, name, MappingProxyType(dict(value)))

    @property
    def formatted_timestamp(self) -> str:
        return format_timestamp(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Return the flat wire record."""
        return {
            "id": self.id,
            "applicationName": self.application_name,
            "method": self.method,
            "path": self.path,
            "statusCode": self.status_code,
            "userAgent": self.user_agent,
            "remoteAddress": self.remote_address,
            "requestHeaders": dict(self.request_headers),
            "responseHeaders": dict(self.response_headers),
            "requestBody": self.request_body,
            "responseBody": self.response_body,
            "duration": self.duration,
            "errorMessage": self.error_message,
            "stackTrace": self.stack_trace,
            "timestamp": self.formatted_timestamp,
            "additionalData": dict(self.additional_data),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, ensure_ascii=False)

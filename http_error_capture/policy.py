"""
Capture decision, header redaction and body truncation.

Pure functions with no I/O: the service calls ``should_capture`` on the
request thread before scheduling anything, and the event builder applies
``filter_headers`` / ``truncate_body`` exactly once per event.
"""

from typing import Dict, Mapping, Optional

from .config import HttpErrorCaptureSettings
from .constants import HEADER_VALUE_SEPARATOR, SENSITIVE_HEADERS, TRUNCATION_MARKER
from .model import HeaderValue


def should_capture(status_code: int, path: str, settings: HttpErrorCaptureSettings) -> bool:
    """Return ``True`` when an exchange with this status and path is recorded.

    Status codes match exactly against the configured set.  Excluded paths
    are plain case-insensitive prefixes, so ``/health`` also excludes
    ``/health2`` and ``/healthz``.
    """
    if not settings.enabled:
        return False
    if status_code not in settings.capture.status_codes:
        return False
    lowered = (path or "").lower()
    return not any(lowered.startswith(prefix.lower()) for prefix in settings.capture.exclude_paths)


def is_sensitive_header(name: str) -> bool:
    return name.lower() in SENSITIVE_HEADERS


def join_header_value(value: HeaderValue) -> str:
    """Collapse a multi-valued header into one ``", "``-separated string."""
    if isinstance(value, str):
        return value
    return HEADER_VALUE_SEPARATOR.join(str(v) for v in value)


def filter_headers(headers: Optional[Mapping[str, HeaderValue]], include: bool) -> Dict[str, str]:
    """Join multi-valued headers and drop credentials.

    Args:
        headers: Header name to a single value or a sequence of values.
        include: When ``False`` no headers are kept at all.

    Returns:
        A new dict with original key casing, minus denylisted names.
    """
    if not include or not headers:
        return {}
    joined = {name: join_header_value(value) for name, value in headers.items()}
    return {name: value for name, value in joined.items() if not is_sensitive_header(name)}


def truncate_body(body: Optional[str], max_size: int, include: bool) -> Optional[str]:
    """Cap *body* at *max_size* characters, appending the truncation marker.

    The marker is added on top of the budget, so a truncated result is
    ``max_size + len(TRUNCATION_MARKER)`` characters long.
    """
    if not include or body is None:
        return None
    if len(body) > max_size:
        return body[:max_size] + TRUNCATION_MARKER
    return body

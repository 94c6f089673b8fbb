"""
Secret scrubbing for pipeline log output.

Captured events have their credential headers removed when they are built,
but bodies, exception messages and boto errors still reach the logs
verbatim.  ``PiiScrubber`` is attached to every handler created by
``setup_structured_logger``; it rewrites the message and any ``error_event``
payload riding on the record before a line is emitted.
"""

import logging
import re
from typing import Any, List, Pattern, Tuple

_RULES: List[Tuple[Pattern, str]] = [
    (re.compile(r"((?:Bearer|Basic)\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), r"\1[REDACTED]"),
    # AWS access key ids and SigV4 query signatures (presigned queue URLs)
    (re.compile(r"\b(?:AKIA|ASIA)[A-Z0-9]{16}\b"), "[AWS_KEY_REDACTED]"),
    (re.compile(r"(X-Amz-(?:Signature|Credential|Security-Token)=)[^&\s]+", re.IGNORECASE),
     r"\1[REDACTED]"),
    (
        re.compile(
            r"(?i)(api[_-]?key|x-auth-token|token|secret|password|passwd|"
            r"aws_secret_access_key|aws_session_token)"
            r"(\"?\s*[:=]\s*)"
            r"(['\"]?)([^\s'\",}]{4,})\3"
        ),
        r"\1\2\3[REDACTED]\3",
    ),
    (re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+"), "[EMAIL_REDACTED]"),
]


def scrub_text(text: str) -> str:
    """Apply every redaction rule to *text*."""
    for pattern, replacement in _RULES:
        text = pattern.sub(replacement, text)
    return text


def scrub_value(value: Any) -> Any:
    """Recursively scrub strings inside dicts and lists; other values pass through."""
    if isinstance(value, str):
        return scrub_text(value)
    if isinstance(value, dict):
        return {k: scrub_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [scrub_value(v) for v in value]
    return value


class PiiScrubber(logging.Filter):
    """Logging filter that scrubs secrets from messages and event payloads."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.msg = scrub_text(record.getMessage())
        record.args = None

        event = getattr(record, "error_event", None)
        if event is not None:
            record.error_event = scrub_value(event)
        return True

"""
Event sinks.

``SqsErrorEventPublisher`` is the default; ``LoggingErrorEventPublisher`` is
selected when no queue is configured.  Any ``ErrorEventPublisher`` subclass
can be passed to the service instead.
"""

from .base import ErrorEventPublisher
from .logging_publisher import LoggingErrorEventPublisher
from .sqs_publisher import BatchFailure, BatchSendResult, SqsErrorEventPublisher

__all__ = [
    "ErrorEventPublisher",
    "SqsErrorEventPublisher",
    "LoggingErrorEventPublisher",
    "BatchSendResult",
    "BatchFailure",
]

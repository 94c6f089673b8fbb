"""
HTTP Error Capture - Record failing HTTP exchanges and ship them to a queue
"""

__version__ = "0.1.0"

from .bootstrap import create_capture_service, create_capture_service_from_file
from .config import HttpErrorCaptureSettings
from .model import ExchangeSnapshot, HttpErrorEvent
from .publishers import ErrorEventPublisher, LoggingErrorEventPublisher, SqsErrorEventPublisher
from .service import HttpErrorCaptureService

__all__ = [
    "HttpErrorCaptureService",
    "HttpErrorCaptureSettings",
    "ExchangeSnapshot",
    "HttpErrorEvent",
    "ErrorEventPublisher",
    "SqsErrorEventPublisher",
    "LoggingErrorEventPublisher",
    "create_capture_service",
    "create_capture_service_from_file",
]

"""
Startup wiring.

Picks the publisher from settings and assembles the service, so hosting
applications have one call to make.  Passing an explicit ``publisher``
overrides the selection entirely.
"""

import atexit
from typing import Optional

from .clients.sqs_client import create_sqs_client
from .config import HttpErrorCaptureSettings, load_settings
from .observability.logging import setup_structured_logger
from .publishers.base import ErrorEventPublisher
from .publishers.logging_publisher import LoggingErrorEventPublisher
from .publishers.sqs_publisher import SqsErrorEventPublisher
from .service import HttpErrorCaptureService

logger = setup_structured_logger("http_error_capture.bootstrap", "capture.log")


def create_publisher(settings: HttpErrorCaptureSettings) -> ErrorEventPublisher:
    """SQS when a queue URL is configured and enabled, log output otherwise."""
    if settings.sqs.enabled and settings.sqs.queue_url:
        client = create_sqs_client(settings.sqs)
        logger.info(
            "Publishing HTTP error events to SQS",
            extra={"queue_url": settings.sqs.queue_url},
        )
        return SqsErrorEventPublisher(client, settings.sqs)

    logger.info("No SQS queue configured; HTTP error events will be logged")
    return LoggingErrorEventPublisher()


def create_capture_service(
    settings: Optional[HttpErrorCaptureSettings] = None,
    *,
    publisher: Optional[ErrorEventPublisher] = None,
    register_shutdown: bool = True,
) -> HttpErrorCaptureService:
    """Assemble the service and, by default, drain it at interpreter exit.

    The ``atexit`` hook calls ``shutdown()``, which stops new captures and
    waits up to ``async.shutdown_timeout_seconds`` for queued work.
    """
    settings = settings or HttpErrorCaptureSettings()
    service = HttpErrorCaptureService(publisher or create_publisher(settings), settings)
    if register_shutdown:
        atexit.register(service.shutdown)
    return service


def create_capture_service_from_file(config_path: str) -> HttpErrorCaptureService:
    """Load ``config_path`` and build the service it describes.

    Raises:
        ConfigError: If the configuration is missing or invalid.
    """
    return create_capture_service(load_settings(config_path))

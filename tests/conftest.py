"""
Test fixtures and configuration for pytest
"""

from unittest.mock import MagicMock

import pytest

from http_error_capture.config import (
    AsyncSettings,
    CaptureSettings,
    HttpErrorCaptureSettings,
    SqsSettings,
)
from http_error_capture.model import ExchangeSnapshot, HttpErrorEvent
from http_error_capture.observability.metrics import MetricsCollector


@pytest.fixture(autouse=True)
def _fresh_metrics():
    """Every test starts with an empty metrics registry."""
    MetricsCollector.reset()
    yield
    MetricsCollector.reset()


@pytest.fixture
def settings():
    """Default settings with a dummy queue and a small dispatcher."""
    return HttpErrorCaptureSettings(
        enabled=True,
        application_name="test-app",
        capture=CaptureSettings(),
        sqs=SqsSettings(queue_url="https://sqs.us-east-1.amazonaws.com/123456789012/errors.fifo"),
        async_=AsyncSettings(pool_size=2, queue_capacity=50, shutdown_timeout_seconds=5.0),
    )


@pytest.fixture
def sqs_client():
    """A MagicMock standing in for a boto3 SQS client."""
    client = MagicMock()
    client.send_message.return_value = {"MessageId": "msg-1"}
    client.send_message_batch.side_effect = lambda QueueUrl, Entries: {
        "Successful": [{"Id": e["Id"], "MessageId": f"m-{e['Id']}"} for e in Entries],
        "Failed": [],
    }
    client.get_queue_attributes.return_value = {"Attributes": {"QueueArn": "arn:aws:sqs:x"}}
    return client


@pytest.fixture
def make_snapshot():
    """Factory for ExchangeSnapshot with sensible defaults."""

    def _make(**overrides):
        data = {
            "method": "POST",
            "path": "/api/users",
            "status_code": 500,
            "request_headers": {"Content-Type": "application/json", "User-Agent": "pytest"},
            "response_headers": {"Content-Type": "application/json"},
            "request_body": '{"name":"test"}',
            "response_body": '{"error":"Internal error"}',
            "duration_ms": 1500,
            "remote_addr": "127.0.0.1",
        }
        data.update(overrides)
        return ExchangeSnapshot(**data)

    return _make


@pytest.fixture
def make_event():
    """Factory for pre-built HttpErrorEvent instances."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "id": f"evt-{counter['n']}",
            "application_name": "test-app",
            "method": "GET",
            "path": f"/api/items/{counter['n']}",
            "status_code": 500,
        }
        data.update(overrides)
        return HttpErrorEvent(**data)

    return _make

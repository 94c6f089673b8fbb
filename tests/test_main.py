"""Tests for the CLI entry point and the startup wiring."""

import json
from unittest.mock import MagicMock, patch

import pytest

from http_error_capture.bootstrap import (
    create_capture_service,
    create_capture_service_from_file,
    create_publisher,
)
from http_error_capture.config import ConfigError, HttpErrorCaptureSettings, SqsSettings
from http_error_capture.main import main
from http_error_capture.publishers.logging_publisher import LoggingErrorEventPublisher
from http_error_capture.publishers.sqs_publisher import SqsErrorEventPublisher


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "http_error_capture": {
                    "application_name": "cli-app",
                    "sqs": {"queue_url": "https://sqs.us-east-1.amazonaws.com/1/errors.fifo"},
                }
            }
        )
    )
    return str(path)


# ── create_publisher ─────────────────────────────────────────────


class TestCreatePublisher:
    def test_sqs_when_queue_configured(self, sqs_client):
        settings = HttpErrorCaptureSettings(sqs=SqsSettings(queue_url="https://sqs/q"))
        target = "http_error_capture.bootstrap.create_sqs_client"
        with patch(target, return_value=sqs_client) as factory:
            publisher = create_publisher(settings)
        assert isinstance(publisher, SqsErrorEventPublisher)
        factory.assert_called_once_with(settings.sqs)

    def test_logging_without_queue(self):
        with patch("http_error_capture.bootstrap.create_sqs_client") as factory:
            publisher = create_publisher(HttpErrorCaptureSettings())
        assert isinstance(publisher, LoggingErrorEventPublisher)
        factory.assert_not_called()

    def test_logging_when_sqs_disabled(self):
        sqs = SqsSettings(queue_url="https://sqs/q", enabled=False)
        settings = HttpErrorCaptureSettings(sqs=sqs)
        assert isinstance(create_publisher(settings), LoggingErrorEventPublisher)


class TestCreateCaptureService:
    def test_explicit_publisher_wins(self):
        publisher = MagicMock()
        service = create_capture_service(publisher=publisher)
        try:
            assert service.publisher is publisher
            assert service.settings == HttpErrorCaptureSettings()
        finally:
            service.shutdown(timeout=1)

    def test_from_file(self, config_file, sqs_client):
        with patch("http_error_capture.bootstrap.create_sqs_client", return_value=sqs_client):
            service = create_capture_service_from_file(config_file)
        try:
            assert service.settings.application_name == "cli-app"
            assert isinstance(service.publisher, SqsErrorEventPublisher)
        finally:
            service.shutdown(timeout=1)

    def test_registers_shutdown_at_exit(self):
        publisher = MagicMock()
        with patch("http_error_capture.bootstrap.atexit.register") as register:
            service = create_capture_service(publisher=publisher)
        try:
            register.assert_called_once_with(service.shutdown)
        finally:
            service.shutdown(timeout=1)

    def test_shutdown_registration_can_be_skipped(self):
        with patch("http_error_capture.bootstrap.atexit.register") as register:
            service = create_capture_service(publisher=MagicMock(), register_shutdown=False)
        service.shutdown(timeout=1)
        register.assert_not_called()

    def test_from_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigError):
            create_capture_service_from_file(str(tmp_path / "missing.json"))


# ── CLI ──────────────────────────────────────────────────────────


class TestCli:
    def test_health_ok(self, config_file):
        publisher = MagicMock()
        publisher.health_check.return_value = True
        with patch("http_error_capture.main.create_publisher", return_value=publisher):
            assert main(["--config", config_file, "health"]) == 0

    def test_health_failing(self, config_file):
        publisher = MagicMock()
        publisher.health_check.return_value = False
        with patch("http_error_capture.main.create_publisher", return_value=publisher):
            assert main(["--config", config_file, "health"]) == 1

    def test_send_test_publishes_synthetic_event(self, config_file):
        publisher = MagicMock()
        with patch("http_error_capture.main.create_publisher", return_value=publisher):
            rc = main(["--config", config_file, "send-test", "--status", "503", "--method", "put"])

        assert rc == 0
        publisher.publish.assert_called_once()
        event = publisher.publish.call_args[0][0]
        assert event.status_code == 503
        assert event.method == "PUT"
        assert event.application_name == "cli-app"
        assert event.user_agent == "http-error-capture-cli"

    def test_config_error_exit_code(self, tmp_path):
        with patch("http_error_capture.main.create_publisher") as factory:
            assert main(["--config", str(tmp_path / "missing.json"), "health"]) == 2
        factory.assert_not_called()

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])

"""
Operator CLI for the capture pipeline.

    http-error-capture health --config config.json
    http-error-capture send-test --config config.json --status 500

``health`` exits 0 when the configured sink answers and 1 otherwise, so it
can back a container liveness probe.  ``send-test`` publishes one synthetic
event synchronously, bypassing the dispatcher, to verify delivery end to end.
"""

import argparse
import sys
from typing import List, Optional

from .bootstrap import create_publisher
from .builder import build_event
from .config import ConfigError, load_settings
from .model import ExchangeSnapshot
from .observability.logging import setup_structured_logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="http-error-capture", description="HTTP error capture pipeline tools"
    )
    parser.add_argument("--config", default="config.json", help="Path to config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("health", help="Check that the configured sink is reachable")

    send = sub.add_parser("send-test", help="Publish one synthetic error event")
    send.add_argument("--status", type=int, default=500, help="Status code of the test event")
    send.add_argument("--path", default="/http-error-capture/test", help="Request path")
    send.add_argument("--method", default="GET", help="Request method")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logger = setup_structured_logger("http_error_capture.cli", "cli.log", debug=args.debug)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    publisher = create_publisher(settings)

    if args.command == "health":
        healthy = publisher.health_check()
        state = "healthy" if healthy else "unhealthy"
        logger.info("Sink %s is %s", type(publisher).__name__, state)
        return 0 if healthy else 1

    snapshot = ExchangeSnapshot(
        method=args.method.upper(),
        path=args.path,
        status_code=args.status,
        request_headers={"User-Agent": "http-error-capture-cli"},
    )
    event = build_event(snapshot, settings)
    publisher.publish(event)
    logger.info("Test event %s handed to %s", event.id, type(publisher).__name__)
    return 0


if __name__ == "__main__":
    sys.exit(main())

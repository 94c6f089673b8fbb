"""External service clients."""

from .sqs_client import create_sqs_client

__all__ = ["create_sqs_client"]

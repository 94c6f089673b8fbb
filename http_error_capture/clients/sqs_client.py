"""Factory for the boto3 SQS client used by the default publisher."""

from typing import Any

from ..config import SqsSettings


def create_sqs_client(settings: SqsSettings) -> Any:
    """Build a boto3 SQS client for the configured region.

    Credentials come from the standard AWS provider chain (environment,
    shared config, instance role).  ``endpoint_url`` points the client at a
    local emulator such as ElasticMQ or LocalStack.
    """
    import boto3

    kwargs = {"region_name": settings.region}
    if settings.endpoint_url:
        kwargs["endpoint_url"] = settings.endpoint_url
    return boto3.client("sqs", **kwargs)

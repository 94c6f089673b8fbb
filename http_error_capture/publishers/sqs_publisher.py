"""
Amazon SQS publisher.

Each event is sent as one JSON message grouped by application name, with a
fresh deduplication id per send and message attributes that let consumers
route on status code or method without parsing the body.  Batches are split
into chunks of at most ``batch_size`` entries and the chunks are sent
concurrently; per-entry failures reported by SQS are logged, never retried.
"""

import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import SqsSettings
from ..constants import HEALTH_CHECK_ATTRIBUTE
from ..model import HttpErrorEvent
from ..observability.logging import setup_structured_logger
from ..observability.metrics import PUBLISH_FAILURES_TOTAL, PUBLISHED_TOTAL, MetricsCollector
from .base import ErrorEventPublisher

# Upper bound on threads used to send the chunks of one batch
_MAX_CHUNK_WORKERS = 4


# ── Batch result ─────────────────────────────────────────────────


@dataclass(frozen=True)
class BatchFailure:
    """One rejected entry of a ``SendMessageBatch`` call."""

    id: str
    code: str
    message: str = ""
    sender_fault: bool = False


@dataclass
class BatchSendResult:
    """Outcome of one chunk: accepted entry ids and rejected entries."""

    successful: List[str] = field(default_factory=list)
    failed: List[BatchFailure] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> "BatchSendResult":
        """Parse a boto3 ``send_message_batch`` response."""
        return cls(
            successful=[entry.get("Id", "") for entry in response.get("Successful", [])],
            failed=[
                BatchFailure(
                    id=entry.get("Id", ""),
                    code=entry.get("Code", ""),
                    message=entry.get("Message", ""),
                    sender_fault=bool(entry.get("SenderFault", False)),
                )
                for entry in response.get("Failed", [])
            ],
        )


def chunked(events: Sequence[HttpErrorEvent], size: int) -> List[List[HttpErrorEvent]]:
    """Split *events* into consecutive lists of at most *size* items."""
    size = max(1, size)
    return [list(events[i : i + size]) for i in range(0, len(events), size)]


# ── Publisher ────────────────────────────────────────────────────


class SqsErrorEventPublisher(ErrorEventPublisher):
    """Publish events to an SQS queue through a boto3 client.

    The client is shared across dispatcher threads; boto3 clients are
    thread-safe for concurrent calls.
    """

    def __init__(self, client: Any, settings: SqsSettings) -> None:
        """
        Args:
            client: A boto3 SQS client (or anything with the same methods).
            settings: Queue URL, batch size and enabled flag.
        """
        self.client = client
        self.settings = settings
        self.logger = setup_structured_logger("http_error_capture.sqs_publisher", "publisher.log")
        self._metrics = MetricsCollector()

    # ── ErrorEventPublisher ──────────────────────────────────────

    def publish(self, event: HttpErrorEvent) -> None:
        if not self.settings.enabled:
            self.logger.debug("SQS publishing is disabled")
            return

        try:
            response = self.client.send_message(
                QueueUrl=self.settings.queue_url,
                MessageBody=event.to_json(),
                MessageAttributes=build_message_attributes(event),
                MessageGroupId=event.application_name,
                MessageDeduplicationId=str(uuid.uuid4()),
            )
        except Exception:
            self._metrics.inc(PUBLISH_FAILURES_TOTAL, labels={"reason": "send_error"})
            self.logger.exception(
                "Failed to send error event %s to SQS",
                event.id,
                extra={"event_id": event.id, "queue_url": self.settings.queue_url},
            )
            return

        self._metrics.inc(PUBLISHED_TOTAL)
        self.logger.debug(
            "Error event %s sent to SQS",
            event.id,
            extra={"event_id": event.id, "message_id": (response or {}).get("MessageId")},
        )

    def publish_batch(self, events: Sequence[HttpErrorEvent]) -> None:
        if not self.settings.enabled or not events:
            self.logger.debug("SQS publishing is disabled or no events to send")
            return

        chunks = chunked(events, self.settings.batch_size)
        try:
            with ThreadPoolExecutor(
                max_workers=min(len(chunks), _MAX_CHUNK_WORKERS),
                thread_name_prefix="sqs-batch-",
            ) as pool:
                # send_chunk swallows its own errors; list() waits for all
                list(pool.map(self.send_chunk, chunks))
        except Exception:
            self.logger.exception(
                "Failed to send batch of %d error events to SQS",
                len(events),
                extra={"batch_size": len(events)},
            )

    def health_check(self) -> bool:
        try:
            self.client.get_queue_attributes(
                QueueUrl=self.settings.queue_url,
                AttributeNames=[HEALTH_CHECK_ATTRIBUTE],
            )
            return True
        except Exception as exc:
            self.logger.warning(
                "SQS health check failed: %s", exc, extra={"queue_url": self.settings.queue_url}
            )
            return False

    # ── Chunk sending ────────────────────────────────────────────

    def send_chunk(self, events: List[HttpErrorEvent]) -> BatchSendResult:
        """Send one chunk with ``SendMessageBatch``.

        Entry ids are the positions within the chunk, so failures can be
        mapped back to events.  Never raises.
        """
        try:
            entries = [
                {
                    "Id": str(index),
                    "MessageBody": event.to_json(),
                    "MessageAttributes": build_message_attributes(event),
                    "MessageGroupId": event.application_name,
                    "MessageDeduplicationId": str(uuid.uuid4()),
                }
                for index, event in enumerate(events)
            ]
            response = self.client.send_message_batch(
                QueueUrl=self.settings.queue_url,
                Entries=entries,
            )
        except Exception:
            self._metrics.inc(
                PUBLISH_FAILURES_TOTAL, len(events), labels={"reason": "batch_send_error"}
            )
            self.logger.exception(
                "Failed to send chunk of %d error events to SQS",
                len(events),
                extra={"batch_size": len(events), "queue_url": self.settings.queue_url},
            )
            return BatchSendResult(
                failed=[BatchFailure(id=str(i), code="TransportError") for i in range(len(events))]
            )

        result = BatchSendResult.from_response(response or {})
        if result.successful:
            self._metrics.inc(PUBLISHED_TOTAL, len(result.successful))

        if result.has_failures:
            self._metrics.inc(
                PUBLISH_FAILURES_TOTAL, len(result.failed), labels={"reason": "partial_batch"}
            )
            self.logger.warning(
                "Some messages failed to send. Failed count: %d",
                len(result.failed),
                extra={"failed_count": len(result.failed)},
            )
            for failure in result.failed:
                event_id = _event_id_for(events, failure.id)
                self.logger.warning(
                    "Failed message - Id: %s, Code: %s, Message: %s",
                    failure.id,
                    failure.code,
                    failure.message,
                    extra={"event_id": event_id, "error_code": failure.code},
                )

        self.logger.debug(
            "Batch sent to SQS. Successful: %d, Failed: %d",
            len(result.successful),
            len(result.failed),
            extra={
                "successful_count": len(result.successful),
                "failed_count": len(result.failed),
            },
        )
        return result


def build_message_attributes(event: HttpErrorEvent) -> Dict[str, Dict[str, str]]:
    """SQS message attributes used for routing without reading the body."""
    return {
        "ApplicationName": {"DataType": "String", "StringValue": event.application_name},
        "StatusCode": {"DataType": "Number", "StringValue": str(event.status_code)},
        "Method": {"DataType": "String", "StringValue": event.method},
        "Timestamp": {"DataType": "String", "StringValue": event.formatted_timestamp},
    }


def _event_id_for(events: List[HttpErrorEvent], entry_id: str) -> Optional[str]:
    try:
        return events[int(entry_id)].id
    except (ValueError, IndexError):
        return None

"""Tests for SqsErrorEventPublisher — single sends, chunked batches, partial failures, health."""

import json
import threading

import pytest

from http_error_capture.config import SqsSettings
from http_error_capture.observability.metrics import (
    PUBLISH_FAILURES_TOTAL,
    PUBLISHED_TOTAL,
    MetricsCollector,
)
from http_error_capture.publishers.sqs_publisher import (
    BatchSendResult,
    SqsErrorEventPublisher,
    build_message_attributes,
    chunked,
)

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/errors.fifo"


@pytest.fixture
def publisher(sqs_client):
    return SqsErrorEventPublisher(sqs_client, SqsSettings(queue_url=QUEUE_URL, batch_size=10))


# ── publish ──────────────────────────────────────────────────────


class TestPublish:
    def test_sends_one_message(self, publisher, sqs_client, make_event):
        event = make_event(status_code=503, method="PUT")
        publisher.publish(event)

        sqs_client.send_message.assert_called_once()
        kwargs = sqs_client.send_message.call_args.kwargs
        assert kwargs["QueueUrl"] == QUEUE_URL
        assert json.loads(kwargs["MessageBody"])["id"] == event.id
        assert kwargs["MessageGroupId"] == "test-app"
        assert kwargs["MessageDeduplicationId"]
        attrs = kwargs["MessageAttributes"]
        assert attrs["StatusCode"] == {"DataType": "Number", "StringValue": "503"}
        assert attrs["Method"] == {"DataType": "String", "StringValue": "PUT"}
        assert attrs["ApplicationName"]["StringValue"] == "test-app"
        assert attrs["Timestamp"]["StringValue"] == event.formatted_timestamp
        assert MetricsCollector().counter_value(PUBLISHED_TOTAL) == 1

    def test_fresh_dedup_id_per_send(self, publisher, sqs_client, make_event):
        event = make_event()
        publisher.publish(event)
        publisher.publish(event)
        ids = [c.kwargs["MessageDeduplicationId"] for c in sqs_client.send_message.call_args_list]
        assert len(set(ids)) == 2

    def test_disabled_is_noop(self, sqs_client, make_event):
        settings = SqsSettings(queue_url=QUEUE_URL, enabled=False)
        publisher = SqsErrorEventPublisher(sqs_client, settings)
        publisher.publish(make_event())
        publisher.publish_batch([make_event()])
        sqs_client.send_message.assert_not_called()
        sqs_client.send_message_batch.assert_not_called()

    def test_send_error_swallowed(self, publisher, sqs_client, make_event):
        sqs_client.send_message.side_effect = RuntimeError("network down")
        publisher.publish(make_event())
        assert (
            MetricsCollector().counter_value(PUBLISH_FAILURES_TOTAL, labels={"reason": "send_error"})
            == 1
        )


# ── publish_batch ────────────────────────────────────────────────


class TestPublishBatch:
    def test_25_events_in_chunks_of_10(self, publisher, sqs_client, make_event):
        events = [make_event() for _ in range(25)]
        publisher.publish_batch(events)

        assert sqs_client.send_message_batch.call_count == 3
        calls = sqs_client.send_message_batch.call_args_list
        sizes = sorted(len(c.kwargs["Entries"]) for c in calls)
        assert sizes == [5, 10, 10]

        sent_ids = {
            json.loads(entry["MessageBody"])["id"]
            for c in sqs_client.send_message_batch.call_args_list
            for entry in c.kwargs["Entries"]
        }
        assert sent_ids == {e.id for e in events}
        assert MetricsCollector().counter_value(PUBLISHED_TOTAL) == 25

    def test_entries_carry_group_dedup_and_attributes(self, publisher, sqs_client, make_event):
        publisher.publish_batch([make_event(), make_event()])
        entries = sqs_client.send_message_batch.call_args.kwargs["Entries"]
        assert [e["Id"] for e in entries] == ["0", "1"]
        assert all(e["MessageGroupId"] == "test-app" for e in entries)
        assert len({e["MessageDeduplicationId"] for e in entries}) == 2
        assert all("StatusCode" in e["MessageAttributes"] for e in entries)

    def test_custom_chunk_size(self, sqs_client, make_event):
        settings = SqsSettings(queue_url=QUEUE_URL, batch_size=3)
        publisher = SqsErrorEventPublisher(sqs_client, settings)
        publisher.publish_batch([make_event() for _ in range(7)])
        calls = sqs_client.send_message_batch.call_args_list
        sizes = sorted(len(c.kwargs["Entries"]) for c in calls)
        assert sizes == [1, 3, 3]

    def test_empty_batch_is_noop(self, publisher, sqs_client):
        publisher.publish_batch([])
        sqs_client.send_message_batch.assert_not_called()

    def test_partial_failure_does_not_raise(self, publisher, sqs_client, make_event):
        sqs_client.send_message_batch.side_effect = None
        sqs_client.send_message_batch.return_value = {
            "Successful": [{"Id": "0", "MessageId": "m-0"}],
            "Failed": [
                {"Id": "1", "SenderFault": False, "Code": "InternalError", "Message": "try later"}
            ],
        }
        publisher.publish_batch([make_event(), make_event()])

        sqs_client.send_message_batch.assert_called_once()
        mc = MetricsCollector()
        assert mc.counter_value(PUBLISHED_TOTAL) == 1
        assert mc.counter_value(PUBLISH_FAILURES_TOTAL, labels={"reason": "partial_batch"}) == 1

    def test_partial_failure_does_not_block_other_chunks(self, publisher, sqs_client, make_event):
        calls = []
        lock = threading.Lock()

        def respond(QueueUrl, Entries):
            with lock:
                calls.append(len(Entries))
            return {
                "Successful": [{"Id": e["Id"]} for e in Entries[1:]],
                "Failed": [{"Id": Entries[0]["Id"], "Code": "Throttled", "Message": "slow down"}],
            }

        sqs_client.send_message_batch.side_effect = respond
        publisher.publish_batch([make_event() for _ in range(25)])
        assert sorted(calls) == [5, 10, 10]

    def test_transport_error_in_one_chunk_does_not_stop_others(
        self, publisher, sqs_client, make_event
    ):
        sent = []
        lock = threading.Lock()

        def respond(QueueUrl, Entries):
            with lock:
                sent.append(len(Entries))
                first = len(sent) == 1
            if first:
                raise ConnectionError("reset by peer")
            return {"Successful": [{"Id": e["Id"]} for e in Entries], "Failed": []}

        sqs_client.send_message_batch.side_effect = respond
        publisher.publish_batch([make_event() for _ in range(25)])

        assert len(sent) == 3
        assert (
            MetricsCollector().counter_value(
                PUBLISH_FAILURES_TOTAL, labels={"reason": "batch_send_error"}
            )
            > 0
        )

    def test_send_chunk_returns_result(self, publisher, sqs_client, make_event):
        result = publisher.send_chunk([make_event(), make_event()])
        assert isinstance(result, BatchSendResult)
        assert result.successful == ["0", "1"]
        assert not result.has_failures


# ── health_check ─────────────────────────────────────────────────


class TestHealthCheck:
    def test_healthy(self, publisher, sqs_client):
        assert publisher.health_check() is True
        sqs_client.get_queue_attributes.assert_called_once_with(
            QueueUrl=QUEUE_URL, AttributeNames=["QueueArn"]
        )

    def test_unhealthy_on_error(self, publisher, sqs_client):
        sqs_client.get_queue_attributes.side_effect = RuntimeError("AccessDenied")
        assert publisher.health_check() is False


# ── helpers ──────────────────────────────────────────────────────


class TestHelpers:
    def test_chunked(self):
        items = list(range(25))
        assert [len(c) for c in chunked(items, 10)] == [10, 10, 5]
        assert chunked([], 10) == []

    def test_batch_result_from_response(self):
        result = BatchSendResult.from_response(
            {
                "Successful": [{"Id": "0"}, {"Id": "2"}],
                "Failed": [{"Id": "1", "Code": "X", "Message": "bad", "SenderFault": True}],
            }
        )
        assert result.successful == ["0", "2"]
        assert result.failed[0].id == "1"
        assert result.failed[0].code == "X"
        assert result.failed[0].sender_fault is True

    def test_batch_result_empty_response(self):
        result = BatchSendResult.from_response({})
        assert result.successful == []
        assert result.failed == []

    def test_message_attributes(self, make_event):
        attrs = build_message_attributes(make_event(status_code=404, method="DELETE"))
        assert set(attrs) == {"ApplicationName", "StatusCode", "Method", "Timestamp"}
        assert attrs["StatusCode"]["DataType"] == "Number"

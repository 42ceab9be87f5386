"""
Sender side of the pipeline.

A submit records the message in the activity log and then publishes it.
The two steps are not transactional: a publish failure after a
successful insert leaves a sent record for a message that never reached
the queue. That gap is surfaced to the caller as PublishError.
"""

import logging
from datetime import UTC, datetime

from pipeline.constants import SPAN_SUBMIT_MESSAGE
from pipeline.db.repository import ActivityLog
from pipeline.exceptions import EmptyPayloadError
from pipeline.identity import InstanceIdentity
from pipeline.messaging.channel import QueueChannel
from pipeline.observability.metrics import get_metrics
from pipeline.observability.tracing import get_tracer
from pipeline.status import StatusTracker
from pipeline.types.activity import ActivityRecord

logger = logging.getLogger(__name__)


def normalize_payload(payload: str | None) -> str:
    """
    Trim surrounding whitespace and reject empty payloads.

    Raises:
        EmptyPayloadError: If nothing is left after trimming.
    """
    text = (payload or "").strip()
    if not text:
        raise EmptyPayloadError("Message must not be empty")
    return text


class Producer:
    """Persists and publishes submitted messages."""

    def __init__(
        self,
        channel: QueueChannel,
        activity_log: ActivityLog,
        identity: InstanceIdentity,
        status: StatusTracker,
    ):
        self._channel = channel
        self._activity_log = activity_log
        self._identity = identity
        self._status = status
        self._metrics = get_metrics()

    async def submit(self, payload: str) -> ActivityRecord:
        """
        Record and publish one message.

        Steps run strictly in order: insert the sent record, bump the
        instance counters, publish the raw payload as a persistent message.
        Nothing is retried here.

        Args:
            payload: Message text. Surrounding whitespace is dropped.

        Returns:
            The stored sent record.

        Raises:
            EmptyPayloadError: Before any I/O if the payload is blank.
            PersistenceError: If the insert fails. Nothing is published.
            PublishError: If publishing fails after the insert succeeded.
        """
        message = normalize_payload(payload)

        with get_tracer().start_as_current_span(SPAN_SUBMIT_MESSAGE) as span:
            span.set_attribute("instance", self._identity.name)

            now = datetime.now(UTC)
            record = await self._activity_log.append(message, self._identity, at=now)
            self._status.increment(now)

            await self._channel.publish(message.encode("utf-8"))
            span.set_attribute("record_id", record.id)

        self._metrics.record_message_submitted(self._identity.name)
        logger.info(
            "Message submitted",
            extra={"record_id": record.id, "queue": self._channel.queue_name},
        )
        return record

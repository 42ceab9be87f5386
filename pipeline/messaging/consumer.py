"""
Receiver side of the pipeline.

Each delivery is processed in its own task so a long simulated job never
holds up intake of the next one. Completion, and therefore ack order,
follows the simulated timers rather than delivery order.
"""

import asyncio
import logging
import random
import time
from datetime import UTC, datetime
from typing import Protocol

from pipeline.constants import SIMULATED_FAILURE_MESSAGE, SPAN_PROCESS_DELIVERY, DeliveryState
from pipeline.db.repository import ActivityLog
from pipeline.exceptions import SimulatedFailure
from pipeline.identity import InstanceIdentity
from pipeline.messaging.channel import QueueChannel
from pipeline.messaging.delivery import Delivery
from pipeline.observability.metrics import get_metrics
from pipeline.observability.tracing import get_tracer
from pipeline.status import StatusTracker

logger = logging.getLogger(__name__)


class FailureOracle(Protocol):
    """Decides whether a processing attempt is deemed failed."""

    def should_fail(self) -> bool: ...


class DurationSampler(Protocol):
    """Draws a simulated processing time in milliseconds."""

    def sample(self) -> int: ...


class RandomFailureOracle:
    """
    Fails one attempt in ``chance`` on average.

    A chance of 1 fails every attempt; zero or negative never fails.
    """

    def __init__(self, chance: int, rng: random.Random | None = None):
        self.chance = chance
        self._rng = rng or random.Random()

    def should_fail(self) -> bool:
        if self.chance <= 0:
            return False
        return self._rng.randrange(self.chance) == self.chance - 1


class ProcessingTimeSampler:
    """Uniform integer milliseconds in ``[0, maximum_ms)``."""

    def __init__(self, maximum_ms: int, rng: random.Random | None = None):
        self.maximum_ms = maximum_ms
        self._rng = rng or random.Random()

    def sample(self) -> int:
        if self.maximum_ms <= 0:
            return 0
        return self._rng.randrange(self.maximum_ms)


class Consumer:
    """
    Manual-ack consumer with simulated latency and injected failures.

    Per delivery: draw a duration, draw an outcome, wait, then either
    persist and ack, or reject. Errors never escape a delivery task.
    There is no timeout: a delivery stays unacknowledged until its
    simulated wait has elapsed, however long that is.
    """

    def __init__(
        self,
        channel: QueueChannel,
        activity_log: ActivityLog,
        identity: InstanceIdentity,
        status: StatusTracker,
        failure_oracle: FailureOracle,
        duration_sampler: DurationSampler,
        reject_requeue: bool = False,
    ):
        self._channel = channel
        self._activity_log = activity_log
        self._identity = identity
        self._status = status
        self._failure_oracle = failure_oracle
        self._duration_sampler = duration_sampler
        self._reject_requeue = reject_requeue

        self._consumer_tag: str | None = None
        self._in_flight: set[asyncio.Task] = set()
        self._metrics = get_metrics()

    @property
    def consumer_tag(self) -> str | None:
        return self._consumer_tag

    @property
    def in_flight(self) -> int:
        """Deliveries received but not yet settled."""
        return len(self._in_flight)

    async def start(self) -> None:
        """Subscribe to the queue. Only one subscription per consumer."""
        if self._consumer_tag is not None:
            raise RuntimeError("Consumer is already subscribed")

        self._consumer_tag = await self._channel.subscribe(self.on_delivery)
        logger.info(
            "Consumer started",
            extra={"queue": self._channel.queue_name, "instance": self._identity.name},
        )

    async def on_delivery(self, delivery: Delivery) -> None:
        """Subscription callback: schedule processing and return at once."""
        task = asyncio.create_task(self.process(delivery))
        self._in_flight.add(task)
        task.add_done_callback(self._task_done)
        self._metrics.set_in_flight(self._identity.name, len(self._in_flight))

    def _task_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        self._metrics.set_in_flight(self._identity.name, len(self._in_flight))

    async def drain(self) -> None:
        """Wait until every in-flight delivery has been settled."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def stop(self, timeout: float) -> int:
        """
        Drain in-flight deliveries, cancelling whatever is left after ``timeout``.

        A cancelled delivery is neither acked nor rejected, so the broker
        redelivers it once the channel closes.

        Returns:
            The number of deliveries cancelled.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        pending = [task for task in self._in_flight if not task.done()]
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.wait(pending, timeout=remaining)
            pending = [task for task in self._in_flight if not task.done()]

        if not pending:
            return 0

        logger.warning(
            "Drain timed out, cancelling deliveries",
            extra={"in_flight": len(pending), "timeout_seconds": timeout},
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)

    async def process(self, delivery: Delivery) -> DeliveryState:
        """
        Run one delivery to a terminal state.

        Args:
            delivery: The delivery to handle.

        Returns:
            ACKED or REJECTED.
        """
        duration_ms = self._duration_sampler.sample()
        should_fail = self._failure_oracle.should_fail()
        payload = delivery.payload

        logger.debug(
            "Received queue task. Assigned processing time",
            extra={"delivery_tag": delivery.delivery_tag, "processing_ms": duration_ms},
        )

        delivery.begin_processing()
        start = time.monotonic()

        with get_tracer().start_as_current_span(SPAN_PROCESS_DELIVERY) as span:
            span.set_attribute("delivery_tag", str(delivery.delivery_tag))
            span.set_attribute("processing_ms", duration_ms)

            try:
                await asyncio.sleep(duration_ms / 1000)

                if should_fail:
                    raise SimulatedFailure(SIMULATED_FAILURE_MESSAGE)

                elapsed_ms = int((time.monotonic() - start) * 1000)
                now = datetime.now(UTC)
                await self._activity_log.append(
                    payload,
                    self._identity,
                    at=now,
                    time_taken=elapsed_ms,
                )
                self._status.increment(now)
                delivery.mark_persisted()

            except Exception as e:
                span.set_attribute("outcome", "rejected")
                logger.error(
                    f"Failed to handle new message due to error {e}",
                    extra={"delivery_tag": delivery.delivery_tag, "error": str(e)},
                )
                await self._reject(delivery)
                self._metrics.record_delivery(
                    self._identity.name, "rejected", time.monotonic() - start
                )
                return delivery.state

            span.set_attribute("outcome", "acked")
            await self._ack(delivery)

        elapsed = time.monotonic() - start
        self._metrics.record_delivery(self._identity.name, "acked", elapsed)
        logger.debug(
            "Message processing complete",
            extra={"delivery_tag": delivery.delivery_tag, "elapsed_ms": int(elapsed * 1000)},
        )
        return delivery.state

    async def _ack(self, delivery: Delivery) -> None:
        try:
            await delivery.ack()
        except Exception:
            # Broker redelivers after the channel drops
            logger.exception("Failed to ack delivery", extra={"delivery_tag": delivery.delivery_tag})

    async def _reject(self, delivery: Delivery) -> None:
        try:
            await delivery.reject(requeue=self._reject_requeue)
        except Exception:
            logger.exception("Failed to reject delivery", extra={"delivery_tag": delivery.delivery_tag})

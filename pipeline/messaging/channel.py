"""
Durable queue channel backed by aio-pika.

Wraps the handful of broker operations the pipeline needs: declare a
durable queue, publish persistent messages, and subscribe with manual
acknowledgment.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

import aio_pika
from aio_pika.abc import (
    AbstractChannel,
    AbstractIncomingMessage,
    AbstractQueue,
    AbstractRobustConnection,
)

from pipeline.constants import DEPENDENCY_QUEUE
from pipeline.exceptions import ConnectError, PublishError
from pipeline.messaging.delivery import Delivery

logger = logging.getLogger(__name__)

DeliveryCallback = Callable[[Delivery], Awaitable[None]]


class QueueChannel(Protocol):
    """Operations the producer and consumer use on the shared queue."""

    queue_name: str

    async def publish(self, body: bytes) -> None: ...

    async def subscribe(self, callback: DeliveryCallback) -> str: ...

    async def close(self) -> None: ...


class AmqpQueueChannel:
    """
    One connection, one channel, one durable queue.

    No prefetch limit is set, so the broker may push any number of
    unacknowledged deliveries to the consumer.
    """

    def __init__(
        self,
        connection: AbstractRobustConnection,
        channel: AbstractChannel,
        queue: AbstractQueue,
    ):
        self._connection = connection
        self._channel = channel
        self._queue = queue
        self.queue_name = queue.name

    async def publish(self, body: bytes) -> None:
        """
        Publish ``body`` to the queue as a persistent message.

        The channel has publisher confirms off, so this returns once the
        frame is written, not when the broker has stored the message.

        Raises:
            PublishError: If the channel is closed or the write fails.
        """
        message = aio_pika.Message(
            body=body,
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        try:
            await self._channel.default_exchange.publish(message, routing_key=self.queue_name)
        except Exception as e:
            raise PublishError(f"Failed to publish to {self.queue_name}: {e}") from e

    async def subscribe(self, callback: DeliveryCallback) -> str:
        """
        Start consuming with manual acknowledgment.

        Args:
            callback: Receives each delivery. Responsible for acking or
                rejecting it.

        Returns:
            The broker consumer tag.
        """

        async def on_message(message: AbstractIncomingMessage) -> None:
            await callback(Delivery(message.body, message, delivery_tag=message.delivery_tag))

        consumer_tag = await self._queue.consume(on_message, no_ack=False)
        logger.info(
            "Subscribed to queue",
            extra={"queue": self.queue_name, "consumer_tag": consumer_tag},
        )
        return consumer_tag

    async def close(self) -> None:
        if not self._connection.is_closed:
            await self._connection.close()
            logger.info("Queue connection closed", extra={"queue": self.queue_name})


async def open_queue_channel(url: str, queue_name: str) -> AmqpQueueChannel:
    """
    Connect to the broker and declare the durable queue.

    Raises:
        ConnectError: If any step fails. A half-open connection is closed.
    """
    connection: AbstractRobustConnection | None = None
    try:
        connection = await aio_pika.connect_robust(url)
        channel = await connection.channel(publisher_confirms=False)
        queue = await channel.declare_queue(queue_name, durable=True)
    except Exception as e:
        if connection is not None and not connection.is_closed:
            await connection.close()
        raise ConnectError(DEPENDENCY_QUEUE, str(e)) from e

    return AmqpQueueChannel(connection, channel, queue)

"""
Messaging module.
Contains the queue channel, delivery state machine, producer and consumer.
"""

from pipeline.messaging.channel import AmqpQueueChannel, QueueChannel, open_queue_channel
from pipeline.messaging.consumer import (
    Consumer,
    FailureOracle,
    ProcessingTimeSampler,
    RandomFailureOracle,
)
from pipeline.messaging.delivery import Delivery, DeliveryHandle
from pipeline.messaging.producer import Producer, normalize_payload

__all__ = [
    "QueueChannel",
    "AmqpQueueChannel",
    "open_queue_channel",
    "Delivery",
    "DeliveryHandle",
    "Producer",
    "normalize_payload",
    "Consumer",
    "FailureOracle",
    "RandomFailureOracle",
    "ProcessingTimeSampler",
]

"""
Queue delivery with an explicit acknowledgment state machine.
"""

import logging
from typing import Protocol

from pipeline.constants import DELIVERY_TRANSITIONS, DeliveryState
from pipeline.exceptions import InvalidDeliveryTransition

logger = logging.getLogger(__name__)


class DeliveryHandle(Protocol):
    """
    Broker-side token for one delivery.

    aio-pika's ``AbstractIncomingMessage`` satisfies this protocol.
    """

    async def ack(self, multiple: bool = False) -> None: ...

    async def reject(self, requeue: bool = False) -> None: ...


class Delivery:
    """
    A payload handed to the consumer together with its broker handle.

    Every delivery ends in exactly one of ACKED or REJECTED. The state is
    moved before the broker is told, so a failing ack can never be
    followed by a reject of the same delivery.
    """

    def __init__(self, body: bytes, handle: DeliveryHandle, delivery_tag: int | None = None):
        self.body = body
        self.handle = handle
        self.delivery_tag = delivery_tag
        self._state = DeliveryState.DELIVERED

    @property
    def payload(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def state(self) -> DeliveryState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not DELIVERY_TRANSITIONS[self._state]

    def _transition(self, target: DeliveryState) -> None:
        if target not in DELIVERY_TRANSITIONS[self._state]:
            raise InvalidDeliveryTransition(self._state.value, target.value)
        self._state = target

    def begin_processing(self) -> None:
        self._transition(DeliveryState.PROCESSING)

    def mark_persisted(self) -> None:
        self._transition(DeliveryState.PERSISTED)

    async def ack(self) -> None:
        """Acknowledge the delivery. Only valid once its record is persisted."""
        self._transition(DeliveryState.ACKED)
        await self.handle.ack()

    async def reject(self, requeue: bool = False) -> None:
        """
        Reject the delivery.

        Args:
            requeue: Ask the broker to requeue it. With False the broker's
                own policy decides (dead-lettering, if configured).
        """
        self._transition(DeliveryState.REJECTED)
        await self.handle.reject(requeue=requeue)

    def __repr__(self) -> str:
        return f"Delivery(tag={self.delivery_tag}, state={self._state}, size={len(self.body)})"

"""
Startup connections to the durable queue and the session store.

Each dependency is retried forever at a fixed interval. Both are
attempted concurrently and startup waits until both are up; one
dependency failing never cancels or delays the other's attempts.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from redis.asyncio import Redis

from pipeline.config import Settings
from pipeline.constants import (
    DEPENDENCY_QUEUE,
    DEPENDENCY_SESSION_STORE,
    SPAN_BOOTSTRAP_DEPENDENCY,
)
from pipeline.exceptions import ConnectError
from pipeline.messaging.channel import QueueChannel, open_queue_channel
from pipeline.observability.metrics import get_metrics
from pipeline.observability.tracing import get_tracer

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Dependencies:
    """Process-wide handles created once at startup."""

    queue: QueueChannel
    store: Redis

    async def close(self) -> None:
        await self.queue.close()
        await self.store.aclose()


async def retry_forever(
    dependency: str,
    connect: Callable[[], Awaitable[T]],
    delay_seconds: float,
) -> T:
    """
    Call ``connect`` until it succeeds.

    Only ConnectError is retried; anything else is a bug and propagates.

    Args:
        dependency: Name used in logs and metrics.
        connect: Coroutine factory performing one attempt.
        delay_seconds: Fixed pause between attempts.

    Returns:
        Whatever ``connect`` returned on its first success.
    """
    metrics = get_metrics()
    attempt = 0

    with get_tracer().start_as_current_span(SPAN_BOOTSTRAP_DEPENDENCY) as span:
        span.set_attribute("dependency", dependency)

        while True:
            attempt += 1
            logger.debug(
                f"Trying to connect to {dependency}...",
                extra={"dependency": dependency, "attempt": attempt},
            )
            try:
                handle = await connect()
            except ConnectError as e:
                metrics.record_bootstrap_attempt(dependency, success=False)
                logger.warning(
                    f"Failed to connect to {dependency}. Retrying in {int(delay_seconds * 1000)} ms...",
                    extra={"dependency": dependency, "attempt": attempt, "error": e.reason},
                )
                await asyncio.sleep(delay_seconds)
                continue

            metrics.record_bootstrap_attempt(dependency, success=True)
            span.set_attribute("attempts", attempt)
            logger.info(
                f"Connection to {dependency} success!",
                extra={"dependency": dependency, "attempt": attempt},
            )
            return handle


async def connect_queue(settings: Settings) -> QueueChannel:
    """One attempt at opening the queue channel and declaring the durable queue."""
    return await open_queue_channel(settings.queue_url, settings.queue_name)


async def connect_store(settings: Settings) -> Redis:
    """
    One attempt at reaching the session store.

    Raises:
        ConnectError: If the URL cannot be parsed or the store does not answer PING.
    """
    client: Redis | None = None
    try:
        client = Redis.from_url(settings.session_store_url, decode_responses=True)
        await client.ping()
    except Exception as e:
        if client is not None:
            await client.aclose()
        raise ConnectError(DEPENDENCY_SESSION_STORE, str(e)) from e
    return client


async def bootstrap_dependencies(
    settings: Settings,
    queue_connector: Callable[[Settings], Awaitable[QueueChannel]] = connect_queue,
    store_connector: Callable[[Settings], Awaitable[Redis]] = connect_store,
) -> Dependencies:
    """
    Bring up both dependencies concurrently and wait for both.

    Never raises ConnectError; it only returns once everything is up.

    Args:
        settings: Application settings.
        queue_connector: Single-attempt queue connect.
        store_connector: Single-attempt store connect.

    Returns:
        Dependencies holding the live handles.
    """
    delay = settings.connect_retry_delay_seconds
    queue, store = await asyncio.gather(
        retry_forever(DEPENDENCY_QUEUE, lambda: queue_connector(settings), delay),
        retry_forever(DEPENDENCY_SESSION_STORE, lambda: store_connector(settings), delay),
    )
    return Dependencies(queue=queue, store=store)

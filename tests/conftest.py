"""
Pytest configuration and shared fixtures.

Broker and session store are replaced by in-memory fakes; the activity
log runs on a throwaway SQLite database through aiosqlite.
"""

import fnmatch
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pipeline.api.main import create_app
from pipeline.bootstrap import Dependencies
from pipeline.config import Settings
from pipeline.constants import ServiceRole
from pipeline.db.connection import create_schema, create_session_factory
from pipeline.db.repository import ActivityLog
from pipeline.exceptions import PublishError
from pipeline.identity import InstanceIdentity
from pipeline.messaging.consumer import Consumer
from pipeline.messaging.delivery import Delivery
from pipeline.messaging.producer import Producer
from pipeline.runtime import ServiceRuntime
from pipeline.status import StatusTracker


class FakeHandle:
    """Broker delivery handle that records how it was settled."""

    def __init__(self, tag: int, events: list[tuple[int, str]], fail_ack: bool = False):
        self.tag = tag
        self.events = events
        self.fail_ack = fail_ack
        self.acked = 0
        self.rejected: list[bool] = []

    async def ack(self, multiple: bool = False) -> None:
        self.acked += 1
        self.events.append((self.tag, "ack"))
        if self.fail_ack:
            raise ConnectionError("channel closed")

    async def reject(self, requeue: bool = False) -> None:
        self.rejected.append(requeue)
        self.events.append((self.tag, "reject"))


class InMemoryQueueChannel:
    """
    Queue channel that hands published bodies straight to the subscriber.

    Without a subscriber, published bodies are only recorded.
    """

    def __init__(self, queue_name: str = "test-messages"):
        self.queue_name = queue_name
        self.published: list[bytes] = []
        self.events: list[tuple[int, str]] = []
        self.handles: dict[int, FakeHandle] = {}
        self.fail_publish = False
        self.closed = False
        self._callback = None
        self._next_tag = 0

    async def publish(self, body: bytes) -> None:
        if self.fail_publish:
            raise PublishError("broker unavailable")
        self.published.append(body)
        if self._callback is not None:
            await self.deliver(body)

    async def subscribe(self, callback) -> str:
        self._callback = callback
        return "ctag-test"

    async def deliver(self, body: bytes, fail_ack: bool = False) -> Delivery:
        """Push one delivery to the subscriber and return it."""
        self._next_tag += 1
        handle = FakeHandle(self._next_tag, self.events, fail_ack=fail_ack)
        self.handles[self._next_tag] = handle
        delivery = Delivery(body, handle, delivery_tag=self._next_tag)
        await self._callback(delivery)
        return delivery

    async def close(self) -> None:
        self.closed = True


class FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self._redis = redis
        self._calls: list[tuple[str, tuple]] = []

    def __getattr__(self, name: str):
        def buffer(*args: Any) -> "FakePipeline":
            self._calls.append((name, args))
            return self

        return buffer

    async def execute(self) -> list[Any]:
        results = [await getattr(self._redis, name)(*args) for name, args in self._calls]
        self._calls = []
        return results

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class FakeRedis:
    """The subset of redis.asyncio.Redis used by the session store."""

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.ttls: dict[str, int] = {}
        self.closed = False

    async def ping(self) -> bool:
        return True

    async def hsetnx(self, key: str, field: str, value: Any) -> int:
        values = self.hashes.setdefault(key, {})
        if field in values:
            return 0
        values[field] = str(value)
        return 1

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        values = self.hashes.setdefault(key, {})
        values[field] = str(int(values.get(field, 0)) + amount)
        return int(values[field])

    async def hget(self, key: str, field: str) -> str | None:
        return self.hashes.get(key, {}).get(field)

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self.hashes:
            return False
        self.ttls[key] = seconds
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def scan_iter(self, match: str | None = None):
        for key in list(self.hashes):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed = True


class FixedOracle:
    """Failure oracle replaying a fixed list of outcomes, then succeeding."""

    def __init__(self, outcomes: list[bool] | None = None):
        self._outcomes = list(outcomes or [])

    def should_fail(self) -> bool:
        return self._outcomes.pop(0) if self._outcomes else False


class SequenceSampler:
    """Duration sampler replaying fixed milliseconds, then zero."""

    def __init__(self, durations_ms: list[int] | None = None):
        self._durations = list(durations_ms or [])

    def sample(self) -> int:
        return self._durations.pop(0) if self._durations else 0


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        queue_name="test-messages",
        processing_time_max=50,
        random_error_chance=0,
        connect_retry_delay_seconds=0.01,
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def sender_identity() -> InstanceIdentity:
    return InstanceIdentity(name="sender-test", color="#6666ff")


@pytest.fixture
def receiver_identity() -> InstanceIdentity:
    return InstanceIdentity(name="receiver-test", color="#66b266")


@pytest.fixture
def queue_channel() -> InMemoryQueueChannel:
    return InMemoryQueueChannel()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """SQLite engine with both activity tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'activity.db'}")
    await create_schema(engine, ServiceRole.SENDER)
    await create_schema(engine, ServiceRole.RECEIVER)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(async_engine)


@pytest.fixture
def sender_log(session_factory) -> ActivityLog:
    return ActivityLog(ServiceRole.SENDER, session_factory)


@pytest.fixture
def receiver_log(session_factory) -> ActivityLog:
    return ActivityLog(ServiceRole.RECEIVER, session_factory)


def build_runtime(
    role: ServiceRole,
    settings: Settings,
    identity: InstanceIdentity,
    queue: InMemoryQueueChannel,
    store: FakeRedis,
    activity_log: ActivityLog,
    ready: bool = True,
) -> ServiceRuntime:
    """Runtime wired to fakes, as if start() had completed."""
    runtime = ServiceRuntime(settings, role=role, identity=identity)
    runtime.wire(Dependencies(queue=queue, store=store), activity_log)
    runtime.ready = ready
    return runtime


@pytest.fixture
def sender_runtime(test_settings, sender_identity, queue_channel, fake_redis, sender_log):
    return build_runtime(
        ServiceRole.SENDER, test_settings, sender_identity, queue_channel, fake_redis, sender_log
    )


@pytest.fixture
def receiver_runtime(test_settings, receiver_identity, queue_channel, fake_redis, receiver_log):
    return build_runtime(
        ServiceRole.RECEIVER, test_settings, receiver_identity, queue_channel, fake_redis, receiver_log
    )


@pytest_asyncio.fixture
async def sender_client(sender_runtime) -> AsyncGenerator[AsyncClient]:
    """HTTP client for a sender app. Lifespan is not run; the runtime is pre-wired."""
    app = create_app(sender_runtime)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def receiver_client(receiver_runtime) -> AsyncGenerator[AsyncClient]:
    app = create_app(receiver_runtime)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sender_status() -> StatusTracker:
    return StatusTracker()


@pytest.fixture
def receiver_status() -> StatusTracker:
    return StatusTracker()


@pytest.fixture
def producer(queue_channel, sender_log, sender_identity, sender_status) -> Producer:
    return Producer(
        channel=queue_channel,
        activity_log=sender_log,
        identity=sender_identity,
        status=sender_status,
    )


@pytest.fixture
def make_consumer(queue_channel, receiver_log, receiver_identity, receiver_status):
    """
    Build a consumer on the in-memory channel.

    ``outcomes`` lists injected failures per delivery, ``durations_ms`` the
    simulated processing times; both fall back to success and zero.
    """

    def factory(
        outcomes: list[bool] | None = None,
        durations_ms: list[int] | None = None,
        failure_oracle=None,
        activity_log: ActivityLog | None = None,
        reject_requeue: bool = False,
    ) -> Consumer:
        return Consumer(
            channel=queue_channel,
            activity_log=activity_log or receiver_log,
            identity=receiver_identity,
            status=receiver_status,
            failure_oracle=failure_oracle or FixedOracle(outcomes),
            duration_sampler=SequenceSampler(durations_ms),
            reject_requeue=reject_requeue,
        )

    return factory

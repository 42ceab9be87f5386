"""
Integration tests for the sender -> queue -> receiver pipeline.
"""

import asyncio

import pytest

from pipeline.bootstrap import Dependencies
from pipeline.constants import DeliveryState, ServiceRole
from pipeline.db.repository import ActivityLog
from pipeline.messaging.producer import Producer
from pipeline.runtime import ServiceRuntime


class TestPipelineRoundTrip:
    """Producer and consumer sharing one in-memory queue."""

    @pytest.mark.parametrize("payload", ["hello", "  padded  ", "ünïcode ✓", "x" * 5000])
    async def test_submitted_payload_lands_once_in_each_log(
        self,
        producer: Producer,
        make_consumer,
        sender_log: ActivityLog,
        receiver_log: ActivityLog,
        payload: str,
    ):
        consumer = make_consumer(durations_ms=[5])
        await consumer.start()

        await producer.submit(payload)
        await consumer.drain()

        sent = await sender_log.recent(20)
        processed = await receiver_log.recent(20)
        assert [r.message for r in sent] == [payload.strip()]
        assert [r.message for r in processed] == [payload.strip()]

    async def test_rejected_delivery_leaves_only_sent_record(
        self,
        producer: Producer,
        make_consumer,
        queue_channel,
        sender_log: ActivityLog,
        receiver_log: ActivityLog,
    ):
        consumer = make_consumer(outcomes=[True])
        await consumer.start()

        await producer.submit("will fail")
        await consumer.drain()

        assert len(await sender_log.recent(20)) == 1
        assert await receiver_log.recent(20) == []
        assert queue_channel.events == [(1, "reject")]

    async def test_redelivery_after_reject_succeeds(
        self,
        make_consumer,
        queue_channel,
        receiver_log: ActivityLog,
    ):
        consumer = make_consumer(outcomes=[True, False], reject_requeue=True)
        await consumer.start()

        first = await queue_channel.deliver(b"retry me")
        await consumer.drain()
        assert first.state == DeliveryState.REJECTED
        assert queue_channel.handles[1].rejected == [True]

        # broker hands the requeued message out again
        second = await queue_channel.deliver(b"retry me")
        await consumer.drain()

        assert second.state == DeliveryState.ACKED
        assert [r.message for r in await receiver_log.recent(20)] == ["retry me"]

    async def test_many_concurrent_messages(
        self,
        producer: Producer,
        make_consumer,
        queue_channel,
        receiver_log: ActivityLog,
        receiver_status,
    ):
        consumer = make_consumer(durations_ms=[(i * 7) % 40 for i in range(25)])
        await consumer.start()

        await asyncio.gather(*(producer.submit(f"msg-{i}") for i in range(25)))
        await consumer.drain()

        processed = await receiver_log.recent(100)
        assert sorted(r.message for r in processed) == sorted(f"msg-{i}" for i in range(25))
        assert receiver_status.count == 25
        assert len(queue_channel.events) == 25


class TestServiceRuntime:
    """Tests for runtime start/stop with fake dependencies."""

    async def test_receiver_start_subscribes_and_stop_closes(
        self,
        test_settings,
        receiver_identity,
        queue_channel,
        fake_redis,
        async_engine,
        session_factory,
    ):
        async def fake_bootstrap(settings):
            return Dependencies(queue=queue_channel, store=fake_redis)

        runtime = ServiceRuntime(
            test_settings,
            role=ServiceRole.RECEIVER,
            identity=receiver_identity,
            bootstrapper=fake_bootstrap,
        )
        assert runtime.ready is False

        await runtime.start(engine=async_engine, session_factory=session_factory)

        assert runtime.ready is True
        assert runtime.producer is None
        assert runtime.consumer is not None
        assert runtime.consumer.consumer_tag == "ctag-test"

        await queue_channel.deliver(b"via runtime")
        await runtime.consumer.drain()
        assert runtime.status.count == 1

        await runtime.stop()

        assert runtime.ready is False
        assert queue_channel.closed is True
        assert fake_redis.closed is True

    async def test_sender_start_builds_producer(
        self,
        test_settings,
        sender_identity,
        queue_channel,
        fake_redis,
        async_engine,
        session_factory,
    ):
        async def fake_bootstrap(settings):
            return Dependencies(queue=queue_channel, store=fake_redis)

        runtime = ServiceRuntime(
            test_settings,
            role=ServiceRole.SENDER,
            identity=sender_identity,
            bootstrapper=fake_bootstrap,
        )

        await runtime.start(engine=async_engine, session_factory=session_factory)

        assert runtime.consumer is None
        record = await runtime.producer.submit("from runtime")
        assert record.processed_by == sender_identity.name
        assert queue_channel.published == [b"from runtime"]

        await runtime.stop()

    async def test_stop_settles_in_flight_deliveries_before_closing(
        self,
        test_settings,
        receiver_identity,
        queue_channel,
        fake_redis,
        async_engine,
        session_factory,
        receiver_log,
    ):
        async def fake_bootstrap(settings):
            return Dependencies(queue=queue_channel, store=fake_redis)

        settings = test_settings.model_copy(
            update={"processing_time_max": 300, "shutdown_drain_timeout_seconds": 5.0}
        )
        runtime = ServiceRuntime(
            settings,
            role=ServiceRole.RECEIVER,
            identity=receiver_identity,
            bootstrapper=fake_bootstrap,
        )
        await runtime.start(engine=async_engine, session_factory=session_factory)

        states_at_close: list[DeliveryState] = []
        close = queue_channel.close

        async def recording_close():
            states_at_close.append(delivery.state)
            await close()

        queue_channel.close = recording_close

        delivery = await queue_channel.deliver(b"in flight at shutdown")
        await runtime.stop()

        assert runtime.consumer.in_flight == 0
        assert states_at_close == [DeliveryState.ACKED]
        assert queue_channel.events == [(1, "ack")]
        assert [r.message for r in await receiver_log.recent(10)] == ["in flight at shutdown"]

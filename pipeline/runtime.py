"""
Process-wide wiring for one sender or receiver instance.
"""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pipeline.bootstrap import Dependencies, bootstrap_dependencies
from pipeline.config import Settings, get_settings
from pipeline.constants import ServiceRole
from pipeline.db.connection import close_db, create_schema, get_engine, init_db
from pipeline.db.repository import ActivityLog
from pipeline.identity import InstanceIdentity, create_identity
from pipeline.messaging.consumer import Consumer, ProcessingTimeSampler, RandomFailureOracle
from pipeline.messaging.producer import Producer
from pipeline.sessions import SessionStore
from pipeline.status import StatusTracker

logger = logging.getLogger(__name__)

Bootstrapper = Callable[[Settings], Awaitable[Dependencies]]


class ServiceRuntime:
    """
    Owns every long-lived object of the process.

    Nothing here performs I/O until start(). The service must not take
    traffic before ``ready`` is True.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        role: ServiceRole | None = None,
        identity: InstanceIdentity | None = None,
        bootstrapper: Bootstrapper = bootstrap_dependencies,
    ):
        self.settings = settings or get_settings()
        self.role = role or self.settings.service_role
        self.identity = identity or create_identity(self.role)
        self.status = StatusTracker()
        self.ready = False

        self._bootstrapper = bootstrapper
        self.dependencies: Dependencies | None = None
        self.activity_log: ActivityLog | None = None
        self.sessions: SessionStore | None = None
        self.producer: Producer | None = None
        self.consumer: Consumer | None = None

    async def start(
        self,
        engine: AsyncEngine | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """
        Bootstrap dependencies, prepare the schema and begin consuming.

        Args:
            engine: Engine to create the schema with. Defaults to the global one.
            session_factory: Factory for the activity log. Defaults to init_db().
        """
        logger.info(
            "Starting service",
            extra={"role": self.role.value, "instance": self.identity.name},
        )
        dependencies = await self._bootstrapper(self.settings)

        if session_factory is None:
            session_factory = await init_db()
        await create_schema(engine or get_engine(), self.role)

        self.wire(dependencies, ActivityLog(self.role, session_factory))

        if self.consumer is not None:
            await self.consumer.start()

        self.ready = True
        logger.info("Service ready", extra={"role": self.role.value})

    def wire(self, dependencies: Dependencies, activity_log: ActivityLog) -> None:
        """Build the role's components on top of live handles."""
        self.dependencies = dependencies
        self.activity_log = activity_log
        self.sessions = SessionStore(dependencies.store, self.settings.session_ttl_seconds)

        if self.role is ServiceRole.SENDER:
            self.producer = Producer(
                channel=dependencies.queue,
                activity_log=activity_log,
                identity=self.identity,
                status=self.status,
            )
        else:
            self.consumer = Consumer(
                channel=dependencies.queue,
                activity_log=activity_log,
                identity=self.identity,
                status=self.status,
                failure_oracle=RandomFailureOracle(self.settings.random_error_chance),
                duration_sampler=ProcessingTimeSampler(self.settings.processing_time_max),
                reject_requeue=self.settings.reject_requeue,
            )

    async def stop(self) -> None:
        """
        Settle in-flight deliveries, then release queue, store and database handles.

        Deliveries still running after the drain timeout are cancelled
        unsettled and redelivered by the broker once the channel closes.
        """
        self.ready = False
        if self.consumer is not None and self.consumer.in_flight:
            logger.info(
                "Draining deliveries in flight",
                extra={"in_flight": self.consumer.in_flight},
            )
            await self.consumer.stop(self.settings.shutdown_drain_timeout_seconds)
        if self.dependencies is not None:
            await self.dependencies.close()
        await close_db()
        logger.info("Service stopped", extra={"role": self.role.value})

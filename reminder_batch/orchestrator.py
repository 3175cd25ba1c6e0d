"""
ReminderOrchestrator -- DI container for the reminder batch.

Contract:
    Single place where settings, storage, transport, clock, engine and
    scheduler are composed.  ``from_settings()`` builds the production
    wiring (database engine from DATABASE_URL, HTTP gateway transport);
    tests pass their own session factory, transport and clock.

Non-goals:
    - Does NOT start the scheduler automatically -- caller decides.
"""

from __future__ import annotations

import time
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from reminder_batch.services.engine import ReminderEngine
from reminder_batch.services.repository import ReminderRepository, ReminderStore
from reminder_batch.services.scheduler import ReminderScheduler
from reminder_batch.transport.base import MessageTransport
from reminder_batch.transport.http_gateway import HttpGatewayTransport
from reminder_kernel.config import ReminderSettings
from reminder_kernel.db.engine import get_session_factory, init_engine_from_url
from reminder_kernel.domain.clock import Clock, SystemClock
from reminder_kernel.exceptions import ConfigurationError
from reminder_kernel.logging_config import get_logger

logger = get_logger("batch.orchestrator")


class ReminderOrchestrator:
    """Wires the reminder engine and its scheduler."""

    def __init__(
        self,
        settings: ReminderSettings,
        store: ReminderStore,
        transport: MessageTransport,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.store = store
        self.transport = transport
        self._clock = clock or SystemClock()
        self.engine = ReminderEngine(
            settings, store, transport, clock=self._clock, sleep=sleep,
        )

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_session_factory(
        cls,
        settings: ReminderSettings,
        session_factory: sessionmaker[Session],
        transport: MessageTransport,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ReminderOrchestrator:
        return cls(
            settings,
            ReminderRepository(session_factory),
            transport,
            clock=clock,
            sleep=sleep,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ReminderSettings,
        clock: Clock | None = None,
    ) -> ReminderOrchestrator:
        """
        Production wiring.

        Raises:
            ConfigurationError: DATABASE_URL is not set.
        """
        if not settings.database.url:
            raise ConfigurationError("DATABASE_URL", "is required")

        init_engine_from_url(
            settings.database.url,
            echo=settings.database.echo,
            pool_size=settings.database.pool_size,
        )
        transport = HttpGatewayTransport.from_settings(settings.transport)
        logger.info(
            "orchestrator_configured",
            extra={
                "empresa_id": settings.empresa_id,
                "gateway": settings.transport.base_url,
                "time_zone": settings.time_zone,
            },
        )
        return cls.from_session_factory(
            settings, get_session_factory(), transport, clock=clock,
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def create_scheduler(self) -> ReminderScheduler:
        return ReminderScheduler(
            self.engine,
            self.transport,
            cron_expression=self.settings.cron_expression,
            tz=self.settings.tzinfo,
            clock=self._clock,
        )

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

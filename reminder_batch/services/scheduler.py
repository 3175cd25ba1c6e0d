"""
ReminderScheduler -- trigger surface of the reminder engine.

Contract:
    ``trigger(source)`` runs the engine once, for the interval trigger and
    the manual command alike.  A run already in progress in this process
    rejects the new one (non-blocking run guard), and nothing runs while the
    transport cannot send.  Both cases return a SKIPPED result.

    ``start()`` / ``stop()`` run the interval trigger in a daemon thread that
    sleeps on a stop event until the next cron match, evaluated on wall-clock
    minutes in the tenant zone.

Non-goals:
    - NOT a distributed scheduler: overlapping processes are kept apart by
      the per-credit locks, not by this guard.
"""

from __future__ import annotations

import threading
from datetime import datetime
from uuid import uuid4
from zoneinfo import ZoneInfo

from reminder_batch.domain.schedule import CronSpec, next_fire_time, parse_cron
from reminder_batch.domain.types import (
    ReminderRunResult,
    RunStatus,
    SkipReason,
    TriggerSource,
)
from reminder_batch.services.engine import ReminderEngine
from reminder_batch.transport.base import MessageTransport
from reminder_kernel.config import DEFAULT_CRON_EXPRESSION, DEFAULT_TIME_ZONE
from reminder_kernel.domain.clock import Clock, SystemClock
from reminder_kernel.exceptions import InvalidCronExpressionError
from reminder_kernel.logging_config import get_logger

logger = get_logger("batch.scheduler")


class ReminderScheduler:
    """Owns the run guard and the interval loop."""

    def __init__(
        self,
        engine: ReminderEngine,
        transport: MessageTransport,
        cron_expression: str = DEFAULT_CRON_EXPRESSION,
        tz: ZoneInfo | None = None,
        clock: Clock | None = None,
    ):
        self._engine = engine
        self._transport = transport
        self._tz = tz or ZoneInfo(DEFAULT_TIME_ZONE)
        self._clock = clock or SystemClock()
        self._cron_expression = cron_expression
        self._spec: CronSpec = parse_cron(cron_expression)
        self._run_guard = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        # Reject expressions that never fire (e.g. February 31st).
        self.next_fire_time()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def trigger(self, source: TriggerSource = TriggerSource.MANUAL) -> ReminderRunResult:
        if not self._run_guard.acquire(blocking=False):
            logger.info("run_rejected_in_progress", extra={"trigger": source.value})
            return self._skipped(source, SkipReason.RUN_IN_PROGRESS)

        try:
            if not self._transport.is_available():
                logger.warning(
                    "run_skipped_transport_unavailable",
                    extra={"trigger": source.value},
                )
                return self._skipped(source, SkipReason.TRANSPORT_UNAVAILABLE)
            return self._engine.run(source)
        finally:
            self._run_guard.release()

    @property
    def run_in_progress(self) -> bool:
        return self._run_guard.locked()

    def next_fire_time(self, after: datetime | None = None) -> datetime:
        try:
            return next_fire_time(self._spec, after or self._clock.now(), self._tz)
        except ValueError as exc:
            raise InvalidCronExpressionError(self._cron_expression, str(exc)) from None

    def start(self) -> None:
        """Start the interval trigger in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="reminder-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"cron": self._cron_expression})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the loop (and a run in progress) to end."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self) -> None:
        """Block until ``stop()`` is called (used by the daemon command)."""
        self._stop_event.wait()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            fire_at = self.next_fire_time()
            delay = (fire_at - self._clock.now()).total_seconds()
            if self._stop_event.wait(timeout=max(delay, 0.0)):
                break
            try:
                self.trigger(TriggerSource.CRON)
            except Exception:
                logger.exception("scheduler_tick_exception")

    def _skipped(self, source: TriggerSource, reason: SkipReason) -> ReminderRunResult:
        now = self._clock.now_utc()
        return ReminderRunResult(
            run_id=uuid4().hex[:12],
            trigger=source,
            status=RunStatus.SKIPPED,
            started_at=now,
            completed_at=now,
            skip_reason=reason,
        )

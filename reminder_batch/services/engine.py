"""
ReminderEngine -- one reminder run, start to finish.

Stage order:
    1. Tenant lookup: unknown or disabled tenant -> SKIPPED, nothing touched.
    2. Orphan lock reclaim (also outside operating hours, so the first tick
       of a day cleans up after yesterday).
    3. Operating hours ``[start_hour, end_hour)`` in the tenant zone ->
       SKIPPED otherwise.
    4. Eligibility query, sending policy and grouping by contact.
    5. Dispatch loop.

Every stage returns data; the run result is a ReminderRunResult.  Storage
failures and a lost transport end the run as ABORTED, logged at CRITICAL, and
the next interval tick simply tries again.
"""

from __future__ import annotations

import time
from typing import Callable
from uuid import uuid4

from reminder_batch.domain.calendar import (
    cron_weekday,
    is_hour_allowed,
    local_now,
    start_of_day_utc,
)
from reminder_batch.domain.grouping import group_by_contact
from reminder_batch.domain.types import (
    DispatchSummary,
    MessageContext,
    ReminderRunResult,
    RunStatus,
    SkipReason,
    TriggerSource,
)
from reminder_batch.services.dispatcher import Dispatcher
from reminder_batch.services.lock_manager import OrphanLockReclaimer
from reminder_batch.services.repository import ReminderStore
from reminder_batch.transport.base import MessageTransport
from reminder_kernel.config import ReminderSettings
from reminder_kernel.domain.clock import Clock, SystemClock
from reminder_kernel.exceptions import StorageError, TransportUnavailableError
from reminder_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.engine")


class ReminderEngine:
    """Runs the reminder pipeline for the configured tenant."""

    def __init__(
        self,
        settings: ReminderSettings,
        store: ReminderStore,
        transport: MessageTransport,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._settings = settings
        self._store = store
        self._clock = clock or SystemClock()
        self._reclaimer = OrphanLockReclaimer(store)
        self._dispatcher = Dispatcher(
            store,
            transport,
            clock=self._clock,
            max_sends=settings.max_sends_per_run,
            send_delay_seconds=settings.send_delay_seconds,
            sleep=sleep,
        )

    def run(self, trigger: TriggerSource = TriggerSource.CRON) -> ReminderRunResult:
        run_id = uuid4().hex[:12]
        started_at = self._clock.now_utc()
        empresa_id = self._settings.empresa_id

        with LogContext.bind(
            run_id=run_id, trigger=trigger.value, empresa_id=empresa_id,
        ):
            logger.info("reminder_run_started")

            def finish(status: RunStatus, **kwargs) -> ReminderRunResult:
                result = ReminderRunResult(
                    run_id=run_id,
                    trigger=trigger,
                    status=status,
                    started_at=started_at,
                    completed_at=self._clock.now_utc(),
                    **kwargs,
                )
                _log_result(result)
                return result

            try:
                tenant = self._store.get_tenant(empresa_id)
                if tenant is None:
                    return finish(
                        RunStatus.SKIPPED, skip_reason=SkipReason.TENANT_NOT_FOUND,
                    )
                if not tenant.reminders_enabled:
                    return finish(
                        RunStatus.SKIPPED, skip_reason=SkipReason.TENANT_DISABLED,
                    )

                tz = self._settings.tzinfo
                now_local = local_now(started_at, tz)
                today = now_local.date()
                day_start = start_of_day_utc(today, tz)

                reclaimed = self._reclaimer.reclaim(empresa_id, day_start)

                if not is_hour_allowed(
                    now_local.hour,
                    self._settings.start_hour,
                    self._settings.end_hour,
                ):
                    return finish(
                        RunStatus.SKIPPED,
                        skip_reason=SkipReason.OUTSIDE_HOURS,
                        reclaimed_locks=reclaimed,
                    )

                credits = self._store.find_eligible(
                    empresa_id,
                    today,
                    day_start,
                    excluded_statuses=self._settings.excluded_statuses,
                    horizon_days=self._settings.due_horizon_days,
                )
                groups = group_by_contact(credits, today, cron_weekday(today), tz)

                context = MessageContext(
                    today=today,
                    empresa_id=empresa_id,
                    link_base=self._settings.link_base,
                    promo=self._settings.promo,
                )
                summary = self._dispatcher.dispatch(
                    groups, context, notified_before=day_start,
                )

            except (StorageError, TransportUnavailableError) as exc:
                logger.critical("reminder_run_aborted", exc_info=True)
                return finish(
                    RunStatus.ABORTED,
                    error_kind=exc.code,
                    error_message=str(exc),
                )

            return finish(
                RunStatus.COMPLETED,
                reclaimed_locks=reclaimed,
                eligible_count=len(credits),
                group_count=len(groups),
                summary=summary,
            )


def _log_result(result: ReminderRunResult) -> None:
    summary: DispatchSummary = result.summary
    logger.info(
        "reminder_run_finished",
        extra={
            "status": result.status.value,
            "skip_reason": result.skip_reason.value if result.skip_reason else None,
            "reclaimed_locks": result.reclaimed_locks,
            "eligible": result.eligible_count,
            "groups": result.group_count,
            "sent": summary.sent,
            "errors": summary.errors,
            "contended": summary.contended,
            "skipped": summary.skipped,
            "cap_reached": summary.cap_reached,
        },
    )

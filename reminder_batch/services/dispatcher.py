"""
Dispatcher -- rate-limited send loop over recipient groups.

Contract:
    Groups are handled in order until ``max_sends`` messages were sent.  For
    each group every credit lock is tried; a group where none could be taken
    belongs to another worker and does not count toward the cap.  The message
    only mentions the credits actually locked.

    Outcome per group (GroupStatus):
        SENT            -- locks released, ``recordatorio_update`` stamped,
                           message logged, then the throttle delay.
        SEND_FAILED     -- DeliveryError; locks retained, with their same-day
                           stamp, until the next tenant day so no retry can
                           duplicate a message that may have gone out.
        SKIPPED         -- bad contact or nothing to compose; locks retained.
        LOCK_CONTENDED  -- nothing locked; nothing to do.

Failure modes:
    - TransportUnavailableError and StorageError (from the lock writes)
      propagate: the channel or the database is gone and the run stops.
    - A failure to append the message log is logged and ignored; the
      message was delivered and its locks are already released.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, Sequence

from reminder_batch.domain.messages import compose_message
from reminder_batch.domain.types import (
    DispatchSummary,
    GroupResult,
    GroupStatus,
    MessageContext,
    RecipientGroup,
)
from reminder_batch.services.lock_manager import LockManager
from reminder_batch.services.repository import ReminderStore
from reminder_batch.transport.base import MessageTransport
from reminder_kernel.domain.clock import Clock, SystemClock
from reminder_kernel.exceptions import (
    InvalidContactError,
    MessageCompositionError,
    StorageError,
    TransportError,
    TransportUnavailableError,
)
from reminder_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.dispatcher")


class Dispatcher:
    """Sends one message per recipient group, at most ``max_sends`` per run."""

    def __init__(
        self,
        store: ReminderStore,
        transport: MessageTransport,
        clock: Clock | None = None,
        max_sends: int = 50,
        send_delay_seconds: float = 0.7,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._store = store
        self._transport = transport
        self._clock = clock or SystemClock()
        self._locks = LockManager(store, self._clock)
        self._max_sends = max_sends
        self._send_delay = send_delay_seconds
        self._sleep = sleep

    def dispatch(
        self,
        groups: Sequence[RecipientGroup],
        context: MessageContext,
        notified_before: datetime | None = None,
    ) -> DispatchSummary:
        """
        Send to ``groups`` in order.

        ``notified_before`` is the tenant's start of day in UTC; a credit
        stamped since then was reminded by another worker and is not locked.
        """
        results: list[GroupResult] = []
        sent = 0
        cap_reached = False

        for group in groups:
            if sent >= self._max_sends:
                cap_reached = True
                logger.info("send_cap_reached", extra={"max_sends": self._max_sends})
                break

            with LogContext.bind(
                celular=group.celular,
                id_credito=",".join(str(i) for i in group.credit_ids),
            ):
                result = self._dispatch_group(group, context, notified_before)

            results.append(result)
            if result.status == GroupStatus.SENT:
                sent += 1
                if self._send_delay > 0:
                    self._sleep(self._send_delay)

        return DispatchSummary(results=tuple(results), cap_reached=cap_reached)

    def _dispatch_group(
        self,
        group: RecipientGroup,
        context: MessageContext,
        notified_before: datetime | None,
    ) -> GroupResult:
        locked = self._locks.try_lock_all(group.credit_ids, notified_before)
        if not locked:
            logger.info("group_lock_contended")
            return GroupResult(
                celular=group.celular,
                status=GroupStatus.LOCK_CONTENDED,
                credit_ids=group.credit_ids,
            )

        def outcome(status: GroupStatus, **kwargs) -> GroupResult:
            return GroupResult(
                celular=group.celular,
                status=status,
                credit_ids=group.credit_ids,
                locked_ids=locked,
                **kwargs,
            )

        try:
            text = compose_message(group, group.restricted_to(set(locked)), context)
            message_id = self._transport.send(group.celular, text)
        except (InvalidContactError, MessageCompositionError) as exc:
            logger.warning(
                "group_skipped",
                extra={"error_code": exc.code, "reason": str(exc)},
            )
            return outcome(
                GroupStatus.SKIPPED, error_code=exc.code, error_message=str(exc),
            )
        except TransportUnavailableError:
            raise
        except TransportError as exc:
            logger.error("group_send_failed", exc_info=True)
            return outcome(
                GroupStatus.SEND_FAILED,
                error_code=exc.code,
                error_message=str(exc),
            )

        sent_at = self._clock.now_utc()
        self._locks.release(locked, sent_at)

        try:
            self._store.record_message(
                empresa_id=context.empresa_id,
                to_number=group.celular,
                message=text,
                sent_at=sent_at,
                message_id=message_id,
                from_number=self._transport.sender,
            )
        except StorageError:
            logger.warning("message_log_failed", exc_info=True)

        logger.info(
            "group_sent",
            extra={
                "credits": len(locked),
                "message_id": message_id,
                "nombre_empresa": group.nombre_empresa,
            },
        )
        return outcome(GroupStatus.SENT, message_id=message_id)

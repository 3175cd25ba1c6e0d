"""
Per-credit delivery locks.

Contract:
    A credit's ``recordatorio_lock`` flips false -> true through a single
    conditional UPDATE; exactly one caller sees an affected-row count of 1,
    across threads and processes alike.  The same statement stamps
    ``recordatorio_update`` with the lock time.  The lock is released only
    after a confirmed send, together with the notification stamp.

    A lock that is never released (failed send, lost release, crash) keeps
    its same-day stamp, so the credit stays silent for the rest of the
    tenant day.  The orphan reclaimer only clears locks stamped before the
    tenant's midnight; the credit is retried on the next day.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from reminder_batch.services.repository import ReminderStore
from reminder_kernel.domain.clock import Clock, SystemClock
from reminder_kernel.logging_config import get_logger

logger = get_logger("batch.locks")


class LockManager:
    """Acquire and release ``recordatorio_lock``."""

    def __init__(self, store: ReminderStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    def try_lock(
        self, id_credito: int, notified_before: datetime | None = None,
    ) -> bool:
        return self._store.conditional_update(
            id_credito,
            expected_lock=False,
            new_lock=True,
            notified_before=notified_before,
            locked_at=self._clock.now_utc(),
        ) == 1

    def try_lock_all(
        self, ids: Iterable[int], notified_before: datetime | None = None,
    ) -> tuple[int, ...]:
        """Try every id in order; return the ones this caller now holds.

        ``notified_before`` skips credits already reminded since then.
        """
        acquired = []
        for id_credito in ids:
            if self.try_lock(id_credito, notified_before):
                acquired.append(id_credito)
            else:
                logger.debug("lock_contended", extra={"id_credito": id_credito})
        return tuple(acquired)

    def release(self, ids: Iterable[int], now: datetime) -> int:
        """Release after a confirmed send and stamp ``recordatorio_update``."""
        return self._store.mark_notified(ids, now)


class OrphanLockReclaimer:
    """Clears locks left over from runs of earlier days."""

    def __init__(self, store: ReminderStore):
        self._store = store

    def reclaim(self, empresa_id: int, day_start_utc: datetime) -> int:
        """
        Release every lock of the tenant stamped before ``day_start_utc``.

        Locks taken today, whether still in flight in another worker or
        left by a failed send, carry today's stamp and are left alone.
        """
        cleared = self._store.clear_orphan_locks(empresa_id, day_start_utc)
        if cleared:
            logger.info(
                "orphan_locks_reclaimed",
                extra={"empresa_id": empresa_id, "cleared": cleared},
            )
        return cleared

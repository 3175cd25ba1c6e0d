"""
ReminderRepository -- storage collaborator of the reminder batch.

Contract:
    Every method opens its own short session from the injected factory and
    commits before returning, so a lock taken here is immediately visible
    to every other process sharing the database.  The engine only ever
    writes ``creditos.recordatorio_lock``, ``creditos.recordatorio_update``
    and new ``crm_mensajes`` rows.

Failure modes:
    - StorageError wrapping any SQLAlchemyError (connection lost, bad SQL).
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Generator, Iterable, Protocol

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from reminder_batch.domain.types import EligibleCredit, TenantSettings
from reminder_kernel.db.engine import session_scope
from reminder_kernel.exceptions import StorageError
from reminder_kernel.models.credit import Credito
from reminder_kernel.models.message import CRON_OPERATOR, CrmMensaje
from reminder_kernel.models.party import Empresa
from reminder_kernel.selectors.eligibility_selector import EligibilitySelector


class ReminderStore(Protocol):
    """Storage operations the lock manager, dispatcher and engine rely on."""

    def get_tenant(self, empresa_id: int) -> TenantSettings | None: ...

    def find_eligible(
        self,
        empresa_id: int,
        today: date,
        day_start_utc: datetime,
        excluded_statuses: Iterable[int] = ...,
        horizon_days: int = ...,
    ) -> tuple[EligibleCredit, ...]: ...

    def conditional_update(
        self,
        id_credito: int,
        expected_lock: bool,
        new_lock: bool,
        notified_before: datetime | None = ...,
        locked_at: datetime | None = ...,
    ) -> int: ...

    def clear_orphan_locks(self, empresa_id: int, cutoff: datetime) -> int: ...

    def mark_notified(self, ids: Iterable[int], now: datetime) -> int: ...

    def record_message(
        self,
        empresa_id: int,
        to_number: str,
        message: str,
        sent_at: datetime,
        message_id: str = ...,
        from_number: str | None = ...,
        id_operador: int = ...,
    ) -> None: ...


class ReminderRepository:
    """SQLAlchemy-backed storage for the reminder batch."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @contextmanager
    def _scope(self, operation: str) -> Generator[Session, None, None]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as exc:
            raise StorageError(operation, str(exc)) from exc

    # -- reads -------------------------------------------------------------

    def get_tenant(self, empresa_id: int) -> TenantSettings | None:
        with self._scope("get_tenant") as session:
            empresa = session.get(Empresa, empresa_id)
            if empresa is None:
                return None
            return TenantSettings(
                empresa_id=empresa.id,
                nombre=empresa.nombre,
                reminders_enabled=empresa.reminders_enabled,
                cbu_alias=empresa.cbu_alias,
            )

    def find_eligible(
        self,
        empresa_id: int,
        today: date,
        day_start_utc: datetime,
        excluded_statuses: Iterable[int] = (5, 7, 8, 9),
        horizon_days: int = 5,
    ) -> tuple[EligibleCredit, ...]:
        with self._scope("find_eligible") as session:
            return EligibilitySelector(session).find_eligible(
                empresa_id,
                today,
                day_start_utc,
                excluded_statuses=excluded_statuses,
                horizon_days=horizon_days,
            )

    # -- lock writes -------------------------------------------------------

    def conditional_update(
        self,
        id_credito: int,
        expected_lock: bool,
        new_lock: bool,
        notified_before: datetime | None = None,
        locked_at: datetime | None = None,
    ) -> int:
        """Set the lock to ``new_lock`` only if it is ``expected_lock``.

        With ``notified_before``, a credit stamped at or after that instant
        is left alone too, so a worker holding a stale eligibility result
        cannot re-lock a credit another worker has just reminded.

        ``locked_at`` is written to ``recordatorio_update`` in the same
        statement. A lock taken today then carries today's stamp and is
        out of reach of the orphan reclaimer until the next tenant day.

        Returns the affected row count: 1 when this caller won, 0 otherwise.
        """
        values: dict[str, object] = {"recordatorio_lock": new_lock}
        if locked_at is not None:
            values["recordatorio_update"] = locked_at
        stmt = (
            update(Credito)
            .where(
                Credito.id == id_credito,
                Credito.recordatorio_lock == expected_lock,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if notified_before is not None:
            stmt = stmt.where(
                or_(
                    Credito.recordatorio_update.is_(None),
                    Credito.recordatorio_update < notified_before,
                )
            )
        with self._scope("conditional_update") as session:
            return session.execute(stmt).rowcount

    def clear_orphan_locks(self, empresa_id: int, cutoff: datetime) -> int:
        """Release locks of the tenant last stamped before ``cutoff``.

        Locks are stamped when taken, so one held since ``cutoff`` (a send
        in flight, or a failed send of the same day) is never cleared.
        """
        stmt = (
            update(Credito)
            .where(
                Credito.id_empresa == empresa_id,
                Credito.recordatorio_lock.is_(True),
                or_(
                    Credito.recordatorio_update.is_(None),
                    Credito.recordatorio_update < cutoff,
                ),
            )
            .values(recordatorio_lock=False)
            .execution_options(synchronize_session=False)
        )
        with self._scope("clear_orphan_locks") as session:
            return session.execute(stmt).rowcount

    def mark_notified(self, ids: Iterable[int], now: datetime) -> int:
        """Release the locks and stamp the notification time."""
        id_list = list(ids)
        if not id_list:
            return 0
        stmt = (
            update(Credito)
            .where(Credito.id.in_(id_list))
            .values(recordatorio_lock=False, recordatorio_update=now)
            .execution_options(synchronize_session=False)
        )
        with self._scope("mark_notified") as session:
            return session.execute(stmt).rowcount

    # -- message log -------------------------------------------------------

    def record_message(
        self,
        empresa_id: int,
        to_number: str,
        message: str,
        sent_at: datetime,
        message_id: str = "",
        from_number: str | None = None,
        id_operador: int = CRON_OPERATOR,
    ) -> None:
        with self._scope("record_message") as session:
            session.add(
                CrmMensaje(
                    id_empresa=empresa_id,
                    id_msg=message_id,
                    from_number=from_number,
                    to_number=to_number,
                    message=message,
                    quoted_stanza_id="",
                    id_operador=id_operador,
                    fecha_reg=sent_at,
                )
            )

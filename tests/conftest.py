"""
Pytest fixtures for the reminder test suite.

Provides:
- Structured logging configured once per session, plus ``captured_logs``
- In-memory SQLite engine with every table created, per test
- ``builder`` for seeding tenants, borrowers, credits and installments
- ``RecordingTransport``, a fake MessageTransport
- A deterministic clock on Wednesday 2026-03-04, 12:00 in Buenos Aires
"""

import json
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from io import StringIO
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reminder_batch.services.repository import ReminderRepository
from reminder_kernel.config import ReminderSettings
from reminder_kernel.db.base import Base
from reminder_kernel.domain.clock import DeterministicClock
from reminder_kernel.exceptions import TransportUnavailableError
from reminder_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from reminder_kernel.models import (
    Credito,
    Cuota,
    CuotaInteresPunitorio,
    Empresa,
    Persona,
)

TZ = ZoneInfo("America/Argentina/Buenos_Aires")

# Wednesday; Buenos Aires is UTC-3 all year.
TODAY = date(2026, 3, 4)
NOON_LOCAL = datetime(2026, 3, 4, 12, 0, tzinfo=TZ)
SENDER_PHONE = "5493815550000"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture reminders logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.run()
            logs = captured_logs()
            assert any(r["message"] == "reminder_run_started" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("reminders")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def repository(session_factory):
    return ReminderRepository(session_factory)


class ReminderDataBuilder:
    """Seeds the system-of-record tables the way the lending app fills them."""

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._next_id = 1000

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _save(self, *rows) -> None:
        with self._session_factory() as session:
            session.add_all(rows)
            session.commit()

    def empresa(
        self,
        empresa_id: int = 1,
        nombre: str = "Levsu Muebles",
        enabled: str | None = "1",
        cbu_alias: str | None = None,
    ) -> int:
        self._save(
            Empresa(
                id=empresa_id,
                nombre=nombre,
                cron_recordatorio=enabled,
                cbu_alias=cbu_alias,
            )
        )
        return empresa_id

    def persona(
        self,
        empresa_id: int = 1,
        nombre: str = "Leandro",
        celular: str | None = "3815551111",
        estado: int = 0,
        anunciado_fecha: date | None = None,
        persona_id: int | None = None,
    ) -> int:
        pid = persona_id or self._id()
        self._save(
            Persona(
                id=pid,
                id_empresa=empresa_id,
                nombre=nombre,
                celular=celular,
                estado=estado,
                anunciado_fecha=anunciado_fecha,
            )
        )
        return pid

    def credito(
        self,
        persona_id: int,
        due: date,
        valor: str = "10000",
        empresa_id: int = 1,
        credito_id: int | None = None,
        fecha_alta: date = date(2025, 1, 10),
        anulado: bool = False,
        locked: bool = False,
        notified_at: datetime | None = None,
        proxima_visita: date | None = None,
        extra_cuotas: tuple[tuple[date, str, int], ...] = (),
        intereses: tuple[tuple[str, int], ...] = (),
    ) -> int:
        cid = credito_id or self._id()
        rows = [
            Credito(
                id=cid,
                id_empresa=empresa_id,
                id_cliente=persona_id,
                anulado=anulado,
                fecha_alta=fecha_alta,
                fecha_proxima_visita=proxima_visita,
                recordatorio_lock=locked,
                recordatorio_update=notified_at,
            ),
            Cuota(id=self._id(), id_credito=cid, fecha_vencimiento=due,
                  valor=Decimal(valor), estado=0),
        ]
        for extra_due, extra_valor, estado in extra_cuotas:
            rows.append(
                Cuota(id=self._id(), id_credito=cid, fecha_vencimiento=extra_due,
                      valor=Decimal(extra_valor), estado=estado)
            )
        for interes_valor, pagado in intereses:
            rows.append(
                CuotaInteresPunitorio(id=self._id(), id_credito=cid,
                                      valor=Decimal(interes_valor), pagado=pagado)
            )
        self._save(*rows)
        return cid

    def credit_state(self, credito_id: int) -> tuple[bool, datetime | None]:
        """(recordatorio_lock, recordatorio_update) as stored."""
        with self._session_factory() as session:
            row = session.execute(
                select(Credito.recordatorio_lock, Credito.recordatorio_update)
                .where(Credito.id == credito_id)
            ).one()
            return bool(row[0]), row[1]


@pytest.fixture
def builder(session_factory):
    return ReminderDataBuilder(session_factory)


# =============================================================================
# Collaborator fakes
# =============================================================================


class RecordingTransport:
    """MessageTransport that records sends; per-contact failures on demand."""

    def __init__(self, available: bool = True):
        self.available = available
        self.sent: list[tuple[str, str]] = []
        self.failures: dict[str, Exception] = {}
        self.status_checks = 0
        self.sender: str | None = SENDER_PHONE

    def is_available(self) -> bool:
        self.status_checks += 1
        return self.available

    def send(self, contact: str, text: str) -> str:
        if not self.available:
            raise TransportUnavailableError()
        error = self.failures.get(contact)
        if error is not None:
            raise error
        self.sent.append((contact, text))
        return f"MSG{len(self.sent):04d}"

    def texts_to(self, contact: str) -> list[str]:
        return [text for to, text in self.sent if to == contact]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def clock():
    return DeterministicClock(fixed_time=NOON_LOCAL.astimezone(timezone.utc))


@pytest.fixture
def settings():
    return ReminderSettings(empresa_id=1, send_delay_ms=0)


def days_from_today(n: int) -> date:
    return TODAY + timedelta(days=n)

"""
Module: reminder_kernel.selectors.eligibility_selector
Responsibility: The eligibility query -- which credits of a tenant are due
    for a repayment reminder right now.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

A credit is eligible when all of these hold:
    - it belongs to the tenant and is not voided (``anulado``)
    - it was not created today (``fecha_alta``)
    - its borrower's ``estado`` is not in the excluded set
    - its borrower was not announced today (``anunciado_fecha``; NULL passes)
    - it has unpaid installments whose sum is > 0
    - its nearest unpaid due date is <= today + horizon days
    - its lock is not held
    - it was not already notified today (``recordatorio_update`` NULL or
      before the tenant's start of day)

Balances are derived at query time: unpaid installments plus unpaid penalty
interest.  Results are ordered by nearest due date, then credit id.

The query computes the aggregates in joined subqueries and uses no
GROUP BY / HAVING on the outer statement, so it runs unchanged on
PostgreSQL, MySQL and SQLite.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from reminder_kernel.models.credit import UNPAID, Credito, Cuota, CuotaInteresPunitorio
from reminder_kernel.models.party import Empresa, Persona
from reminder_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class EligibleCredit:
    """One credit selected for a reminder, with its derived balances."""

    id_credito: int
    id_cliente: int
    nombre: str
    celular: str | None
    nombre_empresa: str | None
    cbu_alias: str | None
    fecha_vencimiento: date | None
    fecha_proxima_visita: date | None
    total_cuotas: Decimal
    total_intereses: Decimal
    correo: str | None = None

    @property
    def total_deuda(self) -> Decimal:
        return self.total_cuotas + self.total_intereses


class EligibilitySelector(BaseSelector):
    """Read-only eligibility query over credits, installments and borrowers."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_eligible(
        self,
        empresa_id: int,
        today: date,
        day_start_utc: datetime,
        excluded_statuses: Iterable[int] = (5, 7, 8, 9),
        horizon_days: int = 5,
    ) -> tuple[EligibleCredit, ...]:
        """
        Return the credits due for a reminder.

        Args:
            empresa_id: Tenant whose credits are considered.
            today: Current calendar date in the tenant time zone.
            day_start_utc: Tenant-local midnight of ``today``, in UTC.  A
                credit notified at or after this instant is skipped.
            excluded_statuses: Borrower ``estado`` values never reminded.
            horizon_days: How many days ahead a due date may be.
        """
        deuda = (
            select(
                Cuota.id_credito.label("id_credito"),
                func.min(Cuota.fecha_vencimiento).label("fecha_vencimiento"),
                func.sum(Cuota.valor).label("sum_valor"),
            )
            .where(Cuota.estado == UNPAID)
            .group_by(Cuota.id_credito)
            .subquery("deuda")
        )
        intereses = (
            select(
                CuotaInteresPunitorio.id_credito.label("id_credito"),
                func.sum(CuotaInteresPunitorio.valor).label("total_sum"),
            )
            .where(CuotaInteresPunitorio.pagado == UNPAID)
            .group_by(CuotaInteresPunitorio.id_credito)
            .subquery("intereses")
        )

        stmt = (
            select(
                Credito.id,
                Persona.id,
                Persona.nombre,
                Persona.correo,
                Persona.celular,
                Empresa.nombre,
                Empresa.cbu_alias,
                Credito.fecha_proxima_visita,
                deuda.c.fecha_vencimiento,
                deuda.c.sum_valor,
                intereses.c.total_sum,
            )
            .join(Persona, Credito.id_cliente == Persona.id)
            .outerjoin(Empresa, Empresa.id == Persona.id_empresa)
            .join(deuda, deuda.c.id_credito == Credito.id)
            .outerjoin(intereses, intereses.c.id_credito == Credito.id)
            .where(
                Credito.id_empresa == empresa_id,
                Credito.anulado.is_(False),
                Credito.fecha_alta != today,
                Credito.recordatorio_lock.is_(False),
                or_(
                    Credito.recordatorio_update.is_(None),
                    Credito.recordatorio_update < day_start_utc,
                ),
                Persona.estado.not_in(list(excluded_statuses)),
                or_(
                    Persona.anunciado_fecha.is_(None),
                    Persona.anunciado_fecha != today,
                ),
                deuda.c.sum_valor > 0,
                deuda.c.fecha_vencimiento <= today + timedelta(days=horizon_days),
            )
            .order_by(deuda.c.fecha_vencimiento.asc(), Credito.id.asc())
        )

        return tuple(
            EligibleCredit(
                id_credito=row[0],
                id_cliente=row[1],
                nombre=row[2],
                correo=row[3],
                celular=row[4],
                nombre_empresa=row[5],
                cbu_alias=row[6],
                fecha_proxima_visita=row[7],
                fecha_vencimiento=row[8],
                total_cuotas=_to_decimal(row[9]),
                total_intereses=_to_decimal(row[10]),
            )
            for row in self.session.execute(stmt).all()
        )


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))

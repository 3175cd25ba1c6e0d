"""
Module: reminder_kernel.models.credit
Responsibility: ORM mappings of credits (``creditos``), their installments
    (``cuotas``) and penalty interest rows (``cuotas_interes_punitorio``).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - The reminder engine writes exactly two columns of ``creditos``:
      ``recordatorio_lock`` and ``recordatorio_update``, always through
      single UPDATE statements (never through ORM attribute changes).
    - ``recordatorio_lock = true`` means a dispatch attempt is in flight or
      failed and was deliberately kept.  Taking the lock stamps
      ``recordatorio_update``, so a held lock stamped before today's
      midnight is an orphan and is cleared by the first run of the day.
    - Installment ``estado = 0`` and penalty ``pagado = 0`` mean unpaid.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from reminder_kernel.db.base import Base, Identifier

UNPAID = 0


class Credito(Base):
    """Installment obligation owed by one borrower."""

    __tablename__ = "creditos"

    __table_args__ = (
        Index("ix_creditos_empresa_lock", "id_empresa", "recordatorio_lock"),
    )

    id: Mapped[int] = mapped_column(Identifier, primary_key=True)
    id_empresa: Mapped[int] = mapped_column(
        Identifier, ForeignKey("empresas.id"), nullable=False,
    )
    id_cliente: Mapped[int] = mapped_column(
        Identifier, ForeignKey("persona.id"), nullable=False,
    )
    anulado: Mapped[bool] = mapped_column(default=False, nullable=False)
    fecha_alta: Mapped[date] = mapped_column(nullable=False)
    fecha_proxima_visita: Mapped[date | None] = mapped_column(nullable=True)
    recordatorio_lock: Mapped[bool] = mapped_column(default=False, nullable=False)
    recordatorio_update: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Credito {self.id} lock={self.recordatorio_lock}>"


class Cuota(Base):
    """One scheduled installment of a credit."""

    __tablename__ = "cuotas"

    __table_args__ = (
        Index("ix_cuotas_credito_estado", "id_credito", "estado"),
    )

    id: Mapped[int] = mapped_column(Identifier, primary_key=True)
    id_credito: Mapped[int] = mapped_column(
        Identifier, ForeignKey("creditos.id"), nullable=False,
    )
    fecha_vencimiento: Mapped[date] = mapped_column(nullable=False)
    valor: Mapped[Decimal] = mapped_column(nullable=False)
    estado: Mapped[int] = mapped_column(default=UNPAID, nullable=False)


class CuotaInteresPunitorio(Base):
    """Late-payment penalty interest accrued on a credit."""

    __tablename__ = "cuotas_interes_punitorio"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True)
    id_credito: Mapped[int] = mapped_column(
        Identifier, ForeignKey("creditos.id"), nullable=False,
    )
    valor: Mapped[Decimal] = mapped_column(nullable=False)
    pagado: Mapped[int] = mapped_column(default=UNPAID, nullable=False)

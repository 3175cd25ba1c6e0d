"""
Module: reminder_kernel.models.party
Responsibility: ORM mappings of the tenant (``empresas``) and borrower
    (``persona``) tables.  Both tables are owned by the main lending
    application; the reminder engine only reads them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``cron_recordatorio`` is kept as text because the legacy schema stores
      the flag inconsistently ("1", "si", "true", ...).  Use
      ``Empresa.reminders_enabled`` to read it.
"""

from datetime import date

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from reminder_kernel.config import parse_db_boolean
from reminder_kernel.db.base import Base, Identifier


class Empresa(Base):
    """Tenant: a lending business with its own borrowers and payment alias."""

    __tablename__ = "empresas"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    cron_recordatorio: Mapped[str | None] = mapped_column(String(10), nullable=True)
    cbu_alias: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @property
    def reminders_enabled(self) -> bool:
        return parse_db_boolean(self.cron_recordatorio)

    def __repr__(self) -> str:
        return f"<Empresa {self.id}: {self.nombre}>"


class Persona(Base):
    """Borrower contact record."""

    __tablename__ = "persona"

    __table_args__ = (
        Index("ix_persona_empresa", "id_empresa"),
    )

    id: Mapped[int] = mapped_column(Identifier, primary_key=True)
    id_empresa: Mapped[int] = mapped_column(
        Identifier, ForeignKey("empresas.id"), nullable=False,
    )
    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    correo: Mapped[str | None] = mapped_column(String(200), nullable=True)
    celular: Mapped[str | None] = mapped_column(String(50), nullable=True)
    estado: Mapped[int] = mapped_column(default=0, nullable=False)
    anunciado_fecha: Mapped[date | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Persona {self.id}: {self.nombre}>"

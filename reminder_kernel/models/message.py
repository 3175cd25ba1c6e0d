"""
Module: reminder_kernel.models.message
Responsibility: ORM mapping of the outbound message log (``crm_mensajes``)
    shared with the CRM inbox.  Rows written by the reminder engine carry
    ``id_operador = 0``.
"""

from datetime import datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reminder_kernel.db.base import Base, Identifier

CRON_OPERATOR = 0


class CrmMensaje(Base):
    """One message sent to a borrower."""

    __tablename__ = "crm_mensajes"

    __table_args__ = (
        Index("ix_crm_mensajes_empresa_to", "id_empresa", "to"),
    )

    id: Mapped[int] = mapped_column(Identifier, primary_key=True)
    id_empresa: Mapped[int] = mapped_column(Identifier, nullable=False)
    id_msg: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    from_number: Mapped[str | None] = mapped_column(
        "from", String(50), nullable=True,
    )
    to_number: Mapped[str] = mapped_column("to", String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    adjunto: Mapped[str | None] = mapped_column(String(500), nullable=True)
    quoted_stanza_id: Mapped[str] = mapped_column(
        "quotedStanzaID", String(100), default="", nullable=False,
    )
    id_operador: Mapped[int] = mapped_column(default=CRON_OPERATOR, nullable=False)
    fecha_reg: Mapped[datetime] = mapped_column(nullable=False)

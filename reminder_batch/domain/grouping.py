"""
Batcher: turn eligible credits into one recipient group per contact phone.

The sending policy is applied first, so a group only holds credits that are
due a reminder today.  Groups keep the first-appearance order of the input,
which the eligibility query sorts by nearest due date; the dispatcher's
per-run cap therefore favours the most urgent borrowers.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable
from zoneinfo import ZoneInfo

from reminder_batch.domain.calendar import days_until_due, is_today
from reminder_batch.domain.policy import should_send_today
from reminder_batch.domain.types import CreditLine, EligibleCredit, RecipientGroup
from reminder_kernel.logging_config import get_logger

logger = get_logger("batch.grouping")


def contact_key(celular: object) -> str:
    """Trimmed phone string used to group credits; empty when unusable."""
    if celular is None:
        return ""
    return str(celular).strip()


def group_by_contact(
    credits: Iterable[EligibleCredit],
    today: date,
    day_of_week: int,
    tz: ZoneInfo,
) -> tuple[RecipientGroup, ...]:
    buckets: dict[str, dict] = {}

    for credit in credits:
        key = contact_key(credit.celular)
        if not key:
            logger.warning(
                "credit_dropped_no_contact",
                extra={"id_credito": credit.id_credito},
            )
            continue

        dias = days_until_due(credit.fecha_vencimiento, today, tz)
        if dias is None:
            logger.warning(
                "credit_dropped_bad_due_date",
                extra={
                    "id_credito": credit.id_credito,
                    "fecha_vencimiento": str(credit.fecha_vencimiento),
                },
            )
            continue

        if not should_send_today(day_of_week, dias, credit.id_credito):
            continue

        bucket = buckets.get(key)
        if bucket is None:
            bucket = {
                "nombre": credit.nombre,
                "nombre_empresa": credit.nombre_empresa,
                "cbu_alias": credit.cbu_alias,
                "visita_hoy": False,
                "creditos": [],
            }
            buckets[key] = bucket

        if is_today(credit.fecha_proxima_visita, today, tz):
            bucket["visita_hoy"] = True

        bucket["creditos"].append(
            CreditLine(
                id_credito=credit.id_credito,
                dias=dias,
                total_deuda=credit.total_deuda,
            )
        )

    return tuple(
        RecipientGroup(
            celular=key,
            nombre=b["nombre"],
            nombre_empresa=b["nombre_empresa"],
            cbu_alias=b["cbu_alias"],
            visita_hoy=b["visita_hoy"],
            creditos=tuple(b["creditos"]),
        )
        for key, b in buckets.items()
    )

"""
Settlement promotion rule.

A credit qualifies for the half-balance settlement offer only for the promo
tenant, only while the promo window is open (start inclusive, end
exclusive), only once it is overdue by at least ``min_days_overdue`` days and
only when the outstanding balance reaches ``min_balance``.  The offer amount
is computed, never stored.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from reminder_kernel.config import PromoSettings


def is_promo_eligible(
    empresa_id: int,
    dias_vencido: int,
    total_deuda: Decimal,
    today: date,
    promo: PromoSettings,
) -> bool:
    return (
        empresa_id == promo.empresa_id
        and promo.is_open(today)
        and dias_vencido >= promo.min_days_overdue
        and Decimal(total_deuda) >= promo.min_balance
    )


def promo_amount(total_deuda: Decimal) -> Decimal:
    """Half the balance, rounded half-up to a whole currency unit."""
    return (Decimal(total_deuda) / 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def days_left(today: date, promo: PromoSettings) -> int | None:
    if promo.end is None:
        return None
    return (promo.end - today).days


def countdown_text(today: date, promo: PromoSettings) -> str:
    """Urgency line, only on the configured countdown days; else empty."""
    remaining = days_left(today, promo)
    if remaining is None or remaining not in promo.countdown_days:
        return ""
    if remaining == 1:
        return "⏳ ¡Queda *1 día* de promo!"
    return f"⏳ ¡Quedan *{remaining} días* de promo!"

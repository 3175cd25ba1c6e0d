"""
Message composer.

Renders the WhatsApp text for one recipient group.  Variant selection, in
priority order:

    1. Visit notice      -- a collector visits the borrower today.
    2. Grouped reminder  -- more than one credit locked for this contact.
    3. Promotion         -- the single credit qualifies for the settlement
                            promo.
    4. Overdue           -- due date already passed.
    5. Due today / tomorrow / in N days.

All but the visit notice end with a link to the first credit's summary.

Templates are written as lists of lines and passed through ``dedent`` so the
final text never carries source indentation, whatever was interpolated.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from reminder_batch.domain.promo import countdown_text, is_promo_eligible, promo_amount
from reminder_batch.domain.types import CreditLine, MessageContext, RecipientGroup
from reminder_kernel.exceptions import MessageCompositionError

_LEADING_WS = re.compile(r"^[ \t]+", re.MULTILINE)
_INDENT = re.compile(r"^ *")

SUMMARY_PROMPT = "👉 Ver resumen:"


# =============================================================================
# Text helpers
# =============================================================================


def dedent(text: str | Iterable[str]) -> str:
    """
    Normalize template text.

    Drops leading and trailing blank lines, removes the common indentation,
    strips trailing whitespace on every line and then any leading whitespace
    left over (interpolated multi-line values carry their own).  Blank lines
    inside the text are kept.
    """
    if isinstance(text, str):
        lines = text.split("\n")
    else:
        lines = "\n".join(text).split("\n")

    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()

    non_blank = [line for line in lines if line.strip()]
    indent = min((len(_INDENT.match(line).group(0)) for line in non_blank), default=0)

    joined = "\n".join(line[indent:].rstrip() for line in lines)
    return _LEADING_WS.sub("", joined)


def format_currency(amount: Decimal | int | float) -> str:
    """Amount in es-AR style: ``19500 -> 19.500``, ``1234.5 -> 1.234,5``."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    value = abs(value)

    whole = int(value)
    grouped = f"{whole:,}".replace(",", ".")
    cents = f"{value:.2f}".split(".")[1].rstrip("0")
    if cents:
        return f"{sign}{grouped},{cents}"
    return f"{sign}{grouped}"


def describe_due_status(dias: int) -> str:
    if dias < 0:
        return f"Vencido hace {abs(dias)} días"
    if dias == 0:
        return "Vence hoy"
    if dias == 1:
        return "Vence mañana"
    return f"Vence en {dias} días"


def credit_link(link_base: str, id_credito: int) -> str:
    return f"{link_base}?id={id_credito}"


def payment_methods(cbu_alias: str | None) -> list[str]:
    """Payment methods block; bank transfer only when the tenant has an alias."""
    lines = [
        "*Formas de pago*",
        "- RapiPago",
        "- PagoFácil",
        "- Saldo MercadoPago",
    ]
    alias = (cbu_alias or "").strip()
    if alias:
        lines += [
            "- Transferencia",
            alias,
            "",
            "📎 Luego de pagar, podés *responder este mensaje con el comprobante*.",
        ]
    return lines


# =============================================================================
# Variants
# =============================================================================


def compose_visit_notice(nombre: str) -> str:
    return dedent(
        f"""
        Hola {nombre}, nuestro motorizado pasará por *tu casa hoy* 🏠👈🏍️ por la cuota, si tienes alguna preferencia de hora dínosla para evitar que no te encontremos.
        """
    )


def _promo_eligible(credit: CreditLine, context: MessageContext) -> bool:
    return is_promo_eligible(
        context.empresa_id,
        credit.dias_vencido,
        credit.total_deuda,
        context.today,
        context.promo,
    )


def _single_promo(
    group: RecipientGroup, credit: CreditLine, context: MessageContext,
) -> list[str]:
    offer = format_currency(promo_amount(credit.total_deuda))
    lines = [
        f"*{context.promo.title}* 🥳",
        group.nombre,
        "",
        "Cancelá tu cuenta con el *50% de la deuda total*",
        "",
        f"💰 Deuda actual: ${format_currency(credit.total_deuda)}",
        f"🔥 Promo cancelatoria: ${offer}",
        "",
        f"Transferí ${offer}",
    ]
    alias = (group.cbu_alias or "").strip()
    if alias:
        lines.append(f"Alias: *{alias}*")
    countdown = countdown_text(context.today, context.promo)
    if countdown:
        lines += ["", countdown]
    lines += [
        "",
        "🔒 _No se reciben pagos parciales para aplicar a la promoción_",
    ]
    return lines


def _single_reminder(
    group: RecipientGroup, credit: CreditLine,
) -> list[str]:
    if credit.dias < 0:
        return [
            "*CUOTA VENCIDA* 🚨",
            group.nombre,
            "",
            "Tu cuota se encuentra vencida.",
            describe_due_status(credit.dias),
            f"Deuda: ${format_currency(credit.total_deuda)}",
            "",
            *payment_methods(group.cbu_alias),
        ]

    if credit.dias == 0:
        headline = "Tu cuota vence *HOY* 👀"
    elif credit.dias == 1:
        headline = "Tu cuota vence *mañana* 😅"
    else:
        headline = f"Tu cuota vence en {credit.dias} días 🙂"

    return [
        "*RECORDATORIO*",
        group.nombre,
        headline,
        "",
        *payment_methods(group.cbu_alias),
    ]


def _grouped(
    group: RecipientGroup,
    credits: Sequence[CreditLine],
    context: MessageContext,
) -> list[str]:
    lines = [
        "*RECORDATORIO*",
        group.nombre,
        "",
        f"Tenés {len(credits)} crédito(s) para revisar:",
        "",
    ]
    for credit in credits:
        lines += [
            f"• Crédito #{credit.id_credito}",
            describe_due_status(credit.dias),
            f"Deuda: ${format_currency(credit.total_deuda)}",
            credit_link(context.link_base, credit.id_credito),
            "",
        ]
    lines += payment_methods(group.cbu_alias)

    eligible = [c for c in credits if _promo_eligible(c, context)]
    countdown = countdown_text(context.today, context.promo)
    if eligible and countdown:
        lines += ["", f"🔥 *{context.promo.title}*"]
        for credit in eligible:
            lines.append(
                f"Crédito #{credit.id_credito}: cancelalo con "
                f"${format_currency(promo_amount(credit.total_deuda))}"
                " (50% de la deuda)"
            )
        lines.append(countdown)
    return lines


def compose_message(
    group: RecipientGroup,
    credits: Sequence[CreditLine],
    context: MessageContext,
) -> str:
    """
    Build the text for ``group`` covering ``credits``.

    ``credits`` is the subset of the group's credits whose lock this worker
    holds; only those are mentioned.

    Raises:
        MessageCompositionError: ``credits`` is empty or the borrower has no
            name to address.
    """
    if not credits:
        raise MessageCompositionError(group.celular, "no credits to report")
    if not (group.nombre or "").strip():
        raise MessageCompositionError(group.celular, "borrower has no name")

    if group.visita_hoy:
        return compose_visit_notice(group.nombre)

    credit = credits[0]
    if len(credits) > 1:
        lines = _grouped(group, credits, context)
    elif credit.dias < 0 and _promo_eligible(credit, context):
        lines = _single_promo(group, credit, context)
    else:
        lines = _single_reminder(group, credit)
    # every variant closes on the summary of the first listed credit
    lines += ["", SUMMARY_PROMPT, credit_link(context.link_base, credit.id_credito)]
    return dedent(lines)

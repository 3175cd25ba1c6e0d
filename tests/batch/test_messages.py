"""Tests for reminder_batch.domain.messages -- message composer."""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from reminder_batch.domain.messages import (
    compose_message,
    compose_visit_notice,
    dedent,
    describe_due_status,
    format_currency,
    payment_methods,
)
from reminder_batch.domain.types import CreditLine, MessageContext, RecipientGroup
from reminder_kernel.config import DEFAULT_LINK_BASE, PromoSettings
from reminder_kernel.exceptions import MessageCompositionError

TODAY = date(2026, 3, 4)
OPEN_PROMO = PromoSettings(start=date(2026, 3, 1), end=date(2026, 3, 9))  # 5 days left


def _group(
    *lines: CreditLine,
    alias: str | None = None,
    visita: bool = False,
    nombre: str = "LEANDRO DAVID JUÁREZ",
) -> RecipientGroup:
    return RecipientGroup(
        celular="3815551111",
        nombre=nombre,
        nombre_empresa="Levsu",
        cbu_alias=alias,
        visita_hoy=visita,
        creditos=tuple(lines),
    )


def _context(empresa_id: int = 1, promo: PromoSettings | None = None) -> MessageContext:
    return MessageContext(
        today=TODAY,
        empresa_id=empresa_id,
        link_base=DEFAULT_LINK_BASE,
        promo=promo or PromoSettings(),
    )


# =============================================================================
# dedent
# =============================================================================


class TestDedent:
    def test_strips_outer_blank_lines_and_indent(self):
        text = """

            *RECORDATORIO*
            Leandro

              nested
        """
        assert dedent(text) == "*RECORDATORIO*\nLeandro\n\nnested"

    def test_interpolated_block_loses_leading_whitespace(self):
        formas = dedent(
            """
            *Formas de pago*
            - RapiPago
            - PagoFácil
            - Transferencia
            """
        )
        mensaje = dedent(
            f"""
            *RECORDATORIO*
            LEANDRO DAVID JUÁREZ

            Tenés 1 crédito(s) para revisar:

            • Crédito #1651673431
            Vencido hace 1298 días
            Deuda: $19.500
            https://cuotafacil.com/cuotas.php?id=1651673431

            {formas}
            """
        )
        for line in mensaje.split("\n"):
            assert not line.startswith(" ")
        assert "- PagoFácil" in mensaje.split("\n")

    def test_accepts_lines(self):
        assert dedent(["", "  a", "    b  ", ""]) == "a\nb"

    def test_all_blank(self):
        assert dedent("\n   \n") == ""

    @given(st.lists(st.text(alphabet=" \tab*\n", max_size=12), max_size=8))
    def test_no_line_has_outer_whitespace(self, lines):
        result = dedent(lines)
        for line in result.split("\n"):
            assert line == line.strip(" \t")
        if result:
            assert result.split("\n")[0].strip()
            assert result.split("\n")[-1].strip()


# =============================================================================
# Formatting helpers
# =============================================================================


class TestFormatting:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (Decimal("19500"), "19.500"),
            (Decimal("19500.00"), "19.500"),
            (Decimal("1234.5"), "1.234,5"),
            (Decimal("1234567.89"), "1.234.567,89"),
            (Decimal("999"), "999"),
            (0, "0"),
        ],
    )
    def test_currency(self, amount, expected):
        assert format_currency(amount) == expected

    @pytest.mark.parametrize(
        "dias, expected",
        [
            (-1298, "Vencido hace 1298 días"),
            (0, "Vence hoy"),
            (1, "Vence mañana"),
            (4, "Vence en 4 días"),
        ],
    )
    def test_due_status(self, dias, expected):
        assert describe_due_status(dias) == expected

    def test_payment_methods_without_alias(self):
        lines = payment_methods(None)
        assert "- Saldo MercadoPago" in lines
        assert not any("Transferencia" in line for line in lines)

    def test_payment_methods_with_alias(self):
        lines = payment_methods("LevsuMuebles.mp")
        assert "- Transferencia" in lines
        assert "LevsuMuebles.mp" in lines
        assert any("comprobante" in line for line in lines)


# =============================================================================
# Variants
# =============================================================================


class TestSingleCredit:
    def test_overdue_scenario(self):
        credit = CreditLine(id_credito=1651673431, dias=-1298, total_deuda=Decimal("19500"))
        text = compose_message(_group(credit), [credit], _context())

        assert text.startswith("*CUOTA VENCIDA* 🚨\nLEANDRO DAVID JUÁREZ")
        assert "Vencido hace 1298 días" in text
        assert "Deuda: $19.500" in text
        assert "Transferencia" not in text
        assert text.endswith("https://cuotafacil.com/cuotas.php?id=1651673431")

    def test_due_today(self):
        credit = CreditLine(id_credito=7, dias=0, total_deuda=Decimal("5000"))
        text = compose_message(_group(credit), [credit], _context())
        assert "Tu cuota vence *HOY* 👀" in text
        assert text.startswith("*RECORDATORIO*")

    def test_due_tomorrow(self):
        credit = CreditLine(id_credito=7, dias=1, total_deuda=Decimal("5000"))
        assert "vence *mañana*" in compose_message(_group(credit), [credit], _context())

    def test_due_in_days(self):
        credit = CreditLine(id_credito=7, dias=4, total_deuda=Decimal("5000"))
        assert "Tu cuota vence en 4 días 🙂" in compose_message(
            _group(credit), [credit], _context(),
        )

    def test_alias_adds_transfer(self):
        credit = CreditLine(id_credito=7, dias=0, total_deuda=Decimal("5000"))
        text = compose_message(_group(credit, alias="ALIAS.EMPRESA"), [credit], _context())
        assert "- Transferencia\nALIAS.EMPRESA" in text

    def test_promo_variant(self):
        credit = CreditLine(id_credito=9, dias=-25, total_deuda=Decimal("250001"))
        text = compose_message(
            _group(credit, alias="LevsuMuebles.mp"), [credit], _context(promo=OPEN_PROMO),
        )
        assert text.startswith("*SUPER PROMO CANCELATORIA* 🥳")
        assert "💰 Deuda actual: $250.001" in text
        assert "🔥 Promo cancelatoria: $125.001" in text
        assert "Alias: *LevsuMuebles.mp*" in text
        assert "*5 días*" in text
        assert "*CUOTA VENCIDA*" not in text
        assert text.endswith("?id=9")

    def test_promo_without_countdown_line(self):
        promo = PromoSettings(start=date(2026, 3, 1), end=date(2026, 3, 12))  # 8 days left
        credit = CreditLine(id_credito=9, dias=-25, total_deuda=Decimal("250000"))
        text = compose_message(_group(credit), [credit], _context(promo=promo))
        assert "SUPER PROMO" in text
        assert "⏳" not in text

    def test_promo_only_for_promo_tenant(self):
        credit = CreditLine(id_credito=9, dias=-25, total_deuda=Decimal("250000"))
        text = compose_message(
            _group(credit), [credit], _context(empresa_id=2, promo=OPEN_PROMO),
        )
        assert text.startswith("*CUOTA VENCIDA*")


class TestVisitNotice:
    def test_replaces_reminder(self):
        credit = CreditLine(id_credito=7, dias=-3, total_deuda=Decimal("5000"))
        text = compose_message(_group(credit, visita=True, nombre="Leandro"), [credit], _context())
        assert text.startswith("Hola Leandro,")
        assert "motorizado pasará por *tu casa hoy*" in text
        assert "CUOTA VENCIDA" not in text

    def test_notice_text(self):
        assert compose_visit_notice("Ana").startswith("Hola Ana, nuestro motorizado")


class TestGrouped:
    def _credits(self):
        return [
            CreditLine(id_credito=10, dias=-30, total_deuda=Decimal("300000")),
            CreditLine(id_credito=11, dias=2, total_deuda=Decimal("1500.5")),
        ]

    def test_lists_each_credit_with_link(self):
        credits = self._credits()
        text = compose_message(_group(*credits), credits, _context())

        assert "Tenés 2 crédito(s) para revisar:" in text
        assert "• Crédito #10\nVencido hace 30 días\nDeuda: $300.000\n" in text
        assert "• Crédito #11\nVence en 2 días\nDeuda: $1.500,5\n" in text
        assert f"{DEFAULT_LINK_BASE}?id=10" in text
        assert f"{DEFAULT_LINK_BASE}?id=11" in text
        assert text.count("*Formas de pago*") == 1
        assert "SUPER PROMO" not in text

    def test_ends_with_summary_link(self):
        credits = self._credits()
        text = compose_message(_group(*credits), credits, _context())
        *_, blank, prompt, last = text.splitlines()
        assert blank == ""
        assert prompt == "👉 Ver resumen:"
        assert last == f"{DEFAULT_LINK_BASE}?id=10"

    def test_promo_block_appended_once(self):
        credits = self._credits()
        text = compose_message(_group(*credits), credits, _context(promo=OPEN_PROMO))
        assert text.count("SUPER PROMO CANCELATORIA") == 1
        assert "Crédito #10: cancelalo con $150.000" in text
        assert "Crédito #11: cancelalo" not in text
        assert "⏳ ¡Quedan *5 días* de promo!\n\n👉 Ver resumen:\n" in text
        assert text.splitlines()[-1] == f"{DEFAULT_LINK_BASE}?id=10"

    def test_promo_block_needs_countdown(self):
        promo = PromoSettings(start=date(2026, 3, 1), end=date(2026, 3, 12))
        credits = self._credits()
        text = compose_message(_group(*credits), credits, _context(promo=promo))
        assert "SUPER PROMO" not in text

    def test_only_locked_subset_mentioned(self):
        credits = self._credits()
        text = compose_message(_group(*credits), credits[1:], _context())
        assert "Tenés" not in text
        assert "Crédito #10" not in text
        assert text.endswith("?id=11")


class TestCompositionErrors:
    def test_no_credits(self):
        credit = CreditLine(id_credito=7, dias=0, total_deuda=Decimal("1"))
        with pytest.raises(MessageCompositionError) as exc_info:
            compose_message(_group(credit), [], _context())
        assert exc_info.value.code == "MESSAGE_COMPOSITION_FAILED"

    def test_nameless_borrower(self):
        credit = CreditLine(id_credito=7, dias=0, total_deuda=Decimal("1"))
        with pytest.raises(MessageCompositionError):
            compose_message(_group(credit, nombre="  "), [credit], _context())

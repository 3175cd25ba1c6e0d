"""
reminder_batch.domain.types -- Pure frozen dataclasses for the reminder batch.

ZERO I/O.  Every stage of a run returns one of these instead of raising for
control flow: the dispatcher returns a DispatchSummary made of GroupResults,
the engine returns a ReminderRunResult.

Invariants enforced:
    - All DTOs are frozen dataclasses with tuples for collections.
    - A RecipientGroup keeps its credits in the order they were selected
      (nearest due date first).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from reminder_kernel.config import PromoSettings
from reminder_kernel.selectors.eligibility_selector import EligibleCredit

__all__ = [
    "CreditLine",
    "DispatchSummary",
    "EligibleCredit",
    "GroupResult",
    "GroupStatus",
    "MessageContext",
    "RecipientGroup",
    "ReminderRunResult",
    "RunStatus",
    "SkipReason",
    "TenantSettings",
    "TriggerSource",
]


# =============================================================================
# Status enums
# =============================================================================


class TriggerSource(str, Enum):
    """What started a run."""

    CRON = "cron"  # Interval trigger
    MANUAL = "manual"  # Operator request


class RunStatus(str, Enum):
    """Outcome of one run."""

    COMPLETED = "completed"  # Dispatch loop ran (possibly sending nothing)
    SKIPPED = "skipped"  # Configuration condition; nothing selected
    ABORTED = "aborted"  # Infrastructure error; retried by the next tick


class SkipReason(str, Enum):
    RUN_IN_PROGRESS = "run_in_progress"
    TRANSPORT_UNAVAILABLE = "transport_unavailable"
    TENANT_NOT_FOUND = "tenant_not_found"
    TENANT_DISABLED = "tenant_disabled"
    OUTSIDE_HOURS = "outside_hours"


class GroupStatus(str, Enum):
    """Outcome for one recipient group."""

    SENT = "sent"  # Delivered; locks released and notification stamped
    SEND_FAILED = "send_failed"  # Transport failed; locks retained
    LOCK_CONTENDED = "lock_contended"  # Another worker holds every lock
    SKIPPED = "skipped"  # Data error (bad contact / composition); locks retained


# =============================================================================
# Tenant and selection DTOs
# =============================================================================


@dataclass(frozen=True)
class TenantSettings:
    """Per-tenant values read from the ``empresas`` table."""

    empresa_id: int
    nombre: str
    reminders_enabled: bool
    cbu_alias: str | None = None


@dataclass(frozen=True)
class CreditLine:
    """One credit inside a recipient group."""

    id_credito: int
    dias: int  # Days until the nearest due date; negative when overdue
    total_deuda: Decimal

    @property
    def dias_vencido(self) -> int:
        return -self.dias if self.dias < 0 else 0


@dataclass(frozen=True)
class RecipientGroup:
    """Credits that share a contact phone and get a single message."""

    celular: str
    nombre: str
    nombre_empresa: str | None
    cbu_alias: str | None
    visita_hoy: bool
    creditos: tuple[CreditLine, ...]

    @property
    def credit_ids(self) -> tuple[int, ...]:
        return tuple(c.id_credito for c in self.creditos)

    def restricted_to(self, ids: set[int] | frozenset[int]) -> tuple[CreditLine, ...]:
        """The credit lines whose id is in ``ids``, in group order."""
        return tuple(c for c in self.creditos if c.id_credito in ids)


@dataclass(frozen=True)
class MessageContext:
    """Everything besides the group that a message depends on."""

    today: date
    empresa_id: int
    link_base: str
    promo: PromoSettings = field(default_factory=PromoSettings)


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class GroupResult:
    """Outcome of dispatching one recipient group."""

    celular: str
    status: GroupStatus
    credit_ids: tuple[int, ...]
    locked_ids: tuple[int, ...] = ()
    message_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class DispatchSummary:
    """Aggregated outcome of the dispatch loop."""

    results: tuple[GroupResult, ...] = ()
    cap_reached: bool = False

    def _count(self, status: GroupStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def sent(self) -> int:
        return self._count(GroupStatus.SENT)

    @property
    def errors(self) -> int:
        return self._count(GroupStatus.SEND_FAILED)

    @property
    def contended(self) -> int:
        return self._count(GroupStatus.LOCK_CONTENDED)

    @property
    def skipped(self) -> int:
        return self._count(GroupStatus.SKIPPED)


@dataclass(frozen=True)
class ReminderRunResult:
    """Immutable outcome of one reminder run."""

    run_id: str
    trigger: TriggerSource
    status: RunStatus
    started_at: datetime
    completed_at: datetime | None = None
    skip_reason: SkipReason | None = None
    reclaimed_locks: int = 0
    eligible_count: int = 0
    group_count: int = 0
    summary: DispatchSummary = field(default_factory=DispatchSummary)
    error_kind: str | None = None
    error_message: str | None = None

    @property
    def sent(self) -> int:
        return self.summary.sent

    @property
    def errors(self) -> int:
        return self.summary.errors

"""ORM mappings of the system-of-record tables."""

from reminder_kernel.models.credit import UNPAID, Credito, Cuota, CuotaInteresPunitorio
from reminder_kernel.models.message import CRON_OPERATOR, CrmMensaje
from reminder_kernel.models.party import Empresa, Persona


__all__ = [
    "CRON_OPERATOR",
    "UNPAID",
    "CrmMensaje",
    "Credito",
    "Cuota",
    "CuotaInteresPunitorio",
    "Empresa",
    "Persona",
]

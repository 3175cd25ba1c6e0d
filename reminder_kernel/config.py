"""
Configuration for the reminder engine.

Responsibility:
    Builds immutable settings objects from the process environment, with an
    optional YAML file as the base layer.  Environment variables always win
    over file values so a deployment can override a single key.

Failure modes:
    - ConfigurationError for a missing tenant id, a non-integer where an
      integer is expected, an hour outside 0-23, an unknown time zone, or an
      unreadable YAML file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from reminder_kernel.exceptions import ConfigurationError

DEFAULT_TIME_ZONE = "America/Argentina/Buenos_Aires"
DEFAULT_CRON_EXPRESSION = "*/30 * * * *"
DEFAULT_LINK_BASE = "https://cuotafacil.com/cuotas.php"

_TRUTHY = frozenset({"1", "true", "t", "si", "sí", "on", "yes", "y"})


def parse_db_boolean(value: Any) -> bool:
    """Interpret a legacy flag column or env value as a boolean.

    Accepts real booleans, numbers (only 1 is true) and the strings
    ``1 true t si sí on yes y`` in any case.  ``None`` is false.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value == 1
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


# ---------------------------------------------------------------------------
# Settings dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PromoSettings:
    """Time-boxed settlement promotion."""

    empresa_id: int = 1
    start: date | None = None
    end: date | None = None  # exclusive
    min_balance: Decimal = Decimal("200000")
    min_days_overdue: int = 20
    countdown_days: tuple[int, ...] = (10, 5, 3, 2, 1)
    title: str = "SUPER PROMO CANCELATORIA"

    def is_open(self, today: date) -> bool:
        if self.start is None or self.end is None:
            return False
        return self.start <= today < self.end


@dataclass(frozen=True)
class TransportSettings:
    """WhatsApp gateway connection."""

    base_url: str = "http://localhost:3000"
    token: str | None = None
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class DatabaseSettings:
    url: str | None = None
    pool_size: int = 5
    echo: bool = False


@dataclass(frozen=True)
class ReminderSettings:
    """All recognized options for one tenant process."""

    empresa_id: int
    start_hour: int = 9
    end_hour: int = 20
    cron_expression: str = DEFAULT_CRON_EXPRESSION
    max_sends_per_run: int = 50
    send_delay_ms: int = 700
    time_zone: str = DEFAULT_TIME_ZONE
    due_horizon_days: int = 5
    excluded_statuses: tuple[int, ...] = (5, 7, 8, 9)
    link_base: str = DEFAULT_LINK_BASE
    promo: PromoSettings = field(default_factory=PromoSettings)
    transport: TransportSettings = field(default_factory=TransportSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        for name in ("start_hour", "end_hour"):
            hour = getattr(self, name)
            if not 0 <= hour <= 23:
                raise ConfigurationError(name, f"hour {hour} outside 0-23")
        if self.max_sends_per_run < 0:
            raise ConfigurationError("max_sends_per_run", "must be >= 0")
        if self.send_delay_ms < 0:
            raise ConfigurationError("send_delay_ms", "must be >= 0")
        try:
            ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError("time_zone", str(exc)) from None

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    @property
    def send_delay_seconds(self) -> float:
        return self.send_delay_ms / 1000

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
    ) -> ReminderSettings:
        """Create settings from environment variables.

        If ``REMINDER_CONFIG_FILE`` is set, the YAML file it names provides
        defaults (same variable names as keys); the environment overrides it.
        """
        env = dict(os.environ if environ is None else environ)

        merged: dict[str, str] = {}
        config_file = env.get("REMINDER_CONFIG_FILE")
        if config_file:
            merged.update(load_yaml_settings(Path(config_file)))
        merged.update({k: v for k, v in env.items() if v != ""})

        def get(name: str, default: str | None = None) -> str | None:
            return merged.get(name, default)

        empresa = get("ID_EMPRESA")
        if empresa is None:
            raise ConfigurationError("ID_EMPRESA", "is required")

        log_dir = get("REMINDER_LOG_DIR")

        promo = PromoSettings(
            empresa_id=_int("PROMO_EMPRESA_ID", get("PROMO_EMPRESA_ID", "1")),
            start=_date("PROMO_START", get("PROMO_START")),
            end=_date("PROMO_END", get("PROMO_END")),
            min_balance=_decimal(
                "PROMO_MIN_BALANCE", get("PROMO_MIN_BALANCE", "200000"),
            ),
            min_days_overdue=_int(
                "PROMO_MIN_DAYS_OVERDUE", get("PROMO_MIN_DAYS_OVERDUE", "20"),
            ),
            countdown_days=_int_tuple(
                "PROMO_COUNTDOWN_DAYS", get("PROMO_COUNTDOWN_DAYS", "10,5,3,2,1"),
            ),
            title=get("PROMO_TITLE", "SUPER PROMO CANCELATORIA"),
        )

        transport = TransportSettings(
            base_url=get("WA_GATEWAY_URL", "http://localhost:3000"),
            token=get("WA_GATEWAY_TOKEN"),
            timeout_seconds=_float(
                "WA_GATEWAY_TIMEOUT", get("WA_GATEWAY_TIMEOUT", "15"),
            ),
        )

        database = DatabaseSettings(
            url=get("DATABASE_URL"),
            pool_size=_int("DATABASE_POOL_SIZE", get("DATABASE_POOL_SIZE", "5")),
            echo=parse_db_boolean(get("DATABASE_ECHO", "false")),
        )

        return cls(
            empresa_id=_int("ID_EMPRESA", empresa),
            start_hour=_int("CRON_START_HOUR", get("CRON_START_HOUR", "9")),
            end_hour=_int("CRON_END_HOUR", get("CRON_END_HOUR", "20")),
            cron_expression=get("CRON_EXPRESSION", DEFAULT_CRON_EXPRESSION),
            max_sends_per_run=_int(
                "REMINDER_MAX_SENDS", get("REMINDER_MAX_SENDS", "50"),
            ),
            send_delay_ms=_int(
                "REMINDER_SEND_DELAY_MS", get("REMINDER_SEND_DELAY_MS", "700"),
            ),
            time_zone=get("REMINDER_TIME_ZONE", DEFAULT_TIME_ZONE),
            due_horizon_days=_int(
                "REMINDER_DUE_HORIZON_DAYS", get("REMINDER_DUE_HORIZON_DAYS", "5"),
            ),
            excluded_statuses=_int_tuple(
                "REMINDER_EXCLUDED_STATUSES",
                get("REMINDER_EXCLUDED_STATUSES", "5,7,8,9"),
            ),
            link_base=get("REMINDER_LINK_BASE", DEFAULT_LINK_BASE),
            promo=promo,
            transport=transport,
            database=database,
            log_level=get("LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
        )


def load_yaml_settings(path: Path) -> dict[str, str]:
    """Read a flat YAML mapping of setting names to values.

    Values are stringified so they go through the same parsing as
    environment variables; lists become comma-separated strings.
    """
    try:
        with path.open(encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError("REMINDER_CONFIG_FILE", str(exc)) from None

    if not isinstance(raw, dict):
        raise ConfigurationError(
            "REMINDER_CONFIG_FILE", f"{path} must contain a mapping",
        )

    result: dict[str, str] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            result[str(key)] = ",".join(str(v) for v in value)
        else:
            result[str(key)] = str(value)
    return result


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _int(name: str, raw: str | None) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(name, f"expected an integer, got {raw!r}") from None


def _float(name: str, raw: str | None) -> float:
    try:
        return float(str(raw).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(name, f"expected a number, got {raw!r}") from None


def _decimal(name: str, raw: str | None) -> Decimal:
    try:
        return Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ConfigurationError(name, f"expected a number, got {raw!r}") from None


def _date(name: str, raw: str | None) -> date | None:
    if raw is None or not str(raw).strip():
        return None
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError:
        raise ConfigurationError(name, f"expected YYYY-MM-DD, got {raw!r}") from None


def _int_tuple(name: str, raw: str | None) -> tuple[int, ...]:
    if raw is None or not str(raw).strip():
        return ()
    return tuple(_int(name, part) for part in str(raw).split(",") if part.strip())

#!/usr/bin/env python3
"""
Run the repayment reminder batch for the configured tenant.

Settings come from the environment (ID_EMPRESA, DATABASE_URL, WA_GATEWAY_URL,
CRON_START_HOUR, CRON_END_HOUR, ...) optionally layered over the YAML file
named by REMINDER_CONFIG_FILE.

Usage:
    python3 scripts/run_reminders.py --now      # one manual run, then exit
    python3 scripts/run_reminders.py --serve    # interval trigger until stopped

Exit codes (--now):
    0  run completed
    1  configuration error or run aborted (database / gateway failure)
    2  run skipped or rejected (disabled tenant, outside hours, gateway
       disconnected, another run in progress)
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from reminder_batch.domain.types import RunStatus, TriggerSource  # noqa: E402
from reminder_batch.orchestrator import ReminderOrchestrator  # noqa: E402
from reminder_kernel.config import ReminderSettings  # noqa: E402
from reminder_kernel.exceptions import ConfigurationError, ScheduleError  # noqa: E402
from reminder_kernel.logging_config import configure_logging  # noqa: E402

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SKIPPED = 2


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dispatch repayment reminders over WhatsApp.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--now",
        action="store_true",
        help="Trigger one run immediately and exit with its outcome.",
    )
    mode.add_argument(
        "--serve",
        action="store_true",
        help="Run the interval trigger (CRON_EXPRESSION) until SIGINT/SIGTERM.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    try:
        settings = ReminderSettings.from_env()
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILED

    configure_logging(level=settings.log_level, log_dir=settings.log_dir)

    try:
        orchestrator = ReminderOrchestrator.from_settings(settings)
        scheduler = orchestrator.create_scheduler()
    except (ConfigurationError, ScheduleError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILED

    try:
        if args.now:
            result = scheduler.trigger(TriggerSource.MANUAL)
            print(
                f"Run {result.run_id}: {result.status.value}"
                + (f" ({result.skip_reason.value})" if result.skip_reason else "")
                + f" | sent={result.sent} errors={result.errors}"
            )
            if result.status == RunStatus.COMPLETED:
                return EXIT_OK
            if result.status == RunStatus.SKIPPED:
                return EXIT_SKIPPED
            return EXIT_FAILED

        def _shutdown(signum, frame):
            scheduler.stop()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

        scheduler.start()
        print(f"Scheduler running ({settings.cron_expression}); Ctrl+C to stop.")
        scheduler.wait()
        return EXIT_OK
    finally:
        orchestrator.close()


if __name__ == "__main__":
    sys.exit(main())

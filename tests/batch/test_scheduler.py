"""
ReminderScheduler tests -- run guard, transport gate and interval loop.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from reminder_batch.domain.types import (
    ReminderRunResult,
    RunStatus,
    SkipReason,
    TriggerSource,
)
from reminder_batch.services.scheduler import ReminderScheduler
from reminder_kernel.domain.clock import Clock
from reminder_kernel.exceptions import InvalidCronExpressionError
from tests.conftest import TZ


class FakeEngine:
    """Records runs; optionally blocks until released."""

    def __init__(self, block: bool = False):
        self.sources: list[TriggerSource] = []
        self.entered = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def run(self, trigger: TriggerSource = TriggerSource.CRON) -> ReminderRunResult:
        self.sources.append(trigger)
        self.entered.set()
        self.release.wait(timeout=5)
        now = datetime.now(timezone.utc)
        return ReminderRunResult(
            run_id="r1", trigger=trigger, status=RunStatus.COMPLETED,
            started_at=now, completed_at=now,
        )


class SteppingClock(Clock):
    """Each reading is one minute after the previous one."""

    def __init__(self, start: datetime):
        self._current = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            self._current += timedelta(minutes=1)
            return self._current

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def make_scheduler(transport, clock):
    def _make(engine, cron="*/30 * * * *", scheduler_clock=None):
        return ReminderScheduler(
            engine, transport, cron_expression=cron, tz=TZ,
            clock=scheduler_clock or clock,
        )

    return _make


# =============================================================================
# trigger()
# =============================================================================


class TestTrigger:
    def test_manual_trigger_runs_engine(self, engine, make_scheduler):
        result = make_scheduler(engine).trigger()
        assert result.status == RunStatus.COMPLETED
        assert engine.sources == [TriggerSource.MANUAL]

    def test_transport_unavailable_skips(self, engine, make_scheduler, transport):
        transport.available = False

        result = make_scheduler(engine).trigger(TriggerSource.CRON)

        assert result.status == RunStatus.SKIPPED
        assert result.skip_reason == SkipReason.TRANSPORT_UNAVAILABLE
        assert result.trigger == TriggerSource.CRON
        assert engine.sources == []

    def test_overlapping_trigger_rejected(self, make_scheduler):
        engine = FakeEngine(block=True)
        scheduler = make_scheduler(engine)
        worker = threading.Thread(target=scheduler.trigger, args=(TriggerSource.CRON,))
        worker.start()
        try:
            assert engine.entered.wait(timeout=5)
            assert scheduler.run_in_progress is True

            result = scheduler.trigger(TriggerSource.MANUAL)

            assert result.status == RunStatus.SKIPPED
            assert result.skip_reason == SkipReason.RUN_IN_PROGRESS
        finally:
            engine.release.set()
            worker.join(timeout=5)

        assert engine.sources == [TriggerSource.CRON]
        assert scheduler.run_in_progress is False

    def test_guard_released_after_engine_error(self, make_scheduler):
        class ExplodingEngine:
            def run(self, trigger):
                raise RuntimeError("boom")

        scheduler = make_scheduler(ExplodingEngine())
        with pytest.raises(RuntimeError):
            scheduler.trigger()
        assert scheduler.run_in_progress is False


# =============================================================================
# Cron evaluation
# =============================================================================


class TestNextFireTime:
    def test_from_clock(self, engine, make_scheduler):
        # Clock reads 12:00 local.
        assert make_scheduler(engine).next_fire_time() == datetime(2026, 3, 4, 12, 30, tzinfo=TZ)

    def test_explicit_after(self, engine, make_scheduler):
        after = datetime(2026, 3, 4, 12, 45, tzinfo=TZ)
        assert make_scheduler(engine).next_fire_time(after) == datetime(2026, 3, 4, 13, 0, tzinfo=TZ)

    def test_invalid_expression_rejected(self, engine, make_scheduler):
        with pytest.raises(InvalidCronExpressionError):
            make_scheduler(engine, cron="every half hour")

    def test_never_firing_expression_rejected(self, engine, make_scheduler):
        with pytest.raises(InvalidCronExpressionError):
            make_scheduler(engine, cron="0 0 31 2 *")


# =============================================================================
# Interval loop
# =============================================================================


class TestLoop:
    def test_start_and_stop(self, engine, make_scheduler):
        scheduler = make_scheduler(engine)
        scheduler.start()
        assert scheduler.is_running
        scheduler.stop(timeout=5)
        assert not scheduler.is_running

    def test_start_is_idempotent(self, engine, make_scheduler):
        scheduler = make_scheduler(engine)
        scheduler.start()
        first = scheduler._thread
        scheduler.start()
        assert scheduler._thread is first
        scheduler.stop(timeout=5)

    def test_tick_triggers_cron_run(self, engine, make_scheduler):
        stepping = SteppingClock(datetime(2026, 3, 4, 12, 0, tzinfo=TZ))
        scheduler = make_scheduler(engine, cron="* * * * *", scheduler_clock=stepping)

        scheduler.start()
        try:
            assert engine.entered.wait(timeout=5)
        finally:
            scheduler.stop(timeout=5)

        assert engine.sources[0] == TriggerSource.CRON

    def test_tick_exception_does_not_kill_loop(self, make_scheduler, captured_logs):
        calls = threading.Event()
        count = []

        class FlakyEngine:
            def run(self, trigger):
                count.append(trigger)
                if len(count) >= 2:
                    calls.set()
                raise RuntimeError("boom")

        stepping = SteppingClock(datetime(2026, 3, 4, 12, 0, tzinfo=TZ))
        scheduler = make_scheduler(FlakyEngine(), cron="* * * * *", scheduler_clock=stepping)

        scheduler.start()
        try:
            assert calls.wait(timeout=5)
        finally:
            scheduler.stop(timeout=5)

        assert any(r["message"] == "scheduler_tick_exception" for r in captured_logs())

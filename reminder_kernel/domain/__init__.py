"""Pure kernel domain helpers (time abstraction)."""

from reminder_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "DeterministicClock", "SystemClock"]

"""Pure kernel domain primitives (no I/O)."""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = ["Clock", "SystemClock", "DeterministicClock"]

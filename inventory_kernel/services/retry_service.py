"""
retry_on_contention -- re-run an atomic stock operation after transient
store contention.

Responsibility:
    Classifies database errors as transient (deadlock, lock timeout,
    serialization failure, lazy-create race) and re-runs the caller's
    operation from scratch with exponential backoff.

Architecture position:
    Kernel > Services.  Wraps calls into the stock, production and alert
    services; never called from inside a unit of work.

Failure modes:
    - The last transient error is re-raised once ``max_attempts`` is spent.
    - Non-transient errors (validation, not found, integrity violations
      other than the lazy-create race) propagate on the first attempt.

Usage:
    result = retry_on_contention(
        lambda: service.transfer(...),
        max_attempts=3,
    )
"""

import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from inventory_kernel.exceptions import ConcurrencyError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.retry_service")

T = TypeVar("T")

# PostgreSQL SQLSTATEs: deadlock_detected, serialization_failure,
# lock_not_available
_TRANSIENT_PGCODES = frozenset({"40P01", "40001", "55P03"})

_TRANSIENT_MARKERS = (
    "deadlock",
    "lock timeout",
    "lock wait timeout",
    "could not obtain lock",
    "could not serialize",
    "database is locked",
)


def is_transient_error(exc: BaseException) -> bool:
    """True when re-running the whole operation may succeed."""
    if isinstance(exc, ConcurrencyError):
        return True
    if isinstance(exc, DBAPIError):
        pgcode = getattr(exc.orig, "pgcode", None)
        if pgcode in _TRANSIENT_PGCODES:
            return True
        if isinstance(exc, OperationalError):
            text = str(exc.orig).lower()
            return any(marker in text for marker in _TRANSIENT_MARKERS)
    return False


def retry_on_contention(
    operation: Callable[[], T],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``operation`` and retry it while it fails with a transient error.

    Preconditions:
        - ``operation`` is self-contained: it opens its own unit of work,
          so a failed attempt left nothing behind.
        - ``max_attempts >= 1``.

    Args:
        operation: Zero-argument callable performing one atomic operation.
        max_attempts: Total attempts including the first.
        base_delay: Delay before the second attempt, doubled each retry.
        max_delay: Upper bound for a single delay.
        sleep: Injected for tests.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return operation()
        except (ConcurrencyError, DBAPIError) as exc:
            if not is_transient_error(exc) or attempt >= max_attempts:
                raise
            delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
            logger.warning(
                "contention_retry",
                extra={
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "delay_seconds": delay,
                    "error_type": type(exc).__name__,
                },
            )
            sleep(delay)
            attempt += 1

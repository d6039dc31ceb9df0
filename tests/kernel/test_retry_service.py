"""
Tests for retry_on_contention: transient errors are retried from scratch,
everything else propagates on the first attempt.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from inventory_kernel.exceptions import (
    ConcurrencyError,
    StockContentionError,
    ValidationError,
)
from inventory_kernel.services.retry_service import is_transient_error, retry_on_contention


class _Flaky:
    """Fails with ``error`` for the first ``failures`` calls."""

    def __init__(self, error, failures):
        self.error = error
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "done"


class _Pg:
    def __init__(self, pgcode):
        self.pgcode = pgcode


class TestIsTransientError:

    def test_concurrency_errors_are_transient(self):
        assert is_transient_error(StockContentionError("FLOUR", "W1", "race"))

    def test_deadlock_pgcode(self):
        assert is_transient_error(OperationalError("SELECT 1", {}, _Pg("40P01")))

    def test_sqlite_locked_message(self):
        assert is_transient_error(
            OperationalError("SELECT 1", {}, Exception("database is locked"))
        )

    def test_integrity_error_is_not_transient(self):
        assert not is_transient_error(IntegrityError("INSERT", {}, Exception("unique")))

    def test_validation_error_is_not_transient(self):
        assert not is_transient_error(ValidationError("bad"))


class TestRetryOnContention:

    def test_retries_until_success(self):
        sleeps = []
        op = _Flaky(ConcurrencyError("contended"), failures=2)

        assert retry_on_contention(op, max_attempts=3, sleep=sleeps.append) == "done"
        assert op.calls == 3
        assert sleeps == [0.05, 0.1]

    def test_exhausted_attempts_reraise(self):
        op = _Flaky(ConcurrencyError("contended"), failures=5)

        with pytest.raises(ConcurrencyError):
            retry_on_contention(op, max_attempts=2, sleep=lambda _: None)
        assert op.calls == 2

    def test_non_transient_propagates_immediately(self):
        op = _Flaky(ValidationError("bad"), failures=1)

        with pytest.raises(ValidationError):
            retry_on_contention(op, max_attempts=3, sleep=lambda _: None)
        assert op.calls == 1

    def test_delay_is_capped(self):
        sleeps = []
        op = _Flaky(ConcurrencyError("contended"), failures=3)

        retry_on_contention(
            op, max_attempts=4, base_delay=0.5, max_delay=0.6, sleep=sleeps.append,
        )
        assert sleeps == [0.5, 0.6, 0.6]

    def test_logs_each_retry(self, captured_logs):
        op = _Flaky(ConcurrencyError("contended"), failures=1)

        retry_on_contention(op, sleep=lambda _: None)

        retries = [r for r in captured_logs() if r["message"] == "contention_retry"]
        assert len(retries) == 1
        assert retries[0]["error_type"] == "ConcurrencyError"

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            retry_on_contention(lambda: None, max_attempts=0)

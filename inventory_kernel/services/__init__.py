"""Kernel services."""

from inventory_kernel.services.retry_service import (
    is_transient_error,
    retry_on_contention,
)

__all__ = ["is_transient_error", "retry_on_contention"]

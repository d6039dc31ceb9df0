"""Read-only query selectors."""

from inventory_kernel.selectors.base import MAX_PAGE_SIZE, BaseSelector

__all__ = ["MAX_PAGE_SIZE", "BaseSelector"]

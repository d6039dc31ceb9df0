"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryKernelError:

    InventoryKernelError (base)
    |
    +-- ValidationError
    |   +-- InsufficientStockError
    |   +-- InvalidTransitionError
    |   +-- DuplicateBatchReferenceError
    |   +-- AlertAlreadyResolvedError
    |   +-- InvalidTransactionError
    |
    +-- NotFoundError
    |   +-- StockRecordNotFoundError
    |   +-- BatchNotFoundError
    |   +-- RecipeNotFoundError
    |   +-- AlertNotFoundError
    |
    +-- ConcurrencyError
    |   +-- StockContentionError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                       | When Raised
--------------|----------------------------|-------------------------------------------
Validation    | VALIDATION_ERROR           | Malformed input, non-positive quantities
              | INSUFFICIENT_STOCK         | available < required for an outbound op
              | INVALID_BATCH_TRANSITION   | Batch action not allowed from its status
              | DUPLICATE_BATCH_REFERENCE  | Batch reference already used
              | ALERT_ALREADY_RESOLVED     | resolve() on a resolved alert
              | INVALID_TRANSACTION        | Transaction variant missing required fields
--------------|----------------------------|-------------------------------------------
Not found     | NOT_FOUND                  | Generic missing entity
              | STOCK_RECORD_NOT_FOUND     | No stock record for (item, location)
              | BATCH_NOT_FOUND            | Production batch id unknown
              | RECIPE_NOT_FOUND           | Recipe provider has no such recipe
              | ALERT_NOT_FOUND            | Alert id unknown
--------------|----------------------------|-------------------------------------------
Concurrency   | STOCK_CONTENTION           | Lock wait / unique-key race on a stock row
--------------|----------------------------|-------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION     | UPDATE/DELETE on the transaction/movement log
--------------|----------------------------|-------------------------------------------
Config        | CONFIGURATION_ERROR        | Invalid settings file or value

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and not-found errors are surfaced to the caller unmodified.
   They are never retried: insufficient stock does not heal with time.

2. ConcurrencyError subclasses are transient.  The caller re-runs the
   whole atomic operation from scratch (see
   ``inventory_kernel.services.retry_service.retry_on_contention``).

3. Use structured attributes rather than parsing messages:

    except InsufficientStockError as e:
        return {
            "error": e.code,
            "item_id": e.item_id,
            "required": str(e.required),
            "available": str(e.available),
        }
"""

from decimal import Decimal


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Validation errors


class ValidationError(InventoryKernelError):
    """Malformed input or an operation the current state does not allow."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        self.details = details or {}
        super().__init__(message)


class InsufficientStockError(ValidationError):
    """Not enough available stock at a location for the requested quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: str,
        location_id: str,
        required: Decimal,
        available: Decimal,
        details: dict | None = None,
    ):
        self.item_id = item_id
        self.location_id = location_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id} at {location_id}: "
            f"required {required}, available {available}",
            details,
        )


class InvalidTransitionError(ValidationError):
    """Production batch action not permitted from its current status."""

    code: str = "INVALID_BATCH_TRANSITION"

    def __init__(self, batch_id: str, from_status: str, action: str):
        self.batch_id = batch_id
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} batch {batch_id} in status {from_status}"
        )


class DuplicateBatchReferenceError(ValidationError):
    """Batch reference is already taken."""

    code: str = "DUPLICATE_BATCH_REFERENCE"

    def __init__(self, batch_ref: str):
        self.batch_ref = batch_ref
        super().__init__(f"Batch reference already exists: {batch_ref}")


class AlertAlreadyResolvedError(ValidationError):
    """Alert has already been resolved."""

    code: str = "ALERT_ALREADY_RESOLVED"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert is already resolved: {alert_id}")


class InvalidTransactionError(ValidationError):
    """A transaction variant is missing a field it requires."""

    code: str = "INVALID_TRANSACTION"

    def __init__(self, transaction_type: str, reason: str):
        self.transaction_type = transaction_type
        self.reason = reason
        super().__init__(f"Invalid {transaction_type} transaction: {reason}")


# Not-found errors


class NotFoundError(InventoryKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class StockRecordNotFoundError(NotFoundError):
    """No stock record exists for the (item, location) pair."""

    code: str = "STOCK_RECORD_NOT_FOUND"

    def __init__(self, item_id: str, location_id: str):
        self.item_id = item_id
        self.location_id = location_id
        super().__init__("StockRecord", f"{item_id}@{location_id}")


class BatchNotFoundError(NotFoundError):
    """Production batch does not exist."""

    code: str = "BATCH_NOT_FOUND"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__("ProductionBatch", batch_id)


class RecipeNotFoundError(NotFoundError):
    """Recipe provider has no recipe under this id."""

    code: str = "RECIPE_NOT_FOUND"

    def __init__(self, recipe_id: str):
        self.recipe_id = recipe_id
        super().__init__("Recipe", recipe_id)


class AlertNotFoundError(NotFoundError):
    """Alert does not exist."""

    code: str = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__("Alert", alert_id)


# Concurrency errors


class ConcurrencyError(InventoryKernelError):
    """Base exception for transient store contention."""

    code: str = "CONCURRENCY_ERROR"


class StockContentionError(ConcurrencyError):
    """Two transactions raced on the same stock row."""

    code: str = "STOCK_CONTENTION"

    def __init__(self, item_id: str, location_id: str, reason: str):
        self.item_id = item_id
        self.location_id = location_id
        self.reason = reason
        super().__init__(
            f"Contention on stock {item_id}@{location_id}: {reason}"
        )


# Immutability errors


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only ledger row."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration errors


class ConfigurationError(InventoryKernelError):
    """Settings file or value is invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for {field}: {reason}")

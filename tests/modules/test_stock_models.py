"""
Stock domain model tests.

Each TransactionType is a closed variant with its own required fields and
quantity sign; a draft that breaks its variant's rules cannot be built.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.exceptions import InvalidTransactionError
from inventory_modules.stock.models import (
    AdjustmentDirection,
    ManualAction,
    Page,
    StockLevel,
    TransactionDraft,
    TransactionType,
)


def _draft(transaction_type, quantity, **kwargs):
    return TransactionDraft(
        transaction_type=transaction_type,
        item_id="FLOUR",
        location_id="W1",
        quantity=Decimal(quantity),
        reference=kwargs.pop("reference", "REF-1"),
        **kwargs,
    )


class TestTransactionDraftVariants:

    def test_purchase_requires_cost(self):
        with pytest.raises(InvalidTransactionError, match="cost_per_unit is required"):
            _draft(TransactionType.PURCHASE, "5")

    def test_purchase_requires_positive_quantity(self):
        with pytest.raises(InvalidTransactionError):
            _draft(TransactionType.PURCHASE, "-5", cost_per_unit=Decimal("1"))

    def test_valid_purchase(self):
        draft = _draft(TransactionType.PURCHASE, "5", cost_per_unit=Decimal("1"))

        assert draft.reserved_delta == Decimal("0")

    def test_sale_must_be_outbound(self):
        with pytest.raises(InvalidTransactionError):
            _draft(TransactionType.SALE, "5")

    def test_usage_requires_batch(self):
        with pytest.raises(InvalidTransactionError, match="production_batch_id"):
            _draft(TransactionType.USAGE, "-5")

    def test_valid_usage(self):
        _draft(TransactionType.USAGE, "-5", production_batch_id=uuid4())

    def test_transfer_requires_pair(self):
        with pytest.raises(InvalidTransactionError, match="paired_transaction_id"):
            _draft(TransactionType.TRANSFER, "-5")

    def test_transfer_cannot_pair_with_itself(self):
        txn_id = uuid4()
        with pytest.raises(InvalidTransactionError, match="itself"):
            _draft(
                TransactionType.TRANSFER, "-5",
                transaction_id=txn_id, paired_transaction_id=txn_id,
            )

    def test_adjustment_sign_matches_direction(self):
        with pytest.raises(InvalidTransactionError):
            _draft(
                TransactionType.ADJUSTMENT, "5",
                adjustment_direction=AdjustmentDirection.DECREASE,
            )
        with pytest.raises(InvalidTransactionError):
            _draft(TransactionType.ADJUSTMENT, "5")

    def test_manual_never_moves_quantity(self):
        with pytest.raises(InvalidTransactionError, match="quantity must be zero"):
            _draft(
                TransactionType.MANUAL, "1",
                manual_action=ManualAction.RESERVE, reserved_delta=Decimal("1"),
            )

    def test_release_needs_negative_reserved_delta(self):
        with pytest.raises(InvalidTransactionError):
            _draft(
                TransactionType.MANUAL, "0",
                manual_action=ManualAction.RELEASE, reserved_delta=Decimal("1"),
            )

    def test_reference_required(self):
        with pytest.raises(InvalidTransactionError, match="reference"):
            _draft(TransactionType.SALE, "-1", reference="")

    def test_negative_cost_rejected(self):
        with pytest.raises(InvalidTransactionError):
            _draft(TransactionType.SALE, "-1", cost_per_unit=Decimal("-1"))

    def test_rejection_is_logged(self, captured_logs):
        with pytest.raises(InvalidTransactionError):
            _draft(TransactionType.SALE, "1")

        rejected = [r for r in captured_logs() if r["message"] == "transaction_draft_rejected"]
        assert rejected[-1]["transaction_type"] == "SALE"


class TestStockLevel:

    def _level(self, quantity, reserved):
        return StockLevel(
            id=uuid4(),
            tenant_id="t1",
            item_id="FLOUR",
            location_id="W1",
            quantity=Decimal(quantity),
            reserved=Decimal(reserved),
        )

    def test_available_is_derived(self):
        assert self._level("10", "4").available == Decimal("6")

    @pytest.mark.parametrize("quantity, reserved", [("-1", "0"), ("5", "-1"), ("5", "6")])
    def test_invariants(self, quantity, reserved):
        with pytest.raises(ValueError):
            self._level(quantity, reserved)


class TestPage:

    def test_page_arithmetic(self):
        page = Page(items=(1, 2), total=5, page=1, limit=2)

        assert page.pages == 3
        assert page.has_next

    def test_last_page(self):
        page = Page(items=(5,), total=5, page=3, limit=2)

        assert not page.has_next

    def test_empty(self):
        page = Page(items=(), total=0, page=1, limit=20)

        assert page.pages == 0
        assert not page.has_next

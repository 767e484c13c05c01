"""
Tests for the payment allocation engine.

Covers:
- Manual allocation amount and edit clamping
- Oldest-first auto-allocation around existing allocations
- Submit-time validation issues
- Payment description
"""

from decimal import Decimal

import pytest

from backoffice_engines.allocation import (
    ALLOCATION_EXCEEDS_BALANCE,
    ALLOCATION_MISMATCH,
    ALLOCATION_NOT_POSITIVE,
    NO_ALLOCATIONS,
    PAYMENT_AMOUNT_NOT_POSITIVE,
    Allocation,
    AllocationTarget,
    auto_allocate,
    clamp_allocation,
    describe_payment,
    manual_allocation_amount,
    total_allocated,
    validate_allocations,
)


def _codes(issues):
    return [i.code for i in issues]


class TestManualAllocation:
    """Amounts for hand-picked invoices and edits."""

    def test_payment_smaller_than_balance(self):
        assert manual_allocation_amount(Decimal("300"), Decimal("120")) == Decimal("120")

    def test_balance_smaller_than_payment(self):
        assert manual_allocation_amount(Decimal("300"), Decimal("500")) == Decimal("300")

    def test_zero_payment_gives_zero(self):
        assert manual_allocation_amount(Decimal("300"), Decimal("0")) == Decimal("0")

    @pytest.mark.parametrize("value, expected", [
        ("250", "250"),
        ("450", "400"),
        ("-5", "0"),
    ])
    def test_clamp_to_balance(self, value, expected):
        assert clamp_allocation(Decimal(value), Decimal("400")) == Decimal(expected)


class TestAutoAllocate:
    """Oldest-first fill of unallocated invoices."""

    def setup_method(self):
        self.targets = [
            AllocationTarget("1", Decimal("300")),
            AllocationTarget("2", Decimal("400")),
        ]

    def test_fills_oldest_first(self):
        """500 over [300, 400] -> [300, 200]."""
        result = auto_allocate(Decimal("500"), self.targets)

        assert result == (
            Allocation("1", Decimal("300")),
            Allocation("2", Decimal("200")),
        )
        assert total_allocated(result) == Decimal("500")

    def test_stops_when_payment_spent(self):
        result = auto_allocate(Decimal("250"), self.targets)
        assert result == (Allocation("1", Decimal("250")),)

    def test_payment_larger_than_all_balances(self):
        result = auto_allocate(Decimal("1000"), self.targets)
        assert total_allocated(result) == Decimal("700")

    def test_existing_allocations_kept_and_consume_budget(self):
        existing = (Allocation("2", Decimal("100")),)
        result = auto_allocate(Decimal("500"), self.targets, existing)

        assert result == (
            Allocation("2", Decimal("100")),
            Allocation("1", Decimal("300")),
        )

    def test_second_run_adds_nothing(self):
        first = auto_allocate(Decimal("500"), self.targets)
        assert auto_allocate(Decimal("500"), self.targets, first) == first

    def test_over_allocated_existing_adds_nothing(self):
        existing = (Allocation("1", Decimal("600")),)
        result = auto_allocate(Decimal("500"), self.targets, existing)
        assert result == existing


class TestValidateAllocations:
    """Every reason a payment cannot be submitted."""

    def test_valid_payment(self):
        allocations = [Allocation("1", Decimal("300")), Allocation("2", Decimal("200"))]
        assert validate_allocations(Decimal("500"), allocations) == ()

    def test_mismatch_blocks_submit(self):
        """Invoice 1 at 300, invoice 2 edited to 250, payment 500."""
        allocations = [Allocation("1", Decimal("300")), Allocation("2", Decimal("250"))]
        issues = validate_allocations(Decimal("500"), allocations)

        assert _codes(issues) == [ALLOCATION_MISMATCH]
        assert issues[0].message == "Amount must match total allocated (550.00)"

    def test_non_positive_amount(self):
        issues = validate_allocations(Decimal("0"), [])
        assert _codes(issues) == [PAYMENT_AMOUNT_NOT_POSITIVE, NO_ALLOCATIONS]
        assert issues[0].message == "Amount must be greater than 0"

    def test_no_allocations(self):
        issues = validate_allocations(Decimal("100"), [])
        assert NO_ALLOCATIONS in _codes(issues)

    def test_zero_allocation_flagged(self):
        allocations = [Allocation("1", Decimal("100")), Allocation("2", Decimal("0"))]
        issues = validate_allocations(Decimal("100"), allocations)
        assert _codes(issues) == [ALLOCATION_NOT_POSITIVE]

    def test_allocation_above_balance_flagged(self):
        issues = validate_allocations(
            Decimal("350"),
            [Allocation("1", Decimal("350"))],
            balances={"1": Decimal("300")},
        )
        assert _codes(issues) == [ALLOCATION_EXCEEDS_BALANCE]


class TestDescribePayment:

    def test_names_invoices(self):
        assert describe_payment(["INV-1", "INV-2"]) == "Payment for INV-1, INV-2"

    def test_no_invoices(self):
        assert describe_payment([]) == "Payment"

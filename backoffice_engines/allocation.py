"""
Module: backoffice_engines.allocation
Responsibility:
    Arithmetic for spreading one customer payment across that customer's
    outstanding invoices: manual amounts, clamped edits, oldest-first
    auto-allocation, and the submit-time validation of the result.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The stateful editing session lives in
    ``backoffice_modules.receivables.allocation``.

Invariants enforced:
    - No allocation exceeds its invoice's outstanding balance.
    - Auto-allocation never overwrites an existing allocation and never
      spends more than the payment amount left after existing allocations.
    - A payment is submittable only when ``amount > 0``, it has at least one
      allocation, every allocation is positive, and the allocations sum to
      exactly the payment amount.

Failure modes:
    - Validation problems are returned as ``ValidationIssue`` values, not
      raised.  The caller decides when to turn them into an error.
    - Clamping an edit to the invoice balance is silent.

Usage:
    from backoffice_engines.allocation import AllocationTarget, auto_allocate

    allocations = auto_allocate(
        payment_amount=Decimal("500"),
        targets=[
            AllocationTarget("1", Decimal("300")),
            AllocationTarget("2", Decimal("400")),
        ],
        existing=(),
    )
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.domain.values import ZERO, to_decimal
from backoffice_kernel.exceptions import ValidationIssue
from backoffice_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")

# Issue codes
PAYMENT_DATE_REQUIRED = "PAYMENT_DATE_REQUIRED"
PAYMENT_AMOUNT_NOT_POSITIVE = "PAYMENT_AMOUNT_NOT_POSITIVE"
ALLOCATION_MISMATCH = "ALLOCATION_MISMATCH"
NO_ALLOCATIONS = "NO_ALLOCATIONS"
ALLOCATION_NOT_POSITIVE = "ALLOCATION_NOT_POSITIVE"
ALLOCATION_EXCEEDS_BALANCE = "ALLOCATION_EXCEEDS_BALANCE"


@dataclass(frozen=True)
class AllocationTarget:
    """An invoice that can receive part of a payment."""

    invoice_id: str
    balance: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "balance", to_decimal(self.balance))


@dataclass(frozen=True)
class Allocation:
    """Part of a payment applied to one invoice."""

    invoice_id: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


def total_allocated(allocations: Sequence[Allocation]) -> Decimal:
    return sum((a.amount for a in allocations), ZERO)


def manual_allocation_amount(balance: Decimal, payment_amount: Decimal) -> Decimal:
    """Initial amount for an invoice picked by hand: ``min(balance, payment)``."""
    return max(min(to_decimal(balance), to_decimal(payment_amount)), ZERO)


def clamp_allocation(value: Decimal, balance: Decimal) -> Decimal:
    """Clamp an edited amount to ``[0, balance]``.

    The remaining payment amount is deliberately not a bound here; an
    over-allocated payment is caught at submit.
    """
    return min(max(to_decimal(value), ZERO), to_decimal(balance))


@traced_engine(
    "payment_allocation", "1.0",
    fingerprint_fields=("payment_amount", "targets", "existing"),
)
def auto_allocate(
    payment_amount: Decimal,
    targets: Sequence[AllocationTarget],
    existing: Sequence[Allocation] = (),
) -> tuple[Allocation, ...]:
    """
    Fill unallocated invoices in the order given until the payment is spent.

    Existing allocations are kept as they are and consume budget first.
    Each untouched invoice gets ``min(balance, remaining)``; the walk stops
    once nothing remains.  Running it twice adds nothing the second time.

    Returns:
        Existing allocations followed by the new ones, in target order.
    """
    allocated_ids = {a.invoice_id for a in existing}
    remaining = to_decimal(payment_amount) - total_allocated(existing)
    result = list(existing)

    for target in targets:
        if remaining <= 0:
            break
        if target.invoice_id in allocated_ids or target.balance <= 0:
            continue
        amount = min(target.balance, remaining)
        result.append(Allocation(invoice_id=target.invoice_id, amount=amount))
        allocated_ids.add(target.invoice_id)
        remaining -= amount

    logger.info("auto_allocation_completed", extra={
        "payment_amount": str(payment_amount),
        "existing_count": len(existing),
        "added_count": len(result) - len(existing),
        "unallocated": str(remaining),
    })
    return tuple(result)


def validate_allocations(
    payment_amount: Decimal,
    allocations: Sequence[Allocation],
    balances: Mapping[str, Decimal] | None = None,
) -> tuple[ValidationIssue, ...]:
    """Every reason the payment cannot be submitted yet; empty when it can."""
    amount = to_decimal(payment_amount)
    allocated = total_allocated(allocations)
    issues: list[ValidationIssue] = []

    if amount <= 0:
        issues.append(ValidationIssue(
            "amount", PAYMENT_AMOUNT_NOT_POSITIVE, "Amount must be greater than 0",
        ))
    elif amount != allocated:
        issues.append(ValidationIssue(
            "amount", ALLOCATION_MISMATCH,
            f"Amount must match total allocated ({allocated:.2f})",
        ))

    if not allocations:
        issues.append(ValidationIssue(
            "invoice_allocations", NO_ALLOCATIONS,
            "At least one invoice allocation is required",
        ))

    for allocation in allocations:
        if allocation.amount <= 0:
            issues.append(ValidationIssue(
                "invoice_allocations", ALLOCATION_NOT_POSITIVE,
                f"Allocation for invoice {allocation.invoice_id} must be greater than 0",
            ))
        elif balances is not None and allocation.invoice_id in balances:
            if allocation.amount > to_decimal(balances[allocation.invoice_id]):
                issues.append(ValidationIssue(
                    "invoice_allocations", ALLOCATION_EXCEEDS_BALANCE,
                    f"Allocation for invoice {allocation.invoice_id} exceeds its balance",
                ))

    return tuple(issues)


def describe_payment(invoice_numbers: Sequence[str]) -> str:
    """Payment memo naming the invoices it settles."""
    numbers = [n for n in invoice_numbers if n]
    if not numbers:
        return "Payment"
    return "Payment for " + ", ".join(numbers)

"""
Module: backoffice_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for higher
    layers (backoffice_modules, backoffice_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import backoffice_kernel (and sibling engine modules).
    MUST NOT import backoffice_services or backoffice_modules.

Invariants enforced:
    - Purity: engines never read the clock; dates are passed in.
    - Decimal-only arithmetic for money.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from backoffice_engines.pricing import calculate_totals
    from backoffice_engines.allocation import auto_allocate
    from backoffice_engines.ledger import derive_balances
"""

from backoffice_engines.allocation import (
    Allocation,
    AllocationTarget,
    auto_allocate,
    clamp_allocation,
    describe_payment,
    manual_allocation_amount,
    total_allocated,
    validate_allocations,
)
from backoffice_engines.ledger import (
    BalanceCheck,
    CustomerAccountState,
    LedgerEntry,
    LedgerStatement,
    StatementLine,
    UtilizationLevel,
    account_state,
    classify_utilization,
    credit_utilization,
    cross_check_balance,
    derive_balances,
    statement_for_period,
)
from backoffice_engines.pricing import (
    Discount,
    DiscountPolicy,
    DiscountType,
    DocumentDiscount,
    DocumentTotals,
    LineItem,
    PerDocumentDiscount,
    PerItemDiscounts,
    balance_due,
    calculate_totals,
    item_discount_amount,
    item_total,
    line_amount,
)
from backoffice_engines.tracer import traced_engine

__all__ = [
    # Allocation
    "Allocation",
    "AllocationTarget",
    "auto_allocate",
    "clamp_allocation",
    "describe_payment",
    "manual_allocation_amount",
    "total_allocated",
    "validate_allocations",
    # Ledger
    "BalanceCheck",
    "CustomerAccountState",
    "LedgerEntry",
    "LedgerStatement",
    "StatementLine",
    "UtilizationLevel",
    "account_state",
    "classify_utilization",
    "credit_utilization",
    "cross_check_balance",
    "derive_balances",
    "statement_for_period",
    # Pricing
    "Discount",
    "DiscountPolicy",
    "DiscountType",
    "DocumentDiscount",
    "DocumentTotals",
    "LineItem",
    "PerDocumentDiscount",
    "PerItemDiscounts",
    "balance_due",
    "calculate_totals",
    "item_discount_amount",
    "item_total",
    "line_amount",
    # Tracing
    "traced_engine",
]

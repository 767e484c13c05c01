"""
Pricing Engine - Line-item and document totals for a sales invoice.

Responsibility:
    Computes line amounts, per-item discounts, item totals and the four
    document totals (subtotal, discount, tax, grand total) under one of two
    mutually exclusive discount policies.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The caller recomputes
    explicitly after every change to items, policy or document discount;
    nothing here is cached or observed.

Invariants enforced:
    - Decimal-only arithmetic; inputs are converted with ``to_decimal``.
    - Each document total is rounded to 2 dp (ROUND_HALF_UP) and
      ``grand_total == subtotal - discount_total + tax_total`` exactly.
    - A document-level discount never reduces the tax base.

Failure modes:
    - ValueError on line item values that do not parse as decimals.
    - Negative quantities, rates or discounts are NOT rejected; they flow
      through the arithmetic unchanged.  Input validation belongs to the
      form collecting them.

Usage:
    from backoffice_engines.pricing import (
        Discount, DiscountType, LineItem, PerItemDiscounts, calculate_totals,
    )

    item = LineItem(
        line_id="1", item_ref="SKU-1", description="Widget",
        quantity=2, rate=100, tax_rate_percent=10,
        discount=Discount(DiscountType.FLAT, 10),
    )
    totals = calculate_totals([item], PerItemDiscounts())
    print(totals.grand_total)  # Decimal('209.00')
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Protocol, Sequence, Union

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.domain.values import HUNDRED, ZERO, percent_of, round_money, to_decimal
from backoffice_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")


class DiscountType(str, Enum):
    """How a discount value is read."""

    PERCENT = "percentage"
    FLAT = "flat"


class DiscountPolicy(str, Enum):
    """Which discount fields are authoritative for a document."""

    PER_ITEM = "per_item"
    PER_DOCUMENT = "per_document"


@dataclass(frozen=True)
class Discount:
    """A percent or flat-amount discount."""

    type: DiscountType = DiscountType.PERCENT
    value: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", DiscountType(self.type))
        object.__setattr__(self, "value", to_decimal(self.value))

    @classmethod
    def none(cls) -> Discount:
        return cls(DiscountType.PERCENT, ZERO)


@dataclass(frozen=True)
class PerItemDiscounts:
    """Each line item's own discount applies; there is no document field."""

    @property
    def policy(self) -> DiscountPolicy:
        return DiscountPolicy.PER_ITEM


@dataclass(frozen=True)
class PerDocumentDiscount:
    """One discount on the whole document; line item discounts are ignored."""

    discount: Discount = field(default_factory=Discount.none)

    @property
    def policy(self) -> DiscountPolicy:
        return DiscountPolicy.PER_DOCUMENT


DocumentDiscount = Union[PerItemDiscounts, PerDocumentDiscount]


@dataclass(frozen=True)
class LineItem:
    """
    One line of an invoice draft.

    Contract:
        Numeric fields are normalized to Decimal at construction.  A line
        item only exists inside a draft; it has no persisted identity
        beyond ``line_id``.
    """

    line_id: str
    item_ref: str
    description: str = ""
    quantity: Decimal = Decimal("1")
    rate: Decimal = ZERO
    tax_rate_percent: Decimal = ZERO
    discount: Discount = field(default_factory=Discount.none)

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "rate", to_decimal(self.rate))
        object.__setattr__(self, "tax_rate_percent", to_decimal(self.tax_rate_percent))


@dataclass(frozen=True)
class DocumentTotals:
    """Derived document totals, each rounded to 2 dp."""

    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    grand_total: Decimal

    @classmethod
    def zero(cls) -> DocumentTotals:
        return cls(round_money(ZERO), round_money(ZERO), round_money(ZERO), round_money(ZERO))


class PaymentLike(Protocol):
    record: bool
    amount: Decimal


def line_amount(item: LineItem) -> Decimal:
    """``quantity * rate``, unrounded."""
    return item.quantity * item.rate


def item_discount_amount(item: LineItem) -> Decimal:
    """The item's own discount, unrounded.

    Only meaningful under the per-item policy.
    """
    if item.discount.type == DiscountType.FLAT:
        return item.discount.value
    return percent_of(line_amount(item), item.discount.value)


def _taxable_amount(item: LineItem, policy: DiscountPolicy) -> Decimal:
    if policy == DiscountPolicy.PER_ITEM:
        return line_amount(item) - item_discount_amount(item)
    return line_amount(item)


def item_total(item: LineItem, policy: DiscountPolicy) -> Decimal:
    """Line total including tax, rounded to 2 dp.

    Per-item: ``(qty*rate - item_discount) * (1 + tax/100)``.
    Per-document: ``qty*rate * (1 + tax/100)``.
    """
    base = _taxable_amount(item, policy)
    return round_money(base + percent_of(base, item.tax_rate_percent))


def document_discount_amount(discount: DocumentDiscount, items: Sequence[LineItem]) -> Decimal:
    """Total discount for the document under its policy, unrounded."""
    match discount:
        case PerDocumentDiscount(discount=doc):
            if doc.type == DiscountType.FLAT:
                return doc.value
            subtotal = sum((line_amount(i) for i in items), ZERO)
            return percent_of(subtotal, doc.value)
        case PerItemDiscounts():
            return sum((item_discount_amount(i) for i in items), ZERO)
        case _:
            raise TypeError(f"Unknown document discount: {discount!r}")


@traced_engine("pricing", "1.0", fingerprint_fields=("items", "discount"), level=logging.DEBUG)
def calculate_totals(
    items: Sequence[LineItem],
    discount: DocumentDiscount,
) -> DocumentTotals:
    """
    Compute the document totals in one pass over the items.

    Called after every edit to the draft, so it stays linear and does no
    work for logging unless DEBUG is enabled.  The grand total is derived
    from the already-rounded components, so the displayed figures always
    add up.

    Args:
        items: Line items in document order.
        discount: Per-item or per-document discount variant.

    Returns:
        DocumentTotals.
    """
    per_item = discount.policy == DiscountPolicy.PER_ITEM
    subtotal = ZERO
    item_discounts = ZERO
    tax = ZERO
    for item in items:
        amount = item.quantity * item.rate
        subtotal += amount
        if per_item:
            item_discount = item_discount_amount(item)
            item_discounts += item_discount
            amount -= item_discount
        tax += amount * item.tax_rate_percent
    tax = tax / HUNDRED

    if per_item:
        doc_discount = item_discounts
    else:
        doc_discount = document_discount_amount(discount, items)

    subtotal = round_money(subtotal)
    discount_total = round_money(doc_discount)
    tax_total = round_money(tax)
    grand_total = subtotal - discount_total + tax_total

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("pricing_totals_calculated", extra={
            "policy": discount.policy.value,
            "item_count": len(items),
            "subtotal": str(subtotal),
            "discount_total": str(discount_total),
            "tax_total": str(tax_total),
            "grand_total": str(grand_total),
        })

    return DocumentTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        tax_total=tax_total,
        grand_total=grand_total,
    )


def balance_due(totals: DocumentTotals, payment: PaymentLike) -> Decimal:
    """Amount left owing after the payment recorded with the invoice, if any."""
    if payment.record:
        return totals.grand_total - round_money(payment.amount)
    return totals.grand_total

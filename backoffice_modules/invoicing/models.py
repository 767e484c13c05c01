"""
Invoicing Domain Models (``backoffice_modules.invoicing.models``).

Responsibility
--------------
Frozen value objects for the invoice-creation wizard: the draft being
built, its payment details, the line-item editor and the wizard state that
owns them.  Pricing types (line items, discounts, totals) come from
``backoffice_engines.pricing`` and are re-exported here.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``; the wizard reducer replaces them.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum, IntEnum

from backoffice_engines.pricing import (
    Discount,
    DiscountPolicy,
    DiscountType,
    DocumentDiscount,
    DocumentTotals,
    LineItem,
    PerDocumentDiscount,
    PerItemDiscounts,
    calculate_totals,
)
from backoffice_kernel.domain.values import ZERO, to_decimal


class WizardStep(IntEnum):
    """Wizard screens, in display order."""
    CUSTOMER_AND_DATES = 1
    ITEMS = 2
    ADD_OR_EDIT_ITEM = 3
    PAYMENT = 4
    REVIEW = 5

    @property
    def state(self) -> str:
        """Workflow state name."""
        return self.name.lower()

    @classmethod
    def from_state(cls, state: str) -> WizardStep:
        return cls[state.upper()]


class EditorMode(Enum):
    CREATE = "create"
    EDIT = "edit"


@dataclass(frozen=True)
class CustomerRef:
    """The customer an invoice is for."""
    customer_id: str
    name: str = ""


@dataclass(frozen=True)
class PaymentDetails:
    """Payment optionally recorded together with the invoice."""
    record: bool = False
    payment_date: date | None = None
    amount: Decimal = ZERO
    method: str = "Cash"
    reference: str = ""
    notes: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


@dataclass(frozen=True)
class InvoiceDraft:
    """
    An invoice under construction.

    Contract:
        Exists only inside the wizard.  Replaced, never mutated; converted
        into a persisted invoice (and optional payment) on submit.
    """
    customer: CustomerRef | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    terms: str = ""
    notes: str = ""
    items: tuple[LineItem, ...] = ()
    discount: DocumentDiscount = field(default_factory=PerItemDiscounts)
    payment: PaymentDetails = field(default_factory=PaymentDetails)

    @property
    def policy(self) -> DiscountPolicy:
        return self.discount.policy

    def totals(self) -> DocumentTotals:
        """Recompute the document totals from the current items."""
        return calculate_totals(self.items, self.discount)

    def find_item(self, line_id: str) -> LineItem | None:
        for item in self.items:
            if item.line_id == line_id:
                return item
        return None


@dataclass(frozen=True)
class ItemEditor:
    """Step 3 session: adding a new line or editing an existing one."""
    mode: EditorMode
    line_id: str | None = None


@dataclass(frozen=True)
class WizardState:
    """Everything the wizard owns.  Only ``reduce`` produces new instances."""
    draft: InvoiceDraft = field(default_factory=InvoiceDraft)
    step: WizardStep = WizardStep.CUSTOMER_AND_DATES
    payment_seeded: bool = False
    editing: ItemEditor | None = None
    draft_id: str | None = None


@dataclass(frozen=True)
class SubmitResult:
    """What the API returned for a submitted invoice."""
    invoice_id: str | None
    invoice_no: str | None
    totals: DocumentTotals
    payment_recorded: bool
    raw: dict = field(default_factory=dict)


__all__ = [
    "CustomerRef",
    "Discount",
    "DiscountPolicy",
    "DiscountType",
    "DocumentDiscount",
    "DocumentTotals",
    "EditorMode",
    "InvoiceDraft",
    "ItemEditor",
    "LineItem",
    "PaymentDetails",
    "PerDocumentDiscount",
    "PerItemDiscounts",
    "SubmitResult",
    "WizardState",
    "WizardStep",
]

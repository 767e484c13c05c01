"""
Payment Allocation Session (``backoffice_modules.receivables.allocation``).

Responsibility
--------------
Holds one customer payment while the user spreads it across outstanding
invoices: manual picks, edited amounts, auto-allocation, removal, and the
submit gate that produces the record-payment request.

Architecture position
---------------------
**Modules layer** -- stateful but I/O free.  Arithmetic comes from
``backoffice_engines.allocation``; ``ReceivablesService`` fetches the
invoices and sends the payload.

Invariants enforced
-------------------
* At most one allocation per invoice; allocations keep the order in which
  they were added.
* No allocation exceeds its invoice's balance.
* The request payload is only produced when the payment passes
  ``validate_allocations`` and has a payment date.

Failure modes
-------------
* ``UnknownInvoiceError`` for an invoice that is not outstanding.
* ``AllocationNotFoundError`` when editing or removing a missing allocation.
* ``PaymentValidationError`` from ``build_payload`` with every blocking issue.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any

from backoffice_engines.allocation import (
    PAYMENT_DATE_REQUIRED,
    Allocation,
    auto_allocate,
    clamp_allocation,
    describe_payment,
    manual_allocation_amount,
    validate_allocations,
)
from backoffice_kernel.domain.values import ZERO, to_decimal
from backoffice_kernel.exceptions import (
    AllocationNotFoundError,
    PaymentValidationError,
    UnknownInvoiceError,
    ValidationIssue,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_modules.receivables.models import InvoiceAllocation, OutstandingInvoice

logger = get_logger("modules.receivables.allocation")


class PaymentAllocationSession:
    """
    One payment being allocated across a customer's outstanding invoices.

    Contract:
        ``invoices`` is fixed for the life of the session and is assumed to
        be ordered oldest first; auto-allocation walks it in that order.
        The payment amount may change at any time; existing allocations
        are never adjusted to follow it.
    """

    def __init__(
        self,
        customer_id: str,
        invoices: Sequence[OutstandingInvoice],
        amount: Decimal = ZERO,
        payment_date: date | None = None,
        payment_method: str = "Cash",
        reference: str = "",
        notes: str = "",
    ):
        self.customer_id = customer_id
        self._invoices = tuple(invoices)
        self._by_id = {inv.invoice_id: inv for inv in self._invoices}
        self._allocations: dict[str, Decimal] = {}
        self.amount = to_decimal(amount)
        self.payment_date = payment_date
        self.payment_method = payment_method
        self.reference = reference
        self.notes = notes

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def invoices(self) -> tuple[OutstandingInvoice, ...]:
        return self._invoices

    @property
    def allocations(self) -> tuple[InvoiceAllocation, ...]:
        return tuple(
            InvoiceAllocation(
                invoice_id=invoice_id,
                invoice_no=self._by_id[invoice_id].invoice_no,
                amount=amount,
                max_amount=self._by_id[invoice_id].balance_amount,
            )
            for invoice_id, amount in self._allocations.items()
        )

    def allocation_for(self, invoice_id: str) -> Decimal | None:
        return self._allocations.get(invoice_id)

    @property
    def total_allocated(self) -> Decimal:
        return sum(self._allocations.values(), ZERO)

    @property
    def unallocated(self) -> Decimal:
        """Payment amount not yet allocated; negative when over-allocated."""
        return self.amount - self.total_allocated

    @property
    def description(self) -> str:
        return describe_payment([a.invoice_no for a in self.allocations])

    def _engine_allocations(self) -> tuple[Allocation, ...]:
        return tuple(Allocation(i, a) for i, a in self._allocations.items())

    def issues(self) -> tuple[ValidationIssue, ...]:
        """Everything that currently blocks submission."""
        issues: list[ValidationIssue] = []
        if self.payment_date is None:
            issues.append(ValidationIssue(
                "payment_date", PAYMENT_DATE_REQUIRED, "Payment date is required",
            ))
        issues.extend(validate_allocations(
            self.amount,
            self._engine_allocations(),
            balances={i: inv.balance_amount for i, inv in self._by_id.items()},
        ))
        return tuple(issues)

    @property
    def is_submittable(self) -> bool:
        return not self.issues()

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def set_amount(self, amount: Decimal) -> None:
        self.amount = to_decimal(amount)

    def _invoice(self, invoice_id: str) -> OutstandingInvoice:
        invoice = self._by_id.get(invoice_id)
        if invoice is None:
            raise UnknownInvoiceError(invoice_id)
        return invoice

    def allocate(self, invoice_id: str) -> Decimal:
        """
        Pick an invoice by hand.

        The new allocation is ``min(balance, payment amount)``.  Picking an
        invoice that already has an allocation changes nothing.
        """
        invoice = self._invoice(invoice_id)
        if invoice_id in self._allocations:
            return self._allocations[invoice_id]
        amount = manual_allocation_amount(invoice.balance_amount, self.amount)
        self._allocations[invoice_id] = amount
        logger.debug("allocation_added", extra={
            "invoice_id": invoice_id,
            "amount": str(amount),
        })
        return amount

    def edit(self, invoice_id: str, value: Decimal) -> Decimal:
        """Set an allocation's amount, clamped to ``[0, balance]``."""
        invoice = self._invoice(invoice_id)
        if invoice_id not in self._allocations:
            raise AllocationNotFoundError(invoice_id)
        amount = clamp_allocation(value, invoice.balance_amount)
        self._allocations[invoice_id] = amount
        return amount

    def remove(self, invoice_id: str) -> None:
        """Drop one allocation.  Nothing is redistributed."""
        if invoice_id not in self._allocations:
            raise AllocationNotFoundError(invoice_id)
        del self._allocations[invoice_id]

    def clear(self) -> None:
        self._allocations.clear()

    def auto_allocate(self) -> tuple[InvoiceAllocation, ...]:
        """Fill unallocated invoices oldest first from what is left of the payment."""
        result = auto_allocate(
            self.amount,
            [inv.as_target() for inv in self._invoices],
            self._engine_allocations(),
        )
        self._allocations = {a.invoice_id: a.amount for a in result}
        return self.allocations

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    def build_payload(self) -> dict[str, Any]:
        """
        The record-payment request.

        Raises:
            PaymentValidationError: with every blocking issue.
        """
        issues = self.issues()
        if issues:
            logger.info("payment_submit_rejected", extra={
                "customer_id": self.customer_id,
                "issue_codes": [i.code for i in issues],
                "amount": str(self.amount),
                "total_allocated": str(self.total_allocated),
            })
            raise PaymentValidationError(issues)

        return {
            "customer_id": self.customer_id,
            "payment_date": self.payment_date.isoformat(),
            "amount": self.amount,
            "payment_method": self.payment_method,
            "reference_no": self.reference,
            "notes": self.notes,
            "description": self.description,
            "invoice_allocations": [
                {"invoice_id": invoice_id, "amount": amount}
                for invoice_id, amount in self._allocations.items()
            ],
        }

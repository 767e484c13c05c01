"""
Tests for PaymentAllocationSession.

Covers:
- Manual allocation, edits clamped to the balance, removal
- Auto-allocation oldest first around existing picks
- Submit gate and the record-payment payload
"""

from datetime import date
from decimal import Decimal

import pytest

from backoffice_engines.allocation import PAYMENT_DATE_REQUIRED
from backoffice_kernel.exceptions import (
    AllocationNotFoundError,
    PaymentValidationError,
    UnknownInvoiceError,
)
from backoffice_modules.receivables.allocation import PaymentAllocationSession
from backoffice_modules.receivables.models import OutstandingInvoice


def _invoices():
    return (
        OutstandingInvoice("1", "INV-0001", date(2024, 1, 5), Decimal("300")),
        OutstandingInvoice("2", "INV-0002", date(2024, 2, 5), Decimal("400")),
    )


class TestManualAllocation:

    def setup_method(self):
        self.session = PaymentAllocationSession(
            "7", _invoices(), amount=Decimal("500"), payment_date=date(2024, 3, 1),
        )

    def test_allocate_takes_min_of_balance_and_payment(self):
        assert self.session.allocate("1") == Decimal("300")
        assert self.session.allocate("2") == Decimal("400")
        assert self.session.total_allocated == Decimal("700")
        assert self.session.unallocated == Decimal("-200")

    def test_allocate_twice_is_noop(self):
        self.session.allocate("1")
        self.session.edit("1", Decimal("120"))
        assert self.session.allocate("1") == Decimal("120")
        assert len(self.session.allocations) == 1

    def test_unknown_invoice(self):
        with pytest.raises(UnknownInvoiceError):
            self.session.allocate("99")

    def test_edit_clamped_to_balance(self):
        self.session.allocate("1")
        assert self.session.edit("1", Decimal("999")) == Decimal("300")
        assert self.session.edit("1", Decimal("-1")) == Decimal("0")

    def test_edit_missing_allocation(self):
        with pytest.raises(AllocationNotFoundError):
            self.session.edit("2", Decimal("10"))

    def test_remove_does_not_redistribute(self):
        self.session.allocate("1")
        self.session.allocate("2")
        self.session.remove("1")
        assert self.session.allocation_for("1") is None
        assert self.session.allocation_for("2") == Decimal("400")

    def test_allocations_labelled(self):
        self.session.allocate("2")
        (allocation,) = self.session.allocations
        assert allocation.invoice_no == "INV-0002"
        assert allocation.max_amount == Decimal("400")

    def test_zero_payment_allocates_zero(self):
        session = PaymentAllocationSession("7", _invoices(), payment_date=date(2024, 3, 1))
        assert session.allocate("1") == Decimal("0")
        assert not session.is_submittable


class TestAutoAllocate:

    def test_fills_oldest_first(self):
        session = PaymentAllocationSession("7", _invoices(), amount=Decimal("500"))
        session.auto_allocate()
        assert session.allocation_for("1") == Decimal("300")
        assert session.allocation_for("2") == Decimal("200")
        assert session.unallocated == Decimal("0")

    def test_keeps_manual_picks(self):
        session = PaymentAllocationSession("7", _invoices(), amount=Decimal("500"))
        session.allocate("2")
        session.auto_allocate()
        assert session.allocation_for("2") == Decimal("400")
        assert session.allocation_for("1") == Decimal("100")
        assert [a.invoice_id for a in session.allocations] == ["2", "1"]

    def test_clear(self):
        session = PaymentAllocationSession("7", _invoices(), amount=Decimal("500"))
        session.auto_allocate()
        session.clear()
        assert session.allocations == ()


class TestSubmitGate:

    def test_mismatch_blocks_payload(self):
        """Invoice 2 edited to 250 while invoice 1 stays at 300."""
        session = PaymentAllocationSession(
            "7", _invoices(), amount=Decimal("500"), payment_date=date(2024, 3, 1),
        )
        session.auto_allocate()
        session.edit("2", Decimal("250"))

        with pytest.raises(PaymentValidationError) as exc_info:
            session.build_payload()
        assert exc_info.value.issue_codes == ("ALLOCATION_MISMATCH",)
        assert exc_info.value.issues[0].message == "Amount must match total allocated (550.00)"

    def test_missing_date(self):
        session = PaymentAllocationSession("7", _invoices(), amount=Decimal("300"))
        session.allocate("1")
        assert [i.code for i in session.issues()] == [PAYMENT_DATE_REQUIRED]
        assert session.issues()[0].field == "payment_date"

    def test_payload(self):
        session = PaymentAllocationSession(
            "7", _invoices(),
            amount=Decimal("500"),
            payment_date=date(2024, 3, 1),
            payment_method="Bank Transfer",
            reference="TRX-1",
        )
        session.auto_allocate()

        payload = session.build_payload()

        assert payload == {
            "customer_id": "7",
            "payment_date": "2024-03-01",
            "amount": Decimal("500"),
            "payment_method": "Bank Transfer",
            "reference_no": "TRX-1",
            "notes": "",
            "description": "Payment for INV-0001, INV-0002",
            "invoice_allocations": [
                {"invoice_id": "1", "amount": Decimal("300")},
                {"invoice_id": "2", "amount": Decimal("200")},
            ],
        }

    def test_amount_change_keeps_allocations(self):
        session = PaymentAllocationSession(
            "7", _invoices(), amount=Decimal("500"), payment_date=date(2024, 3, 1),
        )
        session.auto_allocate()
        session.set_amount(Decimal("450"))
        assert session.total_allocated == Decimal("500")
        assert not session.is_submittable

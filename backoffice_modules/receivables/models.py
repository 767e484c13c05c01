"""
Receivables Domain Models (``backoffice_modules.receivables.models``).

Responsibility
--------------
Frozen read models for what the back-office API reports about a
customer's account: invoices, outstanding balances, allocations being
prepared, ledger entries and the customer record.  ``from_api``
constructors translate the API's JSON shapes.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* An ``OutstandingInvoice`` always has a positive balance.

Failure modes
-------------
* ``KeyError`` when an API record lacks its id.
* ``ValueError`` on unparseable amounts or dates, or a ledger row with
  both (or neither) of debit and credit set.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from backoffice_engines.allocation import AllocationTarget
from backoffice_engines.ledger import (
    BalanceCheck,
    CustomerAccountState,
    LedgerEntry,
    LedgerStatement,
)
from backoffice_kernel.domain.values import ZERO, to_decimal


class InvoiceStatus(str, Enum):
    """Invoice statuses reported by the API."""
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "Partially Paid"
    OVERDUE = "Overdue"
    PAID = "Paid"


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class Invoice:
    """An invoice as the API reports it.  Never mutated here."""
    invoice_id: str
    invoice_no: str
    invoice_date: date | None
    due_date: date | None
    total_amount: Decimal
    paid_amount: Decimal
    balance_amount: Decimal
    status: str

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Invoice:
        return cls(
            invoice_id=str(data["id"]),
            invoice_no=str(data.get("invoice_no") or data["id"]),
            invoice_date=_parse_date(data.get("invoice_date")),
            due_date=_parse_date(data.get("due_date")),
            total_amount=to_decimal(data.get("total_amount")),
            paid_amount=to_decimal(data.get("paid_amount")),
            balance_amount=to_decimal(data.get("balance_amount")),
            status=str(data.get("status") or ""),
        )


@dataclass(frozen=True)
class OutstandingInvoice:
    """An invoice that can still receive part of a payment."""
    invoice_id: str
    invoice_no: str
    invoice_date: date | None
    balance_amount: Decimal

    def __post_init__(self) -> None:
        balance = to_decimal(self.balance_amount)
        if balance <= 0:
            raise ValueError(
                f"Outstanding invoice {self.invoice_id} must have a positive balance"
            )
        object.__setattr__(self, "balance_amount", balance)

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> OutstandingInvoice:
        return cls(
            invoice_id=invoice.invoice_id,
            invoice_no=invoice.invoice_no,
            invoice_date=invoice.invoice_date,
            balance_amount=invoice.balance_amount,
        )

    def as_target(self) -> AllocationTarget:
        return AllocationTarget(self.invoice_id, self.balance_amount)


@dataclass(frozen=True)
class InvoiceAllocation:
    """An allocation as shown to the user, labelled with its invoice number."""
    invoice_id: str
    invoice_no: str
    amount: Decimal
    max_amount: Decimal


def ledger_entry_from_api(data: Mapping[str, Any]) -> LedgerEntry:
    entry_date = _parse_date(data.get("transaction_date"))
    if entry_date is None:
        raise ValueError(f"Ledger entry {data.get('id')} has no transaction_date")
    return LedgerEntry(
        entry_id=str(data["id"]),
        entry_date=entry_date,
        debit=to_decimal(data.get("debit")),
        credit=to_decimal(data.get("credit")),
        reference=str(data.get("reference_no") or ""),
        description=str(data.get("description") or ""),
        transaction_type=str(data.get("transaction_type") or ""),
    )


@dataclass(frozen=True)
class CustomerAccount:
    """Customer record fields the receivables views need."""
    customer_id: str
    name: str
    credit_limit: Decimal
    current_balance: Decimal
    opening_balance: Decimal = ZERO

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> CustomerAccount:
        return cls(
            customer_id=str(data["id"]),
            name=str(data.get("customer_name") or ""),
            credit_limit=to_decimal(data.get("credit_limit")),
            current_balance=to_decimal(data.get("current_balance")),
            opening_balance=to_decimal(data.get("opening_balance")),
        )


@dataclass(frozen=True)
class CustomerStatement:
    """Ledger statement plus account state and the balance cross-check.

    ``balance_check`` is None when the API reported no current balance.
    """
    customer: CustomerAccount
    statement: LedgerStatement
    account: CustomerAccountState
    balance_check: BalanceCheck | None = None

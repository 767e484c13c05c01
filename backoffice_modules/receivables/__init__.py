"""
Receivables Module.

Incoming customer payments allocated across outstanding invoices, and the
customer's ledger statement with credit utilization.

Allocation arithmetic and ledger balances come from shared engines.
"""

from backoffice_modules.receivables.allocation import PaymentAllocationSession
from backoffice_modules.receivables.config import ReceivablesConfig
from backoffice_modules.receivables.models import (
    CustomerAccount,
    CustomerStatement,
    Invoice,
    InvoiceAllocation,
    OutstandingInvoice,
)
from backoffice_modules.receivables.service import ReceivablesService

__all__ = [
    "CustomerAccount",
    "CustomerStatement",
    "Invoice",
    "InvoiceAllocation",
    "OutstandingInvoice",
    "PaymentAllocationSession",
    "ReceivablesConfig",
    "ReceivablesService",
]

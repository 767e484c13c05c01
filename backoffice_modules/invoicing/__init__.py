"""
Invoicing Module.

Five-step invoice creation wizard: customer and dates, line items,
add/edit item, payment recorded with the invoice, review and submit.

Totals come from the shared pricing engine.
"""

from backoffice_modules.invoicing.config import InvoicingConfig
from backoffice_modules.invoicing.models import (
    CustomerRef,
    InvoiceDraft,
    PaymentDetails,
    SubmitResult,
    WizardState,
    WizardStep,
)
from backoffice_modules.invoicing.service import InvoiceWizardService
from backoffice_modules.invoicing.wizard import needs_exit_confirmation, reduce
from backoffice_modules.invoicing.workflows import INVOICE_WIZARD_WORKFLOW

__all__ = [
    "CustomerRef",
    "InvoiceDraft",
    "PaymentDetails",
    "SubmitResult",
    "WizardState",
    "WizardStep",
    "InvoiceWizardService",
    "INVOICE_WIZARD_WORKFLOW",
    "InvoicingConfig",
    "needs_exit_confirmation",
    "reduce",
]

"""
Typed Exception Hierarchy for the back-office core.

Every error has a typed class (catch by type, not message), a ``code``
class attribute (machine-readable, API-safe) and structured attributes
(never only a message string).

    BackofficeError (base)
    |
    +-- ValidationError
    |   +-- DraftValidationError
    |   +-- PaymentValidationError
    |
    +-- WorkflowError
    |   +-- WizardTransitionError
    |   +-- LineItemNotFoundError
    |
    +-- AllocationError
    |   +-- UnknownInvoiceError
    |   +-- AllocationNotFoundError
    |
    +-- RemoteError
        +-- ApiConnectionError
        +-- ApiResponseError

Category        | Code                   | When Raised
----------------|------------------------|------------------------------------
Validation      | DRAFT_INVALID          | Invoice draft fails submit checks
                | PAYMENT_INVALID        | Payment/allocations fail submit gate
----------------|------------------------|------------------------------------
Workflow        | WIZARD_TRANSITION      | Step change blocked by a guard
                | LINE_ITEM_NOT_FOUND    | Editing or deleting an absent line
----------------|------------------------|------------------------------------
Allocation      | UNKNOWN_INVOICE        | Invoice not among outstanding ones
                | ALLOCATION_NOT_FOUND   | Editing an allocation never added
----------------|------------------------|------------------------------------
Remote          | API_CONNECTION         | Transport failure (no response)
                | API_RESPONSE           | Non-2xx response from the API

None of these is fatal. Callers keep the draft or allocation state they
already hold and let the user retry.

Allocation clamping (an amount above an invoice balance) is silent and is
not represented here. A zero credit limit yields "not applicable"
utilization and is not an error either.
"""

from __future__ import annotations

from dataclasses import dataclass

GENERIC_REMOTE_MESSAGE = "Request failed. Please try again."


class BackofficeError(Exception):
    """
    Base exception for all back-office core errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "BACKOFFICE_ERROR"


# Validation


@dataclass(frozen=True)
class ValidationIssue:
    """One blocking problem, addressed to the field/section that shows it."""

    field: str
    code: str
    message: str


class ValidationError(BackofficeError):
    """Base exception for local, synchronous validation failures."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, issues: tuple[ValidationIssue, ...] | list[ValidationIssue]):
        self.issues = tuple(issues)
        summary = "; ".join(issue.message for issue in self.issues)
        super().__init__(f"{len(self.issues)} validation issue(s): {summary}")

    @property
    def issue_codes(self) -> tuple[str, ...]:
        return tuple(issue.code for issue in self.issues)

    def issues_for(self, field: str) -> tuple[ValidationIssue, ...]:
        """Issues to render next to one field or section."""
        return tuple(issue for issue in self.issues if issue.field == field)


class DraftValidationError(ValidationError):
    """Invoice draft cannot be submitted as it stands."""

    code: str = "DRAFT_INVALID"


class PaymentValidationError(ValidationError):
    """Payment header or allocations fail the submit gate."""

    code: str = "PAYMENT_INVALID"


# Workflow


class WorkflowError(BackofficeError):
    """Base exception for step-gated workflow errors."""

    code: str = "WORKFLOW_ERROR"


class WizardTransitionError(WorkflowError):
    """A wizard step change was blocked."""

    code: str = "WIZARD_TRANSITION"

    def __init__(self, from_step: int, to_step: int, guard: str, reason: str):
        self.from_step = from_step
        self.to_step = to_step
        self.guard = guard
        self.reason = reason
        super().__init__(
            f"Cannot move from step {from_step} to step {to_step}: {reason}"
        )


class LineItemNotFoundError(WorkflowError):
    """The draft has no line item with the given id."""

    code: str = "LINE_ITEM_NOT_FOUND"

    def __init__(self, line_id: str):
        self.line_id = line_id
        super().__init__(f"No line item with id: {line_id}")


# Allocation


class AllocationError(BackofficeError):
    """Base exception for payment allocation errors."""

    code: str = "ALLOCATION_ERROR"


class UnknownInvoiceError(AllocationError):
    """Invoice is not among the customer's outstanding invoices."""

    code: str = "UNKNOWN_INVOICE"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice is not outstanding for this payment: {invoice_id}")


class AllocationNotFoundError(AllocationError):
    """No allocation exists for the invoice."""

    code: str = "ALLOCATION_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"No allocation for invoice: {invoice_id}")


# Remote


class RemoteError(BackofficeError):
    """Base exception for calls to the back-office API."""

    code: str = "REMOTE_ERROR"

    def __init__(self, message: str, server_message: str | None = None):
        self.server_message = server_message
        super().__init__(message)

    @property
    def user_message(self) -> str:
        """Server-provided message when available, else the generic fallback."""
        return self.server_message or GENERIC_REMOTE_MESSAGE


class ApiConnectionError(RemoteError):
    """The request never produced a response (DNS, refused, timeout)."""

    code: str = "API_CONNECTION"

    def __init__(self, method: str, path: str, reason: str):
        self.method = method
        self.path = path
        self.reason = reason
        super().__init__(f"{method} {path} failed: {reason}")


class ApiResponseError(RemoteError):
    """The API answered with a non-2xx status or an unsuccessful envelope."""

    code: str = "API_RESPONSE"

    def __init__(
        self,
        method: str,
        path: str,
        status_code: int,
        server_message: str | None = None,
    ):
        self.method = method
        self.path = path
        self.status_code = status_code
        super().__init__(
            f"{method} {path} returned {status_code}: {server_message or 'no message'}",
            server_message=server_message,
        )

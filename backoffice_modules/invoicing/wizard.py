"""
Invoice Wizard State Machine (``backoffice_modules.invoicing.wizard``).

Responsibility
--------------
Owns the invoice draft while the user builds it across five steps.  Every
change, whether editing a field or moving between steps, is an explicit
action passed to ``reduce(state, action)``, which returns a new
``WizardState``.  Nothing advances on its own.

Architecture position
---------------------
**Modules layer** -- pure.  No I/O, no clock.  ``InvoiceWizardService``
supplies "today" when building a new draft and performs the network
calls for submit and saved drafts.

Invariants enforced
-------------------
* Steps 2-5 are reachable only with a customer selected; steps 4 and 5
  also need at least one line item.  The step graph and its guards are
  declared in ``INVOICE_WIZARD_WORKFLOW``.
* Step 3 is entered only by starting to add or edit an item from step 2,
  and always returns to step 2.
* The payment amount is seeded from the grand total the first time step 4
  is entered and never again, so a later change of the total leaves the
  user's payment amount alone.
* Going back never clears draft fields.

Failure modes
-------------
* ``WizardTransitionError`` when a step change is blocked.  The caller
  still holds the previous state, which is unchanged.
* ``LineItemNotFoundError`` when editing or deleting an unknown line.
* ``DraftValidationError`` when saving an incomplete line item.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Union

from backoffice_engines.pricing import DiscountPolicy, DocumentDiscount, LineItem
from backoffice_kernel.domain.values import round_money
from backoffice_kernel.domain.workflow import Guard
from backoffice_kernel.exceptions import (
    DraftValidationError,
    LineItemNotFoundError,
    ValidationIssue,
    WizardTransitionError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_modules.invoicing.config import InvoicingConfig
from backoffice_modules.invoicing.models import (
    CustomerRef,
    EditorMode,
    InvoiceDraft,
    ItemEditor,
    PaymentDetails,
    PerDocumentDiscount,
    PerItemDiscounts,
    WizardState,
    WizardStep,
)
from backoffice_modules.invoicing.workflows import (
    CUSTOMER_SELECTED,
    HAS_ITEMS,
    INVOICE_WIZARD_WORKFLOW,
)

logger = get_logger("modules.invoicing.wizard")


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SetCustomer:
    customer: CustomerRef | None


@dataclass(frozen=True)
class SetInvoiceDate:
    value: date | None


@dataclass(frozen=True)
class SetDueDate:
    value: date | None


@dataclass(frozen=True)
class SetTerms:
    value: str


@dataclass(frozen=True)
class SetNotes:
    value: str


@dataclass(frozen=True)
class SetDocumentDiscount:
    """Switch discount policy, or change the document-level discount."""
    discount: DocumentDiscount


@dataclass(frozen=True)
class BeginAddItem:
    pass


@dataclass(frozen=True)
class BeginEditItem:
    line_id: str


@dataclass(frozen=True)
class SaveItem:
    item: LineItem


@dataclass(frozen=True)
class CancelItemEdit:
    pass


@dataclass(frozen=True)
class DeleteItem:
    line_id: str


@dataclass(frozen=True)
class SetPayment:
    payment: PaymentDetails


@dataclass(frozen=True)
class NextStep:
    pass


@dataclass(frozen=True)
class GoToStep:
    step: WizardStep


@dataclass(frozen=True)
class LoadDraft:
    """Hydrate a saved draft; the wizard restarts at step 1."""
    draft: InvoiceDraft
    draft_id: str | None = None


@dataclass(frozen=True)
class SetDraftId:
    draft_id: str | None


@dataclass(frozen=True)
class Reset:
    draft: InvoiceDraft | None = None


WizardAction = Union[
    SetCustomer, SetInvoiceDate, SetDueDate, SetTerms, SetNotes,
    SetDocumentDiscount, BeginAddItem, BeginEditItem, SaveItem,
    CancelItemEdit, DeleteItem, SetPayment, NextStep, GoToStep,
    LoadDraft, SetDraftId, Reset,
]

_NEXT_STEP = {
    WizardStep.CUSTOMER_AND_DATES: WizardStep.ITEMS,
    WizardStep.ITEMS: WizardStep.PAYMENT,
    WizardStep.PAYMENT: WizardStep.REVIEW,
}


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------


def new_draft(today: date, config: InvoicingConfig | None = None) -> InvoiceDraft:
    """An empty draft carrying the configured defaults."""
    config = config or InvoicingConfig.with_defaults()
    discount: DocumentDiscount = (
        PerDocumentDiscount()
        if config.default_discount_policy == DiscountPolicy.PER_DOCUMENT
        else PerItemDiscounts()
    )
    return InvoiceDraft(
        invoice_date=today,
        due_date=today + timedelta(days=config.default_due_days),
        terms=config.default_terms,
        discount=discount,
        payment=PaymentDetails(
            payment_date=today,
            method=config.default_payment_method,
        ),
    )


def initial_state(today: date, config: InvoicingConfig | None = None) -> WizardState:
    return WizardState(draft=new_draft(today, config))


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------


def needs_exit_confirmation(state: WizardState) -> bool:
    """True when leaving would lose work the user has done."""
    return bool(state.draft.items) or state.step > WizardStep.CUSTOMER_AND_DATES


def can_go_to(state: WizardState, step: WizardStep) -> bool:
    """Whether ``GoToStep(step)`` would be accepted."""
    if step == state.step:
        return True
    transition = INVOICE_WIZARD_WORKFLOW.find(state.step.state, step.state, "go_to_step")
    return transition is not None and _guard_satisfied(transition.guard, state.draft)


def validate_item(item: LineItem) -> tuple[ValidationIssue, ...]:
    issues: list[ValidationIssue] = []
    if not item.item_ref:
        issues.append(ValidationIssue("item", "ITEM_REQUIRED", "Please select an item"))
    if item.quantity <= 0:
        issues.append(ValidationIssue(
            "quantity", "QUANTITY_NOT_POSITIVE", "Quantity must be greater than 0",
        ))
    return tuple(issues)


def validate_for_submit(draft: InvoiceDraft) -> tuple[ValidationIssue, ...]:
    """Every reason the draft cannot be submitted; empty when it can."""
    issues: list[ValidationIssue] = []
    if draft.customer is None:
        issues.append(ValidationIssue("customer", "CUSTOMER_REQUIRED", "Customer is required"))
    if not draft.items:
        issues.append(ValidationIssue("items", "ITEMS_REQUIRED", "At least one item is required"))

    if draft.payment.record:
        amount = draft.payment.amount
        if amount <= 0:
            issues.append(ValidationIssue(
                "payment.amount", "PAYMENT_AMOUNT_NOT_POSITIVE",
                "Payment amount must be greater than 0",
            ))
        elif amount > draft.totals().grand_total:
            issues.append(ValidationIssue(
                "payment.amount", "PAYMENT_EXCEEDS_TOTAL",
                "Payment amount cannot exceed invoice total",
            ))
    return tuple(issues)


# -----------------------------------------------------------------------------
# Reducer
# -----------------------------------------------------------------------------


def reduce(state: WizardState, action: WizardAction) -> WizardState:
    """
    Apply one action and return the next state.

    Raises:
        WizardTransitionError: the action would move to a step whose guard
            is not satisfied, or is not available on the current step.
        LineItemNotFoundError: edit or delete of an unknown line id.
        DraftValidationError: ``SaveItem`` with an incomplete item.
    """
    draft = state.draft
    match action:
        case SetCustomer(customer=customer):
            return replace(state, draft=replace(draft, customer=customer))
        case SetInvoiceDate(value=value):
            return replace(state, draft=replace(draft, invoice_date=value))
        case SetDueDate(value=value):
            return replace(state, draft=replace(draft, due_date=value))
        case SetTerms(value=value):
            return replace(state, draft=replace(draft, terms=value))
        case SetNotes(value=value):
            return replace(state, draft=replace(draft, notes=value))
        case SetDocumentDiscount(discount=discount):
            return replace(state, draft=replace(draft, discount=discount))
        case SetPayment(payment=payment):
            return replace(state, draft=replace(draft, payment=payment))

        case BeginAddItem():
            moved = _move(state, WizardStep.ADD_OR_EDIT_ITEM, "begin_add_item")
            return replace(moved, editing=ItemEditor(EditorMode.CREATE))
        case BeginEditItem(line_id=line_id):
            if draft.find_item(line_id) is None:
                raise LineItemNotFoundError(line_id)
            moved = _move(state, WizardStep.ADD_OR_EDIT_ITEM, "begin_edit_item")
            return replace(moved, editing=ItemEditor(EditorMode.EDIT, line_id))
        case SaveItem(item=item):
            return _save_item(state, item)
        case CancelItemEdit():
            moved = _move(state, WizardStep.ITEMS, "cancel_item_edit")
            return replace(moved, editing=None)
        case DeleteItem(line_id=line_id):
            return _delete_item(state, line_id)

        case NextStep():
            target = _NEXT_STEP.get(state.step)
            if target is None:
                raise WizardTransitionError(
                    int(state.step), int(state.step), "no_next_step",
                    "there is no next step from here",
                )
            return _move(state, target, "next_step")
        case GoToStep(step=step):
            step = WizardStep(step)
            if step == state.step:
                return state
            return _move(state, step, "go_to_step")

        case LoadDraft(draft=loaded, draft_id=draft_id):
            logger.info("wizard_draft_loaded", extra={
                "draft_id": draft_id,
                "item_count": len(loaded.items),
            })
            return WizardState(draft=loaded, draft_id=draft_id)
        case SetDraftId(draft_id=draft_id):
            return replace(state, draft_id=draft_id)
        case Reset(draft=fresh):
            return WizardState(draft=fresh or InvoiceDraft())
        case _:
            raise TypeError(f"Unknown wizard action: {action!r}")


def _guard_satisfied(guard: Guard | None, draft: InvoiceDraft) -> bool:
    if guard is None:
        return True
    if guard == CUSTOMER_SELECTED:
        return draft.customer is not None
    if guard == HAS_ITEMS:
        return draft.customer is not None and bool(draft.items)
    raise ValueError(f"Unknown wizard guard: {guard.name}")


def _move(state: WizardState, target: WizardStep, action: str) -> WizardState:
    transition = INVOICE_WIZARD_WORKFLOW.find(state.step.state, target.state, action)
    if transition is None:
        logger.warning("wizard_transition_undeclared", extra={
            "from_step": int(state.step),
            "to_step": int(target),
            "action": action,
        })
        raise WizardTransitionError(
            int(state.step), int(target), "no_transition",
            f"'{action}' is not available on step {int(state.step)}",
        )
    if not _guard_satisfied(transition.guard, state.draft):
        logger.info("wizard_transition_blocked", extra={
            "from_step": int(state.step),
            "to_step": int(target),
            "guard": transition.guard.name,
        })
        raise WizardTransitionError(
            int(state.step), int(target), transition.guard.name,
            transition.guard.description,
        )

    moved = replace(state, step=target)
    if target == WizardStep.PAYMENT and not moved.payment_seeded:
        moved = _seed_payment(moved)

    logger.debug("wizard_step_changed", extra={
        "from_step": int(state.step),
        "to_step": int(target),
        "action": action,
    })
    return moved


def _seed_payment(state: WizardState) -> WizardState:
    grand_total = state.draft.totals().grand_total
    payment = replace(state.draft.payment, record=True, amount=round_money(grand_total))
    logger.info("wizard_payment_seeded", extra={"amount": str(payment.amount)})
    return replace(
        state,
        draft=replace(state.draft, payment=payment),
        payment_seeded=True,
    )


def _unique_line_id(items: tuple[LineItem, ...]) -> str:
    taken = {i.line_id for i in items}
    n = len(items) + 1
    while f"line-{n}" in taken:
        n += 1
    return f"line-{n}"


def _save_item(state: WizardState, item: LineItem) -> WizardState:
    editor = state.editing
    if state.step != WizardStep.ADD_OR_EDIT_ITEM or editor is None:
        raise WizardTransitionError(
            int(state.step), int(WizardStep.ITEMS), "no_transition",
            "no line item is being edited",
        )
    issues = validate_item(item)
    if issues:
        raise DraftValidationError(issues)

    items = state.draft.items
    if editor.mode == EditorMode.EDIT:
        saved = replace(item, line_id=editor.line_id)
        items = tuple(saved if i.line_id == editor.line_id else i for i in items)
    else:
        if not item.line_id or state.draft.find_item(item.line_id) is not None:
            item = replace(item, line_id=_unique_line_id(items))
        items = items + (item,)

    moved = _move(state, WizardStep.ITEMS, "save_item")
    return replace(moved, draft=replace(moved.draft, items=items), editing=None)


def _delete_item(state: WizardState, line_id: str) -> WizardState:
    if state.draft.find_item(line_id) is None:
        raise LineItemNotFoundError(line_id)
    if state.step not in (WizardStep.ITEMS, WizardStep.ADD_OR_EDIT_ITEM):
        raise WizardTransitionError(
            int(state.step), int(state.step), "items_step",
            "line items can only be removed on the items step",
        )

    items = tuple(i for i in state.draft.items if i.line_id != line_id)
    if state.step == WizardStep.ADD_OR_EDIT_ITEM:
        state = replace(_move(state, WizardStep.ITEMS, "delete_item"), editing=None)
    return replace(state, draft=replace(state.draft, items=items))

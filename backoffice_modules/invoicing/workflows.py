"""
Invoicing Workflows.

Step graph of the invoice-creation wizard.
"""

from backoffice_kernel.domain.workflow import Guard, Transition, Workflow
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.invoicing.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

CUSTOMER_SELECTED = Guard(
    name="customer_selected",
    description="A customer has been chosen for the invoice",
)

HAS_ITEMS = Guard(
    name="has_items",
    description="A customer is chosen and the invoice has at least one line item",
)

logger.info(
    "invoicing_workflow_guards_defined",
    extra={
        "guards": [
            CUSTOMER_SELECTED.name,
            HAS_ITEMS.name,
        ],
    },
)


# -----------------------------------------------------------------------------
# Invoice Wizard Workflow
# -----------------------------------------------------------------------------

_CUSTOMER = "customer_and_dates"
_ITEMS = "items"
_EDIT_ITEM = "add_or_edit_item"
_PAYMENT = "payment"
_REVIEW = "review"

# Guard protecting arrival at each directly navigable step.
_ARRIVAL_GUARDS = {
    _CUSTOMER: None,
    _ITEMS: CUSTOMER_SELECTED,
    _PAYMENT: HAS_ITEMS,
    _REVIEW: HAS_ITEMS,
}

_GO_TO_TRANSITIONS = tuple(
    Transition(source, target, action="go_to_step", guard=guard)
    for source in _ARRIVAL_GUARDS
    for target, guard in _ARRIVAL_GUARDS.items()
    if source != target
)

INVOICE_WIZARD_WORKFLOW = Workflow(
    name="invoice_wizard",
    description="Five-step invoice creation wizard",
    initial_state=_CUSTOMER,
    states=(
        _CUSTOMER,
        _ITEMS,
        _EDIT_ITEM,
        _PAYMENT,
        _REVIEW,
    ),
    transitions=(
        Transition(_CUSTOMER, _ITEMS, action="next_step", guard=CUSTOMER_SELECTED),
        Transition(_ITEMS, _PAYMENT, action="next_step", guard=HAS_ITEMS),
        Transition(_PAYMENT, _REVIEW, action="next_step", guard=HAS_ITEMS),
        Transition(_ITEMS, _EDIT_ITEM, action="begin_add_item", guard=CUSTOMER_SELECTED),
        Transition(_ITEMS, _EDIT_ITEM, action="begin_edit_item", guard=CUSTOMER_SELECTED),
        Transition(_EDIT_ITEM, _ITEMS, action="save_item"),
        Transition(_EDIT_ITEM, _ITEMS, action="cancel_item_edit"),
        Transition(_EDIT_ITEM, _ITEMS, action="delete_item"),
    ) + _GO_TO_TRANSITIONS,
)

logger.info(
    "invoice_wizard_workflow_registered",
    extra={
        "workflow_name": INVOICE_WIZARD_WORKFLOW.name,
        "state_count": len(INVOICE_WIZARD_WORKFLOW.states),
        "transition_count": len(INVOICE_WIZARD_WORKFLOW.transitions),
        "initial_state": INVOICE_WIZARD_WORKFLOW.initial_state,
    },
)

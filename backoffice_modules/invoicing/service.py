"""
Invoicing Module Service - Submits wizard drafts and manages saved drafts.

Thin glue layer that:
1. Builds new wizard states with clock-supplied dates and configured defaults
2. Validates a draft and sends it to the API as one create-invoice call
3. Creates, updates, loads and deletes saved drafts through the API

All arithmetic lives in the pricing engine; all state changes go through
the wizard reducer.  The service never mutates the state it is given; on
any error the caller's state is exactly as it was.

Usage:
    service = InvoiceWizardService(api, config=InvoicingConfig.with_defaults())
    state = service.start()
    ...
    result = service.submit(state)
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any

from backoffice_engines.pricing import (
    Discount,
    DiscountPolicy,
    DiscountType,
    LineItem,
    PerDocumentDiscount,
    PerItemDiscounts,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.domain.values import to_decimal
from backoffice_kernel.exceptions import DraftValidationError
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_modules.invoicing.config import InvoicingConfig
from backoffice_modules.invoicing.models import (
    CustomerRef,
    InvoiceDraft,
    SubmitResult,
    WizardState,
)
from backoffice_modules.invoicing.wizard import (
    LoadDraft,
    Reset,
    SetDraftId,
    initial_state,
    new_draft,
    reduce,
    validate_for_submit,
)
from backoffice_services.api_client import BackofficeApiClient

logger = get_logger("modules.invoicing.service")


# =============================================================================
# Payloads
# =============================================================================


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _item_payload(item: LineItem, policy: DiscountPolicy) -> dict[str, Any]:
    if policy == DiscountPolicy.PER_ITEM:
        discount_type, discount_value = item.discount.type.value, item.discount.value
    else:
        discount_type, discount_value = DiscountType.PERCENT.value, Decimal("0")
    return {
        "line_id": item.line_id,
        "item_id": item.item_ref,
        "name": item.description,
        "quantity": item.quantity,
        "unit_price": item.rate,
        "tax_rate": item.tax_rate_percent,
        "discount_type": discount_type,
        "discount_value": discount_value,
    }


def build_submit_payload(state: WizardState) -> dict[str, Any]:
    """
    Normalized create-invoice request for a valid draft.

    Under the per-document policy each item is sent with a zero discount
    and the document discount travels in the header.
    """
    draft = state.draft
    policy = draft.policy
    totals = draft.totals()
    payload: dict[str, Any] = {
        "customer_id": draft.customer.customer_id if draft.customer else None,
        "invoice_date": _iso(draft.invoice_date),
        "due_date": _iso(draft.due_date),
        "terms": draft.terms,
        "notes": draft.notes,
        "items": [_item_payload(i, policy) for i in draft.items],
        "discount_scope": "item" if policy == DiscountPolicy.PER_ITEM else "invoice",
        "total_amount": totals.grand_total,
        "record_payment": draft.payment.record,
    }
    if isinstance(draft.discount, PerDocumentDiscount):
        payload["discount_type"] = draft.discount.discount.type.value
        payload["discount_value"] = draft.discount.discount.value
    if draft.payment.record:
        payment = draft.payment
        payload["payment"] = {
            "payment_date": _iso(payment.payment_date),
            "amount": payment.amount,
            "payment_method": payment.method,
            "reference_no": payment.reference,
            "notes": payment.notes,
        }
    if state.draft_id is not None:
        payload["draft_id"] = state.draft_id
    return payload


def build_draft_payload(draft: InvoiceDraft) -> dict[str, Any]:
    """Saved-draft body.  Items keep their own discounts."""
    return {
        "customer_id": draft.customer.customer_id if draft.customer else None,
        "invoice_date": _iso(draft.invoice_date),
        "due_date": _iso(draft.due_date),
        "terms": draft.terms,
        "notes": draft.notes,
        "items_data": [_item_payload(i, DiscountPolicy.PER_ITEM) for i in draft.items],
    }


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def draft_from_saved(data: Mapping[str, Any], base: InvoiceDraft) -> InvoiceDraft:
    """
    Rebuild a draft from a saved-draft record.

    Fields the server does not store (payment details, discount policy)
    come from ``base``, normally a freshly defaulted draft.
    """
    items = tuple(
        LineItem(
            line_id=str(raw.get("line_id") or f"line-{n}"),
            item_ref=str(raw.get("item_id") or ""),
            description=raw.get("name") or "",
            quantity=to_decimal(raw.get("quantity")),
            rate=to_decimal(raw.get("unit_price")),
            tax_rate_percent=to_decimal(raw.get("tax_rate")),
            discount=Discount(
                DiscountType(raw.get("discount_type") or DiscountType.PERCENT.value),
                to_decimal(raw.get("discount_value")),
            ),
        )
        for n, raw in enumerate(data.get("items_data") or [], start=1)
    )
    customer_id = data.get("customer_id")
    customer = None
    if customer_id is not None:
        customer = CustomerRef(str(customer_id), data.get("customer_name") or "")
    return InvoiceDraft(
        customer=customer,
        invoice_date=_parse_date(data.get("invoice_date")) or base.invoice_date,
        due_date=_parse_date(data.get("due_date")) or base.due_date,
        terms=data.get("terms") or base.terms,
        notes=data.get("notes") or "",
        items=items,
        discount=PerItemDiscounts(),
        payment=base.payment,
    )


# =============================================================================
# Service
# =============================================================================


class InvoiceWizardService:
    """
    Runs the network side of the invoice wizard.

    Contract:
        Each method makes at most one API call.  ``in_flight`` is True while
        a call is outstanding; disabling a second submit is the caller's job.
    """

    def __init__(
        self,
        api: BackofficeApiClient,
        config: InvoicingConfig | None = None,
        clock: Clock | None = None,
    ):
        self._api = api
        self._config = config or InvoicingConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @contextmanager
    def _call(self) -> Iterator[None]:
        self._in_flight = True
        try:
            yield
        finally:
            self._in_flight = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> WizardState:
        """A fresh wizard with today's defaults."""
        return initial_state(self._clock.today(), self._config)

    def exit(self, state: WizardState) -> WizardState:
        """Discard the draft without saving; returns a fresh wizard."""
        logger.info("wizard_exited", extra={
            "step": int(state.step),
            "item_count": len(state.draft.items),
        })
        return reduce(state, Reset(new_draft(self._clock.today(), self._config)))

    # =========================================================================
    # Submit
    # =========================================================================

    def submit(self, state: WizardState) -> SubmitResult:
        """
        Create the invoice (and the payment recorded with it).

        Raises:
            DraftValidationError: the draft is not submittable.
            RemoteError: the API call failed; nothing was retried.
        """
        issues = validate_for_submit(state.draft)
        if issues:
            logger.info("invoice_submit_rejected", extra={
                "issue_codes": [i.code for i in issues],
            })
            raise DraftValidationError(issues)

        payload = build_submit_payload(state)
        totals = state.draft.totals()
        customer_id = state.draft.customer.customer_id
        with LogContext.bind(customer_id=customer_id, draft_id=state.draft_id):
            logger.info("invoice_submit_started", extra={
                "item_count": len(state.draft.items),
                "grand_total": str(totals.grand_total),
                "record_payment": state.draft.payment.record,
            })
            with self._call():
                created = self._api.create_invoice(payload) or {}
            logger.info("invoice_submit_completed", extra={
                "invoice_id": created.get("id"),
                "invoice_no": created.get("invoice_no"),
            })

        invoice_id = created.get("id")
        return SubmitResult(
            invoice_id=str(invoice_id) if invoice_id is not None else None,
            invoice_no=created.get("invoice_no"),
            totals=totals,
            payment_recorded=state.draft.payment.record,
            raw=dict(created),
        )

    # =========================================================================
    # Saved drafts
    # =========================================================================

    def save_draft(self, state: WizardState) -> WizardState:
        """Create or update the saved copy of the draft; returns the state with its id."""
        payload = build_draft_payload(state.draft)
        with self._call():
            if state.draft_id is None:
                created = self._api.create_draft(payload) or {}
                draft_id = str(created["id"])
                logger.info("invoice_draft_created", extra={"draft_id": draft_id})
                return reduce(state, SetDraftId(draft_id))
            self._api.update_draft(state.draft_id, payload)
        logger.info("invoice_draft_updated", extra={"draft_id": state.draft_id})
        return state

    def load_draft(self, state: WizardState, draft_id: str) -> WizardState:
        """Replace the wizard contents with a saved draft, back at step 1."""
        with self._call():
            data = self._api.get_draft(draft_id) or {}
        base = new_draft(self._clock.today(), self._config)
        return reduce(state, LoadDraft(draft_from_saved(data, base), str(draft_id)))

    def delete_draft(self, state: WizardState) -> WizardState:
        """Delete the saved copy, if any, and start over."""
        if state.draft_id is not None:
            with self._call():
                self._api.delete_draft(state.draft_id)
            logger.info("invoice_draft_deleted", extra={"draft_id": state.draft_id})
        return reduce(state, Reset(new_draft(self._clock.today(), self._config)))

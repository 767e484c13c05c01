"""
Tests for InvoiceWizardService over a mocked API client.

Covers:
- Submit payload under each discount policy
- Rejection before any network call on an invalid draft
- Remote failures leave the caller's state untouched
- Saved drafts: create, update, load, delete
"""

from datetime import date
from decimal import Decimal

import pytest

from backoffice_kernel.exceptions import ApiResponseError, DraftValidationError
from backoffice_modules.invoicing.config import InvoicingConfig
from backoffice_modules.invoicing.models import (
    CustomerRef,
    Discount,
    DiscountType,
    PerDocumentDiscount,
    WizardStep,
)
from backoffice_modules.invoicing.service import (
    InvoiceWizardService,
    build_draft_payload,
    build_submit_payload,
    draft_from_saved,
)
from backoffice_modules.invoicing.wizard import (
    BeginAddItem,
    NextStep,
    SaveItem,
    SetCustomer,
    SetDocumentDiscount,
    new_draft,
    reduce,
)
from tests.conftest import make_item


@pytest.fixture
def service(api, clock):
    return InvoiceWizardService(api, InvoicingConfig.with_defaults(), clock)


def _ready_state(service):
    state = service.start()
    for action in (
        SetCustomer(CustomerRef("7", "Acme Stores")),
        NextStep(),
        BeginAddItem(),
        SaveItem(make_item()),
        NextStep(),
    ):
        state = reduce(state, action)
    return state


class TestStart:

    def test_uses_clock_for_dates(self, service):
        state = service.start()
        assert state.draft.invoice_date == date(2024, 3, 1)
        assert state.draft.due_date == date(2024, 3, 15)

    def test_exit_returns_fresh_wizard(self, service):
        state = service.exit(_ready_state(service))
        assert state.step == WizardStep.CUSTOMER_AND_DATES
        assert state.draft.items == ()


class TestSubmitPayload:

    def test_per_item_policy(self, service):
        payload = build_submit_payload(_ready_state(service))

        assert payload["customer_id"] == "7"
        assert payload["invoice_date"] == "2024-03-01"
        assert payload["discount_scope"] == "item"
        assert "discount_type" not in payload
        assert payload["total_amount"] == Decimal("209.00")
        assert payload["items"][0]["discount_type"] == "flat"
        assert payload["items"][0]["discount_value"] == Decimal("10")
        assert payload["record_payment"] is True
        assert payload["payment"]["amount"] == Decimal("209.00")
        assert payload["payment"]["payment_method"] == "Cash"

    def test_per_document_policy_zeroes_item_discounts(self, service):
        state = reduce(
            _ready_state(service),
            SetDocumentDiscount(PerDocumentDiscount(Discount(DiscountType.PERCENT, Decimal("5")))),
        )
        payload = build_submit_payload(state)

        assert payload["discount_scope"] == "invoice"
        assert payload["discount_type"] == "percentage"
        assert payload["discount_value"] == Decimal("5")
        assert payload["items"][0]["discount_type"] == "percentage"
        assert payload["items"][0]["discount_value"] == Decimal("0")
        assert payload["total_amount"] == Decimal("210.00")


class TestSubmit:

    def test_submit_creates_invoice(self, service, api):
        api.create_invoice.return_value = {"id": 41, "invoice_no": "INV-0041"}

        result = service.submit(_ready_state(service))

        api.create_invoice.assert_called_once()
        assert result.invoice_id == "41"
        assert result.invoice_no == "INV-0041"
        assert result.totals.grand_total == Decimal("209.00")
        assert result.payment_recorded
        assert not service.in_flight

    def test_invalid_draft_never_reaches_api(self, service, api):
        with pytest.raises(DraftValidationError) as exc_info:
            service.submit(service.start())
        assert "CUSTOMER_REQUIRED" in exc_info.value.issue_codes
        api.create_invoice.assert_not_called()

    def test_remote_failure_keeps_state(self, service, api):
        api.create_invoice.side_effect = ApiResponseError(
            "POST", "/mobile-invoices/submit", 400, "Customer not found",
        )
        state = _ready_state(service)

        with pytest.raises(ApiResponseError) as exc_info:
            service.submit(state)

        assert exc_info.value.user_message == "Customer not found"
        assert state.step == WizardStep.PAYMENT
        assert len(state.draft.items) == 1
        assert not service.in_flight

    def test_in_flight_while_calling(self, service, api):
        seen = []
        api.create_invoice.side_effect = lambda payload: seen.append(service.in_flight) or {}
        service.submit(_ready_state(service))
        assert seen == [True]


class TestSavedDrafts:

    def test_first_save_creates(self, service, api):
        api.create_draft.return_value = {"id": 12, "session_id": "s"}
        state = service.save_draft(_ready_state(service))

        assert state.draft_id == "12"
        api.update_draft.assert_not_called()

    def test_second_save_updates(self, service, api):
        api.create_draft.return_value = {"id": 12}
        state = service.save_draft(_ready_state(service))
        service.save_draft(state)

        api.update_draft.assert_called_once()
        assert api.update_draft.call_args.args[0] == "12"

    def test_submit_payload_references_draft(self, service, api):
        api.create_draft.return_value = {"id": 12}
        state = service.save_draft(_ready_state(service))
        assert build_submit_payload(state)["draft_id"] == "12"

    def test_load_draft(self, service, api):
        api.get_draft.return_value = {
            "id": 12,
            "customer_id": 7,
            "customer_name": "Acme Stores",
            "invoice_date": "2024-02-20T00:00:00.000Z",
            "due_date": "2024-03-05",
            "terms": "Net 14",
            "notes": "urgent",
            "items_data": [{
                "item_id": "SKU-1",
                "name": "Widget",
                "quantity": 2,
                "unit_price": Decimal("100"),
                "tax_rate": 10,
                "discount_type": "flat",
                "discount_value": 10,
            }],
        }
        state = service.load_draft(_ready_state(service), "12")

        assert state.step == WizardStep.CUSTOMER_AND_DATES
        assert state.draft_id == "12"
        assert state.draft.customer == CustomerRef("7", "Acme Stores")
        assert state.draft.invoice_date == date(2024, 2, 20)
        assert state.draft.items[0].line_id == "line-1"
        assert state.draft.totals().grand_total == Decimal("209.00")

    def test_delete_draft(self, service, api):
        api.create_draft.return_value = {"id": 12}
        state = service.save_draft(_ready_state(service))

        state = service.delete_draft(state)

        api.delete_draft.assert_called_once_with("12")
        assert state.draft_id is None
        assert state.draft.items == ()

    def test_delete_unsaved_draft_makes_no_call(self, service, api):
        service.delete_draft(service.start())
        api.delete_draft.assert_not_called()


class TestDraftPayload:

    def test_items_survive_saved_shape(self, service):
        draft = _ready_state(service).draft
        base = new_draft(date(2024, 3, 1))

        restored = draft_from_saved(build_draft_payload(draft), base)

        assert restored.items == draft.items
        assert restored.customer.customer_id == "7"

    def test_unsaved_fields_come_from_base(self, service):
        base = new_draft(date(2024, 3, 1))
        restored = draft_from_saved({"customer_id": None, "items_data": []}, base)

        assert restored.customer is None
        assert restored.terms == base.terms
        assert restored.payment == base.payment

"""
Receivables Module Service - Payments and customer account views via the API.

Thin glue layer that:
1. Loads a customer's outstanding invoices into a PaymentAllocationSession
2. Submits an allocated payment as one record-payment call
3. Builds a customer statement from the ledger feed, with credit
   utilization and a cross-check against the API's own balance

All computation lives in engines.  The API owns persistence and applies
allocations to invoice balances; nothing here changes an invoice.

Usage:
    service = ReceivablesService(api, config, clock)
    session = service.open_payment(customer_id="7", amount=Decimal("500"))
    session.auto_allocate()
    service.record_payment(session)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any

from backoffice_engines.ledger import (
    account_state,
    cross_check_balance,
    derive_balances,
    statement_for_period,
)
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.domain.values import ZERO, to_decimal
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_modules.receivables.allocation import PaymentAllocationSession
from backoffice_modules.receivables.config import ReceivablesConfig
from backoffice_modules.receivables.models import (
    CustomerAccount,
    CustomerStatement,
    Invoice,
    OutstandingInvoice,
    ledger_entry_from_api,
)
from backoffice_services.api_client import BackofficeApiClient

logger = get_logger("modules.receivables.service")


class ReceivablesService:
    """
    Orchestrates payment allocation and account views through engines and the API.

    Each public method makes single round-trip calls only; no retries, no
    compensating writes.  ``in_flight`` is True while a call is outstanding.
    """

    def __init__(
        self,
        api: BackofficeApiClient,
        config: ReceivablesConfig | None = None,
        clock: Clock | None = None,
    ):
        self._api = api
        self._config = config or ReceivablesConfig.with_defaults()
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
    # Payments
    # =========================================================================

    def outstanding_invoices(self, customer_id: str) -> tuple[OutstandingInvoice, ...]:
        """Invoices with a positive balance, in the order the API returns them."""
        with self._call():
            rows = self._api.outstanding_invoices(
                customer_id, statuses=self._config.outstanding_statuses,
            )
        invoices = [Invoice.from_api(row) for row in rows]
        outstanding = tuple(
            OutstandingInvoice.from_invoice(inv)
            for inv in invoices
            if inv.balance_amount > 0
        )
        logger.info("outstanding_invoices_loaded", extra={
            "customer_id": str(customer_id),
            "returned_count": len(invoices),
            "outstanding_count": len(outstanding),
        })
        return outstanding

    def open_payment(
        self,
        customer_id: str,
        amount: Decimal = ZERO,
        payment_date: date | None = None,
    ) -> PaymentAllocationSession:
        """A new allocation session over the customer's outstanding invoices."""
        return PaymentAllocationSession(
            customer_id=str(customer_id),
            invoices=self.outstanding_invoices(customer_id),
            amount=amount,
            payment_date=payment_date or self._clock.today(),
            payment_method=self._config.default_payment_method,
        )

    def record_payment(self, session: PaymentAllocationSession) -> dict[str, Any]:
        """
        Submit the payment and its allocations.

        Raises:
            PaymentValidationError: the session is not submittable; no call made.
            RemoteError: the API call failed.  The session is left as it was.
        """
        payload = session.build_payload()
        with LogContext.bind(customer_id=session.customer_id):
            logger.info("payment_submit_started", extra={
                "amount": str(session.amount),
                "allocation_count": len(payload["invoice_allocations"]),
            })
            with self._call():
                created = self._api.record_payment(payload) or {}
            logger.info("payment_submit_completed", extra={
                "payment_id": created.get("id") if isinstance(created, dict) else None,
            })
        return created

    # =========================================================================
    # Customer account
    # =========================================================================

    def customer_statement(
        self,
        customer_id: str,
        from_date: date | None = None,
        to_date: date | None = None,
        opening_balance: Decimal = ZERO,
    ) -> CustomerStatement:
        """
        Ledger statement with running balances, utilization and balance check.

        The cross-check compares the balance derived from the whole feed
        with the API's ``currentBalance`` when the API reports one; a
        mismatch is logged and reported, never raised.
        """
        with self._call():
            customer = CustomerAccount.from_api(self._api.get_customer(customer_id))
            rows = self._api.customer_ledger(
                customer_id, sort_order=self._config.ledger_sort_order,
            )
            reported = self._api.customer_balance(customer_id)

        entries = [ledger_entry_from_api(row) for row in rows]
        opening = to_decimal(opening_balance)
        full = derive_balances(entries, opening_balance=opening)
        statement = (
            statement_for_period(entries, from_date, to_date, opening_balance=opening)
            if from_date or to_date
            else full
        )

        account = account_state(
            full.current_balance,
            customer.credit_limit,
            warning_threshold=self._config.warning_threshold,
            critical_threshold=self._config.critical_threshold,
        )
        reported_balance = (reported or {}).get("currentBalance")
        check = None
        if reported_balance is not None:
            check = cross_check_balance(full.current_balance, to_decimal(reported_balance))

        logger.info("customer_statement_built", extra={
            "customer_id": str(customer_id),
            "entry_count": len(entries),
            "current_balance": str(full.current_balance),
            "utilization_level": account.level.value,
            "balance_matches": None if check is None else check.matches,
        })
        return CustomerStatement(
            customer=customer,
            statement=statement,
            account=account,
            balance_check=check,
        )

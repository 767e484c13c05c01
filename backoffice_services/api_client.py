"""
BackofficeApiClient -- HTTP client for the remote back-office API.

Responsibility:
    Issues the JSON-over-HTTP calls the core depends on (outstanding
    invoices, invoice submission, payments, customer ledger and balance,
    saved invoice drafts), unwraps the ``{"success": ..., "data": ...}``
    envelope and turns every failure into a typed ``RemoteError``.

Architecture position:
    Services -- the only module that performs network I/O.  Modules call
    it; engines never do.

Invariants enforced:
    - One request per call.  No retries, no idempotency keys.
    - Money in responses is parsed as ``Decimal`` (never float).
    - Money in request payloads is sent as a JSON number.

Failure modes:
    - ApiConnectionError: no response (refused, DNS, timeout).
    - ApiResponseError: non-2xx status, ``success: false`` envelope, or a
      body that is not JSON.  The server's ``error`` (or ``message``) text
      is kept as ``server_message``.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from urllib.parse import quote

import requests

from backoffice_config.schema import ApiConfig
from backoffice_kernel.exceptions import ApiConnectionError, ApiResponseError
from backoffice_kernel.logging_config import get_logger

logger = get_logger("services.api_client")

DEFAULT_OUTSTANDING_STATUSES = ("Unpaid", "Partially Paid", "Overdue")


def _jsonable(value: Any) -> Any:
    """Convert a payload to plain JSON types."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _server_message(body: Any) -> str | None:
    if isinstance(body, Mapping):
        message = body.get("error") or body.get("message")
        if message:
            return str(message)
    return None


class BackofficeApiClient:
    """
    Client for the back-office REST API.

    Contract:
        Every public method makes exactly one HTTP request and returns the
        envelope's ``data`` member (or the whole body when there is none).
    """

    def __init__(
        self,
        base_url: str = ApiConfig.base_url,
        token: str | None = None,
        timeout: float = ApiConfig.timeout_seconds,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.session.headers.update(headers)

    @classmethod
    def from_config(cls, config: ApiConfig, session: requests.Session | None = None) -> BackofficeApiClient:
        return cls(
            base_url=config.base_url,
            token=config.token,
            timeout=config.timeout_seconds,
            session=session,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        t0 = time.monotonic()
        logger.debug("api_request_started", extra={"method": method, "path": path})

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=_jsonable(payload) if payload is not None else None,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            logger.warning("api_request_timeout", extra={
                "method": method, "path": path, "timeout": self.timeout,
            })
            raise ApiConnectionError(method, path, f"timed out after {self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("api_request_unreachable", extra={
                "method": method, "path": path, "error": str(exc),
            })
            raise ApiConnectionError(method, path, str(exc)) from exc

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        try:
            body = response.json(parse_float=Decimal) if response.content else None
        except ValueError:
            body = None
            if response.ok:
                logger.error("api_response_not_json", extra={
                    "method": method, "path": path, "status_code": response.status_code,
                })
                raise ApiResponseError(
                    method, path, response.status_code, "Response was not valid JSON",
                ) from None

        if not response.ok or (isinstance(body, Mapping) and body.get("success") is False):
            message = _server_message(body)
            logger.warning("api_request_rejected", extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "server_message": message,
                "duration_ms": duration_ms,
            })
            raise ApiResponseError(method, path, response.status_code, message)

        logger.info("api_request_completed", extra={
            "method": method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        })
        if isinstance(body, Mapping) and "data" in body:
            return body["data"]
        return body

    # ------------------------------------------------------------------
    # Invoices and payments
    # ------------------------------------------------------------------

    def outstanding_invoices(
        self,
        customer_id: str,
        statuses: Sequence[str] = DEFAULT_OUTSTANDING_STATUSES,
    ) -> list[dict[str, Any]]:
        """Invoices of the customer that still carry a balance."""
        data = self._request(
            "GET",
            "/invoices",
            params={"customerId": customer_id, "status": ",".join(statuses)},
        )
        return list(data or [])

    def create_invoice(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/mobile-invoices/submit", payload=payload)

    def record_payment(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/payments", payload=payload)

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def get_customer(self, customer_id: str) -> dict[str, Any]:
        return self._request("GET", f"/customers/{quote(str(customer_id))}")

    def customer_ledger(self, customer_id: str, sort_order: str = "ASC") -> list[dict[str, Any]]:
        data = self._request(
            "GET",
            f"/customers/{quote(str(customer_id))}/ledger",
            params={"sortBy": "transaction_date", "sortOrder": sort_order},
        )
        return list(data or [])

    def customer_balance(self, customer_id: str) -> dict[str, Any]:
        """``{"customerId", "customerName", "currentBalance"}``."""
        return self._request("GET", f"/customers/{quote(str(customer_id))}/balance")

    # ------------------------------------------------------------------
    # Saved invoice drafts
    # ------------------------------------------------------------------

    def create_draft(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Returns ``{"id", "session_id"}``."""
        return self._request("POST", "/mobile-invoices/draft", payload=payload)

    def update_draft(self, draft_id: str, payload: Mapping[str, Any]) -> Any:
        return self._request(
            "PUT", f"/mobile-invoices/draft/{quote(str(draft_id))}", payload=payload,
        )

    def get_draft(self, draft_id: str) -> dict[str, Any]:
        return self._request("GET", f"/mobile-invoices/draft/{quote(str(draft_id))}")

    def delete_draft(self, draft_id: str) -> Any:
        return self._request("DELETE", f"/mobile-invoices/draft/{quote(str(draft_id))}")

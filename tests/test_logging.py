"""Tests for backoffice_kernel.logging_config: JSON lines, context, setup."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import UUID

import pytest

from backoffice_kernel.exceptions import DraftValidationError, UnknownInvoiceError
from backoffice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


class _Capture:
    """A StringIO-backed handler plus helpers to read back JSON lines."""

    def __init__(self):
        self.stream = StringIO()
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(StructuredFormatter())

    def lines(self) -> list[dict]:
        return [json.loads(raw) for raw in self.stream.getvalue().splitlines() if raw]

    def last(self) -> dict:
        return self.lines()[-1]


@pytest.fixture
def capture():
    reset_logging()
    cap = _Capture()
    configure_logging(handler=cap.handler)
    yield cap
    reset_logging()


@pytest.fixture
def log():
    return get_logger("tests.logging")


class TestJsonLines:

    def test_base_keys(self, capture, log):
        log.info("invoice_submit_started")

        record = capture.last()
        assert record["message"] == "invoice_submit_started"
        assert record["level"] == "INFO"
        assert record["logger"] == "backoffice.tests.logging"
        assert record["ts"].endswith("+00:00")

    def test_extra_becomes_top_level_keys(self, capture, log):
        log.info("payment_auto_allocated", extra={"allocation_count": 2, "remaining": "0.00"})

        record = capture.last()
        assert record["allocation_count"] == 2
        assert record["remaining"] == "0.00"

    def test_non_json_values_are_stringified(self, capture, log):
        uid = UUID("12345678-1234-5678-1234-567812345678")
        log.info(
            "ledger_statement_built",
            extra={"opening": Decimal("120.50"), "as_of": date(2024, 3, 31), "ref": uid},
        )

        record = capture.last()
        assert record["opening"] == "120.50"
        assert record["as_of"] == "2024-03-31"
        assert record["ref"] == str(uid)

    def test_level_filtering(self, capture, log):
        log.debug("dropped")
        log.info("kept")
        log.warning("also_kept")

        assert [r["message"] for r in capture.lines()] == ["kept", "also_kept"]

    def test_plain_exception(self, capture, log):
        try:
            raise RuntimeError("socket closed")
        except RuntimeError:
            log.exception("api_request_failed")

        record = capture.last()
        assert record["level"] == "ERROR"
        assert record["exc_type"] == "RuntimeError"
        assert record["exc_message"] == "socket closed"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_backoffice_exception_attributes(self, capture, log):
        try:
            raise UnknownInvoiceError("inv-9")
        except UnknownInvoiceError:
            log.error("allocation_rejected", exc_info=True)

        record = capture.last()
        assert record["exc_code"] == "UNKNOWN_INVOICE"
        assert record["exc_invoice_id"] == "inv-9"

    def test_exception_code_only(self, capture, log):
        try:
            raise DraftValidationError([])
        except DraftValidationError:
            log.warning("invoice_submit_blocked", exc_info=True)

        assert capture.last()["exc_code"] == "DRAFT_INVALID"


class TestLogContext:

    @pytest.fixture(autouse=True)
    def _empty_context(self):
        LogContext.clear()
        yield
        LogContext.clear()

    def test_fields_land_on_every_record(self, capture, log):
        LogContext.set(customer_id=7, draft_id="d-1")
        log.info("one")
        log.info("two")

        for record in capture.lines():
            assert record["customer_id"] == "7"
            assert record["draft_id"] == "d-1"

    def test_no_context_keys_by_default(self, capture, log):
        log.info("bare")
        assert not set(LogContext.FIELDS) & set(capture.last())

    def test_set_is_additive(self):
        LogContext.set(correlation_id="c")
        LogContext.set(actor_id="a")
        assert LogContext.get_all() == {"correlation_id": "c", "actor_id": "a"}

    def test_get_all_is_a_copy(self):
        LogContext.set(customer_id="7")
        LogContext.get_all()["customer_id"] = "8"
        assert LogContext.get_all() == {"customer_id": "7"}

    def test_none_values_are_ignored(self):
        LogContext.set(customer_id="7")
        LogContext.set(customer_id=None, draft_id=None)
        assert LogContext.get_all() == {"customer_id": "7"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="event_id"):
            LogContext.set(event_id="e")
        assert LogContext.get_all() == {}

    def test_bind_overrides_then_restores(self):
        LogContext.set(customer_id="outer")
        with LogContext.bind(customer_id="inner", draft_id="d-2"):
            assert LogContext.get_all() == {"customer_id": "inner", "draft_id": "d-2"}
        assert LogContext.get_all() == {"customer_id": "outer"}

    def test_bind_restores_after_exception(self):
        with pytest.raises(KeyError):
            with LogContext.bind(actor_id="clerk"):
                raise KeyError("x")
        assert LogContext.get_all() == {}

    def test_nested_binds(self):
        with LogContext.bind(customer_id="1"):
            with LogContext.bind(draft_id="d"):
                assert LogContext.get_all() == {"customer_id": "1", "draft_id": "d"}
            assert LogContext.get_all() == {"customer_id": "1"}


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def _reset(self):
        reset_logging()
        yield
        reset_logging()

    def test_second_call_is_ignored(self):
        first, second = _Capture(), _Capture()
        configure_logging(handler=first.handler)
        configure_logging(handler=second.handler)

        assert logging.getLogger("backoffice").handlers == [first.handler]

    @pytest.mark.parametrize("level", ["debug", "DEBUG", logging.DEBUG])
    def test_level_by_name_or_number(self, level):
        cap = _Capture()
        configure_logging(level=level, handler=cap.handler)
        get_logger("modules.invoicing.wizard").debug("wizard_step_changed")

        record = cap.last()
        assert record["message"] == "wizard_step_changed"
        assert record["logger"] == "backoffice.modules.invoicing.wizard"

    def test_stream_argument(self):
        stream = StringIO()
        configure_logging(stream=stream)
        get_logger("x").info("to_stream")

        assert json.loads(stream.getvalue())["message"] == "to_stream"

    def test_configured_root_does_not_propagate(self):
        configure_logging(handler=_Capture().handler)
        assert logging.getLogger("backoffice").propagate is False

    def test_reset_detaches_handlers(self):
        configure_logging(handler=_Capture().handler)
        reset_logging()

        root = logging.getLogger("backoffice")
        assert root.handlers == []
        assert root.propagate is True

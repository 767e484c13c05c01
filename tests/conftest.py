"""
Shared fixtures for the back-office core test suite.

Nothing here touches the network: services are built over a
``MagicMock`` standing in for ``BackofficeApiClient``, and time comes from
a ``DeterministicClock``.
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from backoffice_engines.pricing import Discount, DiscountType, LineItem
from backoffice_kernel.domain.clock import DeterministicClock
from backoffice_kernel.logging_config import LogContext, reset_logging
from backoffice_services.api_client import BackofficeApiClient

TEST_TODAY = datetime(2024, 3, 1, 9, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Logging fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging_state():
    """Undo configure_logging() and clear bound context after each test."""
    yield
    LogContext.clear()
    reset_logging()


# ---------------------------------------------------------------------------
# Clock / API fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(TEST_TODAY)


@pytest.fixture
def api() -> MagicMock:
    """Mocked API client; configure return values per test."""
    return MagicMock(spec=BackofficeApiClient)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_item(
    line_id: str = "line-1",
    item_ref: str = "SKU-1",
    quantity: str = "2",
    rate: str = "100",
    tax: str = "10",
    discount: Discount | None = None,
) -> LineItem:
    return LineItem(
        line_id=line_id,
        item_ref=item_ref,
        description=f"Item {item_ref}",
        quantity=Decimal(quantity),
        rate=Decimal(rate),
        tax_rate_percent=Decimal(tax),
        discount=discount or Discount(DiscountType.FLAT, Decimal("10")),
    )

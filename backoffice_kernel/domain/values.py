"""
Values -- Money helpers for a single implicit currency.

Responsibility:
    Converts boundary input (int, str, float, Decimal) into ``Decimal`` and
    rounds money to two decimal places.  Every engine and module uses these
    helpers instead of doing its own conversion or quantization.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Floats never enter arithmetic: they are converted through ``str()`` so
      that ``0.1`` becomes ``Decimal("0.1")``, not its binary expansion.
    - Money is quantized to ``MONEY_QUANTUM`` with ``ROUND_HALF_UP``.

Failure modes:
    - ValueError on values that cannot be parsed as a decimal number.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

MONEY_PLACES = 2
MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Convert a boundary value to Decimal.

    None and empty strings read as zero, matching form fields that were
    cleared by the user.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal amount: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(value: Any) -> Decimal:
    """Round to two decimal places, half away from zero."""
    return to_decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def percent_of(base: Decimal, percent: Decimal) -> Decimal:
    """``base * percent / 100`` without intermediate rounding."""
    return base * percent / HUNDRED

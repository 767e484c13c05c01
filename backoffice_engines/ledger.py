"""
Ledger Engine - Running balances and credit utilization for a customer.

Responsibility:
    Turns a customer's debit/credit transaction feed into a statement with
    a running balance per entry, derives the current balance, and
    classifies how much of the credit limit is used.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every entry has exactly one nonzero side, and neither side is
      negative.
    - Entries are stably sorted by date before accumulation; entries on the
      same date keep feed order.
    - ``current_balance == opening_balance + total_debit - total_credit``
      and equals the last running balance.

Failure modes:
    - ValueError from LedgerEntry on a malformed entry.
    - A credit limit of zero (or less) is "not applicable", never an error.

Usage:
    from backoffice_engines.ledger import LedgerEntry, derive_balances

    statement = derive_balances(entries, opening_balance=Decimal("0"))
    print(statement.current_balance)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Sequence

from backoffice_engines.tracer import traced_engine
from backoffice_kernel.domain.values import HUNDRED, ZERO, round_money, to_decimal
from backoffice_kernel.logging_config import get_logger

logger = get_logger("engines.ledger")

WARNING_THRESHOLD = Decimal("75")
CRITICAL_THRESHOLD = Decimal("90")


class UtilizationLevel(str, Enum):
    """Credit utilization classification."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True)
class LedgerEntry:
    """
    One transaction on a customer's account.

    Contract:
        A debit raises what the customer owes (an invoice); a credit lowers
        it (a payment or credit note).  Exactly one side is nonzero.
    """

    entry_id: str
    entry_date: date
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    reference: str = ""
    description: str = ""
    transaction_type: str = ""

    def __post_init__(self) -> None:
        debit = to_decimal(self.debit)
        credit = to_decimal(self.credit)
        if debit < 0 or credit < 0:
            raise ValueError(
                f"Ledger entry {self.entry_id}: debit and credit cannot be negative"
            )
        if (debit != 0) == (credit != 0):
            raise ValueError(
                f"Ledger entry {self.entry_id}: exactly one of debit/credit must be nonzero"
            )
        object.__setattr__(self, "debit", debit)
        object.__setattr__(self, "credit", credit)

    @property
    def net(self) -> Decimal:
        """``debit - credit``."""
        return self.debit - self.credit


@dataclass(frozen=True)
class StatementLine:
    entry: LedgerEntry
    running_balance: Decimal


@dataclass(frozen=True)
class LedgerStatement:
    """Entries in date order with their running balances."""

    opening_balance: Decimal
    lines: tuple[StatementLine, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def current_balance(self) -> Decimal:
        return self.opening_balance + self.total_debit - self.total_credit

    @property
    def running_balances(self) -> tuple[Decimal, ...]:
        return tuple(line.running_balance for line in self.lines)


@dataclass(frozen=True)
class CustomerAccountState:
    current_balance: Decimal
    credit_limit: Decimal
    utilization_percent: Decimal | None
    level: UtilizationLevel

    @property
    def available_credit(self) -> Decimal | None:
        """Credit left under the limit, or None when there is no limit."""
        if self.credit_limit <= 0:
            return None
        return self.credit_limit - self.current_balance


@dataclass(frozen=True)
class BalanceCheck:
    """Derived balance compared against the authoritative one."""

    derived_balance: Decimal
    reported_balance: Decimal
    difference: Decimal

    @property
    def matches(self) -> bool:
        return self.difference == 0


@traced_engine("ledger", "1.0", fingerprint_fields=("entries", "opening_balance"))
def derive_balances(
    entries: Sequence[LedgerEntry],
    opening_balance: Decimal = ZERO,
) -> LedgerStatement:
    """
    Accumulate running balances over a ledger feed.

    ``running_balance[k] = opening_balance + sum(debit - credit for j <= k)``
    after a stable sort by entry date.
    """
    opening = to_decimal(opening_balance)
    ordered = sorted(entries, key=lambda e: e.entry_date)
    if any(a is not b for a, b in zip(ordered, entries)):
        logger.info("ledger_feed_reordered", extra={"entry_count": len(entries)})

    running = opening
    total_debit = ZERO
    total_credit = ZERO
    lines: list[StatementLine] = []
    for entry in ordered:
        running += entry.net
        total_debit += entry.debit
        total_credit += entry.credit
        lines.append(StatementLine(entry=entry, running_balance=running))

    return LedgerStatement(
        opening_balance=opening,
        lines=tuple(lines),
        total_debit=total_debit,
        total_credit=total_credit,
    )


def statement_for_period(
    entries: Sequence[LedgerEntry],
    from_date: date | None = None,
    to_date: date | None = None,
    opening_balance: Decimal = ZERO,
) -> LedgerStatement:
    """
    Statement limited to ``from_date <= entry_date <= to_date``.

    Entries dated before ``from_date`` are folded into the statement's
    opening balance, so the closing figure still matches the full feed up
    to ``to_date``.
    """
    opening = to_decimal(opening_balance)
    in_period: list[LedgerEntry] = []
    for entry in entries:
        if from_date is not None and entry.entry_date < from_date:
            opening += entry.net
        elif to_date is None or entry.entry_date <= to_date:
            in_period.append(entry)
    return derive_balances(in_period, opening_balance=opening)


def _utilization_ratio(balance: Decimal, credit_limit: Decimal) -> Decimal | None:
    limit = to_decimal(credit_limit)
    if limit <= 0:
        return None
    return to_decimal(balance) / limit * HUNDRED


def credit_utilization(balance: Decimal, credit_limit: Decimal) -> Decimal | None:
    """Percentage of the credit limit in use, or None when there is no limit.

    Rounded for display; classify with the unrounded ratio.
    """
    ratio = _utilization_ratio(balance, credit_limit)
    return None if ratio is None else round_money(ratio)


def classify_utilization(
    utilization_percent: Decimal | None,
    warning_threshold: Decimal = WARNING_THRESHOLD,
    critical_threshold: Decimal = CRITICAL_THRESHOLD,
) -> UtilizationLevel:
    if utilization_percent is None:
        return UtilizationLevel.NOT_APPLICABLE
    if utilization_percent >= critical_threshold:
        return UtilizationLevel.CRITICAL
    if utilization_percent >= warning_threshold:
        return UtilizationLevel.WARNING
    return UtilizationLevel.NORMAL


def account_state(
    balance: Decimal,
    credit_limit: Decimal,
    warning_threshold: Decimal = WARNING_THRESHOLD,
    critical_threshold: Decimal = CRITICAL_THRESHOLD,
) -> CustomerAccountState:
    """Balance, limit and utilization level for display."""
    balance = to_decimal(balance)
    limit = to_decimal(credit_limit)
    ratio = _utilization_ratio(balance, limit)
    return CustomerAccountState(
        current_balance=balance,
        credit_limit=limit,
        utilization_percent=None if ratio is None else round_money(ratio),
        level=classify_utilization(ratio, warning_threshold, critical_threshold),
    )


def cross_check_balance(derived: Decimal, reported: Decimal) -> BalanceCheck:
    """Compare a derived balance with the API's authoritative balance."""
    derived = round_money(derived)
    reported = round_money(reported)
    check = BalanceCheck(
        derived_balance=derived,
        reported_balance=reported,
        difference=reported - derived,
    )
    if not check.matches:
        logger.warning("ledger_balance_mismatch", extra={
            "derived_balance": str(derived),
            "reported_balance": str(reported),
            "difference": str(check.difference),
        })
    return check

"""
Pure domain layer.

Value helpers, the injectable clock and workflow declarations, with NO
dependencies on:
- HTTP transport
- Configuration files
- I/O (other than SystemClock)
"""

from backoffice_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from backoffice_kernel.domain.values import (
    MONEY_QUANTUM,
    ZERO,
    percent_of,
    round_money,
    to_decimal,
)
from backoffice_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "MONEY_QUANTUM",
    "ZERO",
    "percent_of",
    "round_money",
    "to_decimal",
    "Guard",
    "Transition",
    "Workflow",
]

"""
Receivables Configuration Schema.

Defines the structure and defaults for receivables settings: credit
utilization thresholds, which invoice statuses count as outstanding, and
how the ledger feed is requested.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from backoffice_engines.ledger import CRITICAL_THRESHOLD, WARNING_THRESHOLD
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.receivables.config")


@dataclass
class ReceivablesConfig:
    """
    Configuration schema for the receivables module.

        config = ReceivablesConfig(warning_threshold=Decimal("80"))
    """

    # Credit utilization (percent of limit)
    warning_threshold: Decimal = WARNING_THRESHOLD
    critical_threshold: Decimal = CRITICAL_THRESHOLD

    # Statuses requested when listing invoices for payment allocation
    outstanding_statuses: tuple[str, ...] = field(
        default_factory=lambda: ("Unpaid", "Partially Paid", "Overdue")
    )

    # Order asked of the ledger endpoint; entries are re-sorted regardless
    ledger_sort_order: str = "ASC"

    default_payment_method: str = "Cash"

    def __post_init__(self):
        self.warning_threshold = Decimal(str(self.warning_threshold))
        self.critical_threshold = Decimal(str(self.critical_threshold))
        self.outstanding_statuses = tuple(self.outstanding_statuses)
        self.ledger_sort_order = str(self.ledger_sort_order).upper()

        if self.warning_threshold <= 0:
            raise ValueError("warning_threshold must be positive")
        if self.critical_threshold <= self.warning_threshold:
            raise ValueError(
                f"critical_threshold ({self.critical_threshold}) must exceed "
                f"warning_threshold ({self.warning_threshold})"
            )
        if not self.outstanding_statuses:
            raise ValueError("outstanding_statuses cannot be empty")

        valid_orders = {"ASC", "DESC"}
        if self.ledger_sort_order not in valid_orders:
            raise ValueError(
                f"ledger_sort_order must be one of {valid_orders}, "
                f"got '{self.ledger_sort_order}'"
            )

        logger.info(
            "receivables_config_initialized",
            extra={
                "warning_threshold": str(self.warning_threshold),
                "critical_threshold": str(self.critical_threshold),
                "outstanding_statuses": list(self.outstanding_statuses),
                "ledger_sort_order": self.ledger_sort_order,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("receivables_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g., the YAML ``receivables`` section)."""
        logger.info(
            "receivables_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

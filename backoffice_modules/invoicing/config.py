"""
Invoicing Configuration Schema.

Defaults the invoice wizard applies to a new draft.  Values come from the
``invoicing`` section of the active configuration at runtime.
"""

from dataclasses import dataclass, field
from typing import Self

from backoffice_engines.pricing import DiscountPolicy
from backoffice_kernel.logging_config import get_logger

logger = get_logger("modules.invoicing.config")


@dataclass
class InvoicingConfig:
    """
    Configuration schema for the invoicing module.

    Override at instantiation with company-specific values:

        config = InvoicingConfig(default_due_days=30, default_terms="Net 30")
    """

    default_due_days: int = 14
    default_terms: str = "Net 14"
    default_payment_method: str = "Cash"
    default_discount_policy: DiscountPolicy = DiscountPolicy.PER_ITEM
    payment_methods: tuple[str, ...] = field(
        default_factory=lambda: ("Cash", "Bank Transfer", "Cheque", "Card", "Mobile Money")
    )

    def __post_init__(self):
        if self.default_due_days < 0:
            raise ValueError("default_due_days cannot be negative")

        self.default_discount_policy = DiscountPolicy(self.default_discount_policy)
        self.payment_methods = tuple(self.payment_methods)

        if self.payment_methods and self.default_payment_method not in self.payment_methods:
            raise ValueError(
                f"default_payment_method must be one of {self.payment_methods}, "
                f"got '{self.default_payment_method}'"
            )

        logger.info(
            "invoicing_config_initialized",
            extra={
                "default_due_days": self.default_due_days,
                "default_terms": self.default_terms,
                "default_payment_method": self.default_payment_method,
                "default_discount_policy": self.default_discount_policy.value,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard defaults."""
        logger.info("invoicing_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g., the YAML ``invoicing`` section)."""
        logger.info(
            "invoicing_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

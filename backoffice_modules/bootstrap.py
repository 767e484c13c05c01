"""
Wires the active configuration into ready-to-use module services.

Usage:
    services = build_services()
    state = services.invoicing.start()
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from backoffice_config import AppConfig, get_active_config
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.logging_config import configure_logging
from backoffice_modules.invoicing.config import InvoicingConfig
from backoffice_modules.invoicing.service import InvoiceWizardService
from backoffice_modules.receivables.config import ReceivablesConfig
from backoffice_modules.receivables.service import ReceivablesService
from backoffice_services.api_client import BackofficeApiClient


@dataclass(frozen=True)
class BackofficeServices:
    config: AppConfig
    api: BackofficeApiClient
    invoicing: InvoiceWizardService
    receivables: ReceivablesService


def build_services(
    config: AppConfig | None = None,
    clock: Clock | None = None,
    session: requests.Session | None = None,
) -> BackofficeServices:
    """Configure logging and construct the API client and module services."""
    config = config or get_active_config()
    clock = clock or SystemClock()
    configure_logging(level=config.logging.level)

    api = BackofficeApiClient.from_config(config.api, session=session)
    return BackofficeServices(
        config=config,
        api=api,
        invoicing=InvoiceWizardService(
            api, InvoicingConfig.from_dict(dict(config.invoicing)), clock,
        ),
        receivables=ReceivablesService(
            api, ReceivablesConfig.from_dict(dict(config.receivables)), clock,
        ),
    )

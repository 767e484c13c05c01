"""
Back-office Modules.

Thin orchestration layers over the kernel and engines.
Each module contains:
- Domain models (the nouns)
- Workflows or stateful sessions
- Configuration schemas
- A service that talks to the back-office API

Modules:
- Invoicing: invoice creation wizard, saved drafts, submit
- Receivables: outstanding invoices, payment allocation, customer ledger

Calculation lives in the engines; network I/O in backoffice_services.
"""

from backoffice_modules import invoicing, receivables

__all__ = ["invoicing", "receivables"]

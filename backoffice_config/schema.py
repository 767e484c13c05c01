"""
Back-office configuration schema.

Typed, frozen view of the YAML configuration file.  The loader parses the
file into these types; ``get_active_config()`` hands the result to callers.

Module sections (``invoicing``, ``receivables``) are kept as plain mappings
here and parsed by the owning module's config class
(``InvoicingConfig.from_dict`` / ``ReceivablesConfig.from_dict``), so the
config layer never imports module code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiConfig:
    """Where and how to reach the back-office API."""

    base_url: str = "http://localhost:3011/api"
    timeout_seconds: float = 10.0
    token: str | None = None


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AppConfig:
    """
    The complete runtime configuration.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    document and identifies the configuration in logs.
    """

    config_id: str
    version: int
    api: ApiConfig
    logging: LoggingSettings
    invoicing: dict[str, Any] = field(default_factory=dict)
    receivables: dict[str, Any] = field(default_factory=dict)
    checksum: str = ""

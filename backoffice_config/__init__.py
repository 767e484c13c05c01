"""
backoffice_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or the ``BACKOFFICE_CONFIG`` environment variable.

Architecture position:
    Configuration -- YAML-driven.  This package sits above
    ``backoffice_kernel`` and below ``backoffice_services`` /
    ``backoffice_modules``.  The kernel MUST NEVER import from
    ``backoffice_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value fails validation.
    - ``yaml.YAMLError`` -- the file is not valid YAML.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``BACKOFFICE_CONFIG_TRACE`` log entry with the config id, version,
    checksum and source path.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from backoffice_config.loader import load_yaml_file, parse_config
from backoffice_config.schema import ApiConfig, AppConfig, LoggingSettings

_logger = logging.getLogger("backoffice.config")

CONFIG_ENV_VAR = "BACKOFFICE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> AppConfig:
    """The ONLY public configuration entrypoint.

    Resolution order: the ``path`` argument, then the ``BACKOFFICE_CONFIG``
    environment variable, then the packaged ``defaults.yaml``.

    Non-goals:
        - Does NOT cache; callers hold the returned config.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If configuration validation fails.
    """
    source = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    config = parse_config(load_yaml_file(source))

    _logger.info(
        "BACKOFFICE_CONFIG_TRACE",
        extra={
            "trace_type": "BACKOFFICE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
            "api_base_url": config.api.base_url,
        },
    )
    return config


__all__ = [
    "ApiConfig",
    "AppConfig",
    "LoggingSettings",
    "get_active_config",
]

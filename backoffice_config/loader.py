"""
Configuration Loader (``backoffice_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the typed
``backoffice_config.schema`` dataclasses.  Runtime callers go through
``backoffice_config.get_active_config()`` instead of calling this module.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Values are validated as they are parsed; bad values raise ``ValueError``
  naming the offending key.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id``  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from backoffice_config.schema import ApiConfig, AppConfig, LoggingSettings

_VALID_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def parse_api(data: dict[str, Any]) -> ApiConfig:
    base_url = str(data.get("base_url", ApiConfig.base_url)).rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        raise ValueError(f"api.base_url must be an http(s) URL, got {base_url!r}")
    timeout = float(data.get("timeout_seconds", ApiConfig.timeout_seconds))
    if timeout <= 0:
        raise ValueError("api.timeout_seconds must be positive")
    token = data.get("token") or None
    return ApiConfig(base_url=base_url, timeout_seconds=timeout, token=token)


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings.level)).upper()
    if level not in _VALID_LOG_LEVELS:
        raise ValueError(f"logging.level must be a logging level name, got {level!r}")
    return LoggingSettings(level=level)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{key} must be a mapping")
    return dict(section)


def parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse a whole configuration document."""
    return AppConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        api=parse_api(_section(data, "api")),
        logging=parse_logging(_section(data, "logging")),
        invoicing=_section(data, "invoicing"),
        receivables=_section(data, "receivables"),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

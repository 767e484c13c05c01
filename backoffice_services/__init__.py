"""
Services layer -- network I/O against the back-office API.

Usage:
    from backoffice_services import BackofficeApiClient
"""

from backoffice_services.api_client import BackofficeApiClient

__all__ = ["BackofficeApiClient"]

"""
Domain models — Pydantic types for the bundler.

    from deskpack.core.models import Configuration, Environment, VendorSettings
"""

from deskpack.core.models.configuration import (
    VALID_OS,
    Configuration,
    Environment,
    VendorSettings,
)

__all__ = [
    "VALID_OS",
    "Configuration",
    "Environment",
    "VendorSettings",
]

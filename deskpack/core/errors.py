"""
Error taxonomy for the bundling pipeline.

Every pipeline step wraps the underlying failure (``OSError``, tool exit
codes, HTTP errors) in one of these, with the operation and path in the
message, and raises immediately. Nothing is retried.

Cancellation is NOT part of this hierarchy: see
``deskpack.core.cancellation.Cancelled``.
"""

from __future__ import annotations


class DeskpackError(Exception):
    """Base class for all deskpack failures."""


class ConfigError(DeskpackError):
    """Raised when the configuration is missing, unreadable or invalid."""


class BundleError(DeskpackError):
    """Raised when bundling an environment fails."""


class ProvisionError(BundleError):
    """Raised when the vendor directory cannot be provisioned."""


class EmbedError(BundleError):
    """Raised when the data-embedding generator fails."""


class CompileError(BundleError):
    """Raised when the icon embedder or the compiler fails."""


class FinishError(BundleError):
    """Raised when the final bundle layout cannot be assembled."""


class UnsupportedOSError(FinishError):
    """Raised when no finisher exists for a target OS."""

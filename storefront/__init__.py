"""Storefront client: session-scoped cart synchronization and catalog access."""
from .config import StorefrontSettings, get_settings
from .errors import (
    StorefrontError,
    TransportError,
    MalformedResponseError,
    RejectedError,
    InsufficientStockError,
    CartLineNotFoundError,
    AuthRejectedError,
    InvalidRequestError,
    CartBusyError,
    CartReconcileError,
)

__version__ = "0.4.0"

__all__ = [
    "StorefrontSettings",
    "get_settings",
    "StorefrontError",
    "TransportError",
    "MalformedResponseError",
    "RejectedError",
    "InsufficientStockError",
    "CartLineNotFoundError",
    "AuthRejectedError",
    "InvalidRequestError",
    "CartBusyError",
    "CartReconcileError",
]

"""
Storefront client errors.

Display messages live here as constants so the cart, checkout and admin
helpers report the same wording. Every failure surfaced to a caller is a
StorefrontError subclass carrying a message suitable for showing to the user.
"""
from typing import Any

# Transport errors
ERROR_NO_RESPONSE = "No response from server. Please check your connection."
ERROR_MALFORMED_RESPONSE = "Unexpected response from server. Please try again."

# Cart errors
ERROR_PRODUCT_IDENTITY = "Product has no identifier and cannot be added to the cart"
ERROR_OUT_OF_STOCK = "Not enough items in stock"
ERROR_LINE_NOT_FOUND = "Product is not in the cart"
ERROR_CART_BUSY = "Cart is being updated, please wait"
ERROR_CART_NOT_REFRESHED = "Cart was updated but could not be refreshed"
ERROR_CART_EMPTY = "Cart is empty"

# Auth errors
ERROR_UNAUTHORIZED = "Session expired, please log in again"

# Checkout errors
ERROR_NAME_REQUIRED = "Please enter your name"
ERROR_PHONE_REQUIRED = "Please enter your phone number"

# Announcement errors
ERROR_SCHEDULE_REQUIRED = "Please specify the send time"
ERROR_PRODUCTS_REQUIRED = "Please select at least one product"

# Product form errors
ERROR_PRODUCT_NAME_REQUIRED = "Please enter the product name"
ERROR_PRICE_INVALID = "Price must not be negative"
ERROR_STOCK_INVALID = "Stock quantity must not be negative"
ERROR_IMAGES_REQUIRED = "Please add at least one image"

# User management errors
ERROR_CREDENTIALS_REQUIRED = "Username and password are required"
ERROR_PASSWORD_TOO_SHORT = "Password must be at least 6 characters"
ERROR_PASSWORD_FIELDS_REQUIRED = "Please fill in all fields"
ERROR_PASSWORD_MISMATCH = "Passwords do not match"


class StorefrontError(Exception):
    """Base error for everything the client surfaces to its callers."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        retryable: bool = False,
        raw_error: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable
        self.raw_error = raw_error


class TransportError(StorefrontError):
    """No usable response reached the client."""

    def __init__(self, message: str = ERROR_NO_RESPONSE, raw_error: Any = None) -> None:
        super().__init__(message, code="TRANSPORT", retryable=True, raw_error=raw_error)


class MalformedResponseError(TransportError):
    """Response shape does not match the cart/product contract."""

    def __init__(self, message: str = ERROR_MALFORMED_RESPONSE, raw_error: Any = None) -> None:
        super().__init__(message, raw_error=raw_error)
        self.code = "MALFORMED_RESPONSE"


class RejectedError(StorefrontError):
    """Server explicitly declined the request."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str = "REJECTED",
        raw_error: Any = None,
    ) -> None:
        super().__init__(message, code=code, retryable=False, raw_error=raw_error)
        self.status_code = status_code


class InsufficientStockError(RejectedError):
    """Requested quantity would exceed available stock."""

    def __init__(self, message: str = ERROR_OUT_OF_STOCK, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code, code="INSUFFICIENT_STOCK")


class CartLineNotFoundError(RejectedError):
    """Cart line is unknown to the server (or absent locally after discovery)."""

    def __init__(self, message: str = ERROR_LINE_NOT_FOUND, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code, code="LINE_NOT_FOUND")


class AuthRejectedError(RejectedError):
    """Credential was rejected (HTTP 401)."""

    def __init__(self, message: str = ERROR_UNAUTHORIZED) -> None:
        super().__init__(message, status_code=401, code="UNAUTHORIZED")


class InvalidRequestError(StorefrontError):
    """Request refused locally, before any network call."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_REQUEST")


class CartBusyError(StorefrontError):
    """Another mutation is in flight and the store refuses to queue."""

    def __init__(self, message: str = ERROR_CART_BUSY) -> None:
        super().__init__(message, code="CART_BUSY", retryable=True)


class CartReconcileError(StorefrontError):
    """Mutation was applied by the server but the cart refetch failed."""

    def __init__(self, message: str = ERROR_CART_NOT_REFRESHED, cause: StorefrontError | None = None) -> None:
        super().__init__(message, code="RECONCILE_FAILED", retryable=True, raw_error=cause)
        self.cause = cause

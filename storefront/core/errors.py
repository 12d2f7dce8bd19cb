# storefront/core/errors.py
"""
Typed failures raised by the domain services.

Authoritative-store and validation failures propagate to callers.
BackendUnavailable is raised only by low-level cache/graph primitives and is always
handled at the component boundary (fail-open, fail-soft, or empty result).
"""


class StorefrontError(Exception):
    """Base class for domain failures."""

    code = "ERROR"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class NotFound(StorefrontError):
    code = "NOT_FOUND"


class InsufficientStock(StorefrontError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, requested: int, available: int | None = None):
        super().__init__(
            f"Insufficient stock for product {product_id}",
            product_id=product_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidState(StorefrontError):
    code = "INVALID_STATE"


class InvalidQuantity(StorefrontError):
    code = "INVALID_QUANTITY"


class AccessDenied(StorefrontError):
    code = "ACCESS_DENIED"


class BackendUnavailable(StorefrontError):
    code = "BACKEND_UNAVAILABLE"
